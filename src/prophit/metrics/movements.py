"""Threshold-based price movement detection over the recent price history."""

from __future__ import annotations

import time

import structlog

from prophit.models import Movement, PriceHistoryEntry
from prophit.storage import Storage

log = structlog.get_logger(__name__)

DEFAULT_THRESHOLD_PERCENT = 10.0
DEFAULT_WINDOW_HOURS = 1.0
DEFAULT_DEDUPE_MINUTES = 60.0


def change_percent(old_price: float, new_price: float) -> float | None:
    """Percent change from old to new; None when old is not positive."""
    if old_price <= 0:
        return None
    return (new_price - old_price) / old_price * 100


def group_by_outcome(entries: list[PriceHistoryEntry]) -> dict[str, list[PriceHistoryEntry]]:
    """Group time-ordered entries per outcome, preserving order within each group."""
    groups: dict[str, list[PriceHistoryEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.outcome, []).append(entry)
    return groups


class MovementDetector:
    """Compares the chronologically first and last sample per outcome in the window.

    Earliest/latest are by time, not min/max price. ``detect`` never dedupes;
    ``detect_and_store`` skips outcomes that already alerted within
    ``dedupe_minutes``.
    """

    def __init__(
        self,
        storage: Storage,
        threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
        window_hours: float = DEFAULT_WINDOW_HOURS,
        dedupe_minutes: float = DEFAULT_DEDUPE_MINUTES,
    ) -> None:
        self.storage = storage
        self.threshold_percent = threshold_percent
        self.window_hours = window_hours
        self.dedupe_minutes = dedupe_minutes

    def detect(self, market_id: str, now: int | None = None) -> list[Movement]:
        now = now if now is not None else int(time.time() * 1000)
        entries = self.storage.query_price_history(market_id, self.window_hours, now=now)
        movements = []
        for outcome, samples in group_by_outcome(entries).items():
            if len(samples) < 2:
                continue
            old_price = samples[0].price
            new_price = samples[-1].price
            change = change_percent(old_price, new_price)
            if change is None or abs(change) < self.threshold_percent:
                continue
            movements.append(
                Movement(
                    market_id=market_id,
                    outcome=outcome,
                    change_percent=change,
                    old_price=old_price,
                    new_price=new_price,
                    detected_at=now,
                )
            )
        return movements

    def detect_and_store(self, market_id: str, now: int | None = None) -> list[Movement]:
        """Detect, drop repeats inside the dedupe window, persist the rest."""
        now = now if now is not None else int(time.time() * 1000)
        stored = []
        for movement in self.detect(market_id, now=now):
            if self.dedupe_minutes > 0:
                since = now - int(self.dedupe_minutes * 60 * 1000)
                if self.storage.has_recent_movement(market_id, movement.outcome, since):
                    log.debug("movement_deduplicated", market_id=market_id, outcome=movement.outcome)
                    continue
            stored.append(self.storage.save_movement(movement))
            log.info(
                "movement_detected",
                market_id=market_id,
                outcome=movement.outcome,
                change_percent=round(movement.change_percent, 2),
            )
        return stored
