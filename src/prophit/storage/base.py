"""Storage interface shared by the durable (DuckDB) and in-memory backends."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from prophit.models import Market, Movement, Outcome, PriceHistoryEntry

HOUR_MS = 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class Storage(ABC):
    """Markets (upsert by id), price history (append-only), movements (append-only).

    Callers never branch on the backend; pick one with ``open_storage``.
    """

    kind: str = ""
    durable: bool = False

    @abstractmethod
    def save_market(self, market: Market) -> None:
        """Create or fully replace the market with this id."""
        ...

    @abstractmethod
    def get_market(self, market_id: str) -> Market | None: ...

    @abstractmethod
    def list_markets(
        self,
        category: str | None = None,
        limit: int | None = None,
        active_only: bool = True,
    ) -> list[Market]:
        """Most recently updated first."""
        ...

    @abstractmethod
    def list_categories(self) -> list[str]: ...

    @abstractmethod
    def _append_entries(self, entries: list[PriceHistoryEntry]) -> None: ...

    @abstractmethod
    def _query_entries(
        self, market_id: str, start_ts: int, end_ts: int, outcome: str | None
    ) -> list[PriceHistoryEntry]: ...

    @abstractmethod
    def save_movement(self, movement: Movement) -> Movement:
        """Append a movement; returns it with an id assigned."""
        ...

    @abstractmethod
    def has_recent_movement(self, market_id: str, outcome: str, since_ts: int) -> bool: ...

    @abstractmethod
    def _recent_movements(self, since_ts: int, limit: int) -> list[Movement]: ...

    @abstractmethod
    def _counts(self, recent_since: int) -> dict[str, int]: ...

    def close(self) -> None:
        pass

    # Shared behaviour on top of the primitives

    def append_price_history(
        self,
        market_id: str,
        outcomes: list[Outcome],
        timestamp: int | None = None,
    ) -> list[PriceHistoryEntry]:
        """One entry per outcome, all stamped with the same time (now by default)."""
        ts = timestamp if timestamp is not None else now_ms()
        entries = [
            PriceHistoryEntry(market_id=market_id, outcome=o.name, price=o.price, timestamp=ts)
            for o in outcomes
        ]
        self._append_entries(entries)
        return entries

    def query_price_history(
        self,
        market_id: str,
        since_hours: float,
        outcome: str | None = None,
        now: int | None = None,
    ) -> list[PriceHistoryEntry]:
        """Entries within [now - since_hours, now], oldest first."""
        end = now if now is not None else now_ms()
        start = end - int(since_hours * HOUR_MS)
        return self._query_entries(market_id, start, end, outcome)

    def list_movements(
        self,
        hours: float = 24,
        limit: int = 50,
        now: int | None = None,
    ) -> list[Movement]:
        """Movements detected in the last ``hours``, newest first."""
        end = now if now is not None else now_ms()
        return self._recent_movements(end - int(hours * HOUR_MS), limit)

    def stats(self, now: int | None = None) -> dict[str, Any]:
        end = now if now is not None else now_ms()
        return {
            "storage": self.kind,
            "connected": self.durable,
            **self._counts(end - 24 * HOUR_MS),
        }
