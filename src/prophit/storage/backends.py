"""DuckDB-backed and in-memory Storage implementations."""

from __future__ import annotations

import itertools
import threading
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING

import duckdb
import structlog

from prophit.models import Market, Movement, PriceHistoryEntry
from prophit.storage import history as history_sql
from prophit.storage import markets as markets_sql
from prophit.storage import movements as movements_sql
from prophit.storage.base import Storage, now_ms
from prophit.storage.db import get_connection, init_schema

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from prophit.config import Settings

log = structlog.get_logger(__name__)

DEFAULT_HISTORY_RETENTION = 1000
DEFAULT_MOVEMENT_RETENTION = 100


class DuckDBStorage(Storage):
    """Durable storage on one DuckDB connection. No retention cap; queries are windowed."""

    kind = "duckdb"
    durable = True

    def __init__(self, conn: DuckDBPyConnection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    @classmethod
    def open(cls, db_path: str | Path) -> DuckDBStorage:
        conn = get_connection(db_path)
        try:
            init_schema(conn)
        except duckdb.Error:
            conn.close()
            raise
        return cls(conn)

    def save_market(self, market: Market) -> None:
        with self._lock:
            markets_sql.upsert_market(self._conn, market)

    def get_market(self, market_id: str) -> Market | None:
        with self._lock:
            return markets_sql.get_market(self._conn, market_id)

    def list_markets(
        self,
        category: str | None = None,
        limit: int | None = None,
        active_only: bool = True,
    ) -> list[Market]:
        with self._lock:
            return markets_sql.list_markets(self._conn, category, limit, active_only)

    def list_categories(self) -> list[str]:
        with self._lock:
            return markets_sql.list_categories(self._conn)

    def _append_entries(self, entries: list[PriceHistoryEntry]) -> None:
        with self._lock:
            history_sql.append_price_history(self._conn, entries)

    def _query_entries(
        self, market_id: str, start_ts: int, end_ts: int, outcome: str | None
    ) -> list[PriceHistoryEntry]:
        with self._lock:
            return history_sql.query_price_history(self._conn, market_id, start_ts, end_ts, outcome)

    def save_movement(self, movement: Movement) -> Movement:
        with self._lock:
            return movements_sql.insert_movement(self._conn, movement)

    def has_recent_movement(self, market_id: str, outcome: str, since_ts: int) -> bool:
        with self._lock:
            return movements_sql.has_recent_movement(self._conn, market_id, outcome, since_ts)

    def _recent_movements(self, since_ts: int, limit: int) -> list[Movement]:
        with self._lock:
            return movements_sql.list_movements(self._conn, since_ts, limit)

    def _counts(self, recent_since: int) -> dict[str, int]:
        with self._lock:
            return {
                "markets": markets_sql.count_markets(self._conn),
                "price_history": history_sql.count_price_history(self._conn),
                "movements": movements_sql.count_movements(self._conn),
                "recent_movements": movements_sql.count_movements(self._conn, recent_since),
            }

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class MemoryStorage(Storage):
    """Degraded-mode storage. History and movements are bounded buffers (oldest evicted)."""

    kind = "memory"
    durable = False

    def __init__(
        self,
        history_retention: int = DEFAULT_HISTORY_RETENTION,
        movement_retention: int = DEFAULT_MOVEMENT_RETENTION,
    ) -> None:
        self._markets: dict[str, Market] = {}
        self._history: deque[PriceHistoryEntry] = deque(maxlen=history_retention)
        self._movements: deque[Movement] = deque(maxlen=movement_retention)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def save_market(self, market: Market) -> None:
        now = now_ms()
        with self._lock:
            existing = self._markets.get(market.market_id)
            created_at = existing.created_at if existing else (market.created_at or now)
            self._markets[market.market_id] = market.model_copy(
                update={
                    "created_at": created_at,
                    "updated_at": market.updated_at or now,
                    "category": market.category or "Other",
                }
            )

    def get_market(self, market_id: str) -> Market | None:
        with self._lock:
            return self._markets.get(market_id)

    def list_markets(
        self,
        category: str | None = None,
        limit: int | None = None,
        active_only: bool = True,
    ) -> list[Market]:
        with self._lock:
            markets = [
                m
                for m in self._markets.values()
                if (not active_only or m.active) and (not category or m.category == category)
            ]
        markets.sort(key=lambda m: (-(m.updated_at or 0), m.market_id))
        return markets if limit is None else markets[:limit]

    def list_categories(self) -> list[str]:
        with self._lock:
            return sorted({m.category for m in self._markets.values() if m.active and m.category})

    def _append_entries(self, entries: list[PriceHistoryEntry]) -> None:
        with self._lock:
            self._history.extend(entries)

    def _query_entries(
        self, market_id: str, start_ts: int, end_ts: int, outcome: str | None
    ) -> list[PriceHistoryEntry]:
        with self._lock:
            rows = [
                e
                for e in self._history
                if e.market_id == market_id
                and start_ts <= e.timestamp <= end_ts
                and (not outcome or e.outcome == outcome)
            ]
        # Stable sort keeps insertion order for equal timestamps
        rows.sort(key=lambda e: e.timestamp)
        return rows

    def save_movement(self, movement: Movement) -> Movement:
        with self._lock:
            stored = movement.model_copy(update={"id": next(self._ids)})
            self._movements.append(stored)
            return stored

    def has_recent_movement(self, market_id: str, outcome: str, since_ts: int) -> bool:
        with self._lock:
            return any(
                m.market_id == market_id and m.outcome == outcome and m.detected_at >= since_ts
                for m in self._movements
            )

    def _recent_movements(self, since_ts: int, limit: int) -> list[Movement]:
        with self._lock:
            rows = [m for m in self._movements if m.detected_at >= since_ts]
        rows.sort(key=lambda m: (m.detected_at, m.id or 0), reverse=True)
        return rows[:limit]

    def _counts(self, recent_since: int) -> dict[str, int]:
        with self._lock:
            return {
                "markets": sum(1 for m in self._markets.values() if m.active),
                "price_history": len(self._history),
                "movements": len(self._movements),
                "recent_movements": sum(1 for m in self._movements if m.detected_at >= recent_since),
            }


def open_storage(settings: Settings) -> Storage:
    """DuckDB when configured and reachable, otherwise memory for the process lifetime."""
    memory = MemoryStorage(
        history_retention=settings.history_retention,
        movement_retention=settings.movement_retention,
    )
    if settings.storage_backend == "memory":
        log.info("storage_opened", storage=memory.kind)
        return memory
    try:
        storage = DuckDBStorage.open(settings.db_path)
    except (duckdb.Error, OSError) as e:
        log.warning("storage_unavailable", db_path=settings.db_path, error=str(e), fallback="memory")
        return memory
    log.info("storage_opened", storage=storage.kind, db_path=settings.db_path)
    return storage
