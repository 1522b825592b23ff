"""Price history append and windowed query."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from prophit.models import PriceHistoryEntry

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def append_price_history(conn: DuckDBPyConnection, entries: list[PriceHistoryEntry]) -> None:
    """Append entries. No update or delete path exists."""
    if not entries:
        return
    conn.executemany(
        "INSERT INTO price_history (market_id, outcome, price, recorded_at) VALUES (?, ?, ?, ?)",
        [(e.market_id, e.outcome, e.price, e.timestamp) for e in entries],
    )


def query_price_history(
    conn: DuckDBPyConnection,
    market_id: str,
    start_ts: int,
    end_ts: int,
    outcome: str | None = None,
) -> list[PriceHistoryEntry]:
    """Entries for market in [start_ts, end_ts], ascending by time then insertion."""
    conditions = ["market_id = ?", "recorded_at >= ?", "recorded_at <= ?"]
    params: list[Any] = [market_id, start_ts, end_ts]
    if outcome:
        conditions.append("outcome = ?")
        params.append(outcome)
    rows = conn.execute(
        f"""
        SELECT market_id, outcome, price, recorded_at FROM price_history
        WHERE {' AND '.join(conditions)}
        ORDER BY recorded_at, id
        """,
        params,
    ).fetchall()
    return [
        PriceHistoryEntry(market_id=r[0], outcome=r[1], price=r[2], timestamp=r[3])
        for r in rows
    ]


def count_price_history(conn: DuckDBPyConnection) -> int:
    return conn.execute("SELECT COUNT(*) FROM price_history").fetchone()[0]
