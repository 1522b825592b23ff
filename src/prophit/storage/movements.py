"""Movement persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING

from prophit.models import Movement

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def insert_movement(conn: DuckDBPyConnection, movement: Movement) -> Movement:
    """Append a movement and return it with its assigned id."""
    row = conn.execute(
        """
        INSERT INTO movements (market_id, outcome, change_percent, old_price, new_price, detected_at)
        VALUES (?, ?, ?, ?, ?, ?)
        RETURNING id
        """,
        [
            movement.market_id,
            movement.outcome,
            movement.change_percent,
            movement.old_price,
            movement.new_price,
            movement.detected_at,
        ],
    ).fetchone()
    return movement.model_copy(update={"id": row[0]})


def has_recent_movement(conn: DuckDBPyConnection, market_id: str, outcome: str, since_ts: int) -> bool:
    row = conn.execute(
        """
        SELECT 1 FROM movements
        WHERE market_id = ? AND outcome = ? AND detected_at >= ?
        LIMIT 1
        """,
        [market_id, outcome, since_ts],
    ).fetchone()
    return row is not None


def list_movements(conn: DuckDBPyConnection, since_ts: int, limit: int) -> list[Movement]:
    """Movements detected at or after since_ts, newest first."""
    rows = conn.execute(
        """
        SELECT id, market_id, outcome, change_percent, old_price, new_price, detected_at
        FROM movements
        WHERE detected_at >= ?
        ORDER BY detected_at DESC, id DESC
        LIMIT ?
        """,
        [since_ts, limit],
    ).fetchall()
    cols = ["id", "market_id", "outcome", "change_percent", "old_price", "new_price", "detected_at"]
    return [Movement(**dict(zip(cols, r))) for r in rows]


def count_movements(conn: DuckDBPyConnection, since_ts: int | None = None) -> int:
    if since_ts is None:
        return conn.execute("SELECT COUNT(*) FROM movements").fetchone()[0]
    return conn.execute(
        "SELECT COUNT(*) FROM movements WHERE detected_at >= ?", [since_ts]
    ).fetchone()[0]
