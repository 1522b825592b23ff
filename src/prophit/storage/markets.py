"""Market persistence."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

from prophit.models import Market, Outcome

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = [
    "market_id", "question", "slug", "category", "outcomes", "volume",
    "active", "end_date", "created_at", "updated_at", "source",
]
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM markets"


def upsert_market(conn: DuckDBPyConnection, market: Market) -> None:
    """Insert or fully replace a market. created_at keeps the first sighting."""
    now_ms = int(time.time() * 1000)
    outcomes_json = json.dumps([o.model_dump() for o in market.outcomes])
    conn.execute(
        """
        INSERT INTO markets (market_id, question, slug, category, outcomes, volume, active, end_date, created_at, updated_at, source)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (market_id) DO UPDATE SET
            question = excluded.question,
            slug = excluded.slug,
            category = excluded.category,
            outcomes = excluded.outcomes,
            volume = excluded.volume,
            active = excluded.active,
            end_date = excluded.end_date,
            updated_at = excluded.updated_at,
            source = excluded.source
        """,
        [
            market.market_id,
            market.question,
            market.slug,
            market.category or "Other",
            outcomes_json,
            market.volume,
            market.active,
            market.end_date,
            market.created_at or now_ms,
            market.updated_at or now_ms,
            market.source,
        ],
    )


def _row_to_market(row: tuple[Any, ...]) -> Market:
    data = dict(zip(_COLUMNS, row))
    raw_outcomes = data.pop("outcomes")
    outcomes = json.loads(raw_outcomes) if isinstance(raw_outcomes, str) else (raw_outcomes or [])
    return Market(outcomes=[Outcome(**o) for o in outcomes], **data)


def get_market(conn: DuckDBPyConnection, market_id: str) -> Market | None:
    row = conn.execute(f"{_SELECT} WHERE market_id = ?", [market_id]).fetchone()
    return _row_to_market(row) if row else None


def list_markets(
    conn: DuckDBPyConnection,
    category: str | None = None,
    limit: int | None = None,
    active_only: bool = True,
) -> list[Market]:
    """Markets ordered by most recently updated first."""
    conditions = ["1=1"]
    params: list[Any] = []
    if active_only:
        conditions.append("active = true")
    if category:
        conditions.append("category = ?")
        params.append(category)
    sql = f"{_SELECT} WHERE {' AND '.join(conditions)} ORDER BY updated_at DESC, market_id"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return [_row_to_market(r) for r in conn.execute(sql, params).fetchall()]


def list_categories(conn: DuckDBPyConnection) -> list[str]:
    rows = conn.execute(
        """
        SELECT DISTINCT category FROM markets
        WHERE active = true AND category IS NOT NULL AND TRIM(category) != ''
        ORDER BY category
        """
    ).fetchall()
    return [r[0] for r in rows]


def count_markets(conn: DuckDBPyConnection) -> int:
    return conn.execute("SELECT COUNT(*) FROM markets WHERE active = true").fetchone()[0]
