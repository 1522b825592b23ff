"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS history_seq START 1;
CREATE SEQUENCE IF NOT EXISTS movement_seq START 1;

-- Latest known state per market (upserted every poll cycle)
CREATE TABLE IF NOT EXISTS markets (
    market_id       VARCHAR PRIMARY KEY,
    question        VARCHAR NOT NULL,
    slug            VARCHAR,
    category        VARCHAR,
    outcomes        JSON,
    volume          DOUBLE,
    active          BOOLEAN,
    end_date        BIGINT,
    created_at      BIGINT,
    updated_at      BIGINT,
    source          VARCHAR
);

-- Price samples (append-only)
CREATE TABLE IF NOT EXISTS price_history (
    id              BIGINT PRIMARY KEY DEFAULT nextval('history_seq'),
    market_id       VARCHAR NOT NULL,
    outcome         VARCHAR NOT NULL,
    price           DOUBLE NOT NULL,
    recorded_at     BIGINT NOT NULL
);

CREATE INDEX IF NOT EXISTS price_history_market_ts ON price_history (market_id, recorded_at);

-- Detected movements (append-only)
CREATE TABLE IF NOT EXISTS movements (
    id              BIGINT PRIMARY KEY DEFAULT nextval('movement_seq'),
    market_id       VARCHAR NOT NULL,
    outcome         VARCHAR NOT NULL,
    change_percent  DOUBLE NOT NULL,
    old_price       DOUBLE NOT NULL,
    new_price       DOUBLE NOT NULL,
    detected_at     BIGINT NOT NULL
);

CREATE INDEX IF NOT EXISTS movements_detected_at ON movements (detected_at);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    ":memory:" opens a throwaway in-process database."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables, sequences and indexes if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
