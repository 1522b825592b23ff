"""Shared fixtures: temporary DuckDB file, both storage backends, settings without credentials."""

import shutil
import tempfile
from pathlib import Path

import pytest

from prophit.config import Settings
from prophit.models import Market, Outcome
from prophit.storage import DuckDBStorage, MemoryStorage

NOW = 1_700_000_000_000  # ms epoch
HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def temp_db_path():
    tmp = tempfile.mkdtemp()
    yield Path(tmp) / "test.duckdb"
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(params=["duckdb", "memory"])
def storage(request, temp_db_path):
    if request.param == "duckdb":
        s = DuckDBStorage.open(temp_db_path)
    else:
        s = MemoryStorage()
    yield s
    s.close()


@pytest.fixture
def no_credentials(monkeypatch):
    for var in ("POLYMARKET_API_KEY", "POLYMARKET_SECRET", "POLYMARKET_PASSPHRASE"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def memory_settings(no_credentials):
    return Settings(
        storage={"backend": "memory"},
        fetcher={"rate_limit_delay_ms": 0},
    )


def make_market(market_id="m1", question="Will it rain tomorrow?", category="Other", **kwargs):
    kwargs.setdefault("outcomes", [Outcome(name="Yes", price=0.6), Outcome(name="No", price=0.4)])
    kwargs.setdefault("created_at", NOW)
    kwargs.setdefault("updated_at", NOW)
    return Market(market_id=market_id, question=question, category=category, **kwargs)
