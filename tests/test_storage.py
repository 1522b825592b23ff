"""Storage contract, run against both the DuckDB and in-memory backends."""

import random

from conftest import HOUR_MS, NOW, make_market

from prophit.config import Settings
from prophit.ingestion.polymarket.normalize import normalize
from prophit.models import Movement, Outcome
from prophit.storage import DuckDBStorage, MemoryStorage, open_storage


def test_history_window_excludes_older_entries(storage):
    storage.append_price_history("m1", [Outcome(name="Yes", price=0.4)], timestamp=NOW - 25 * HOUR_MS)
    storage.append_price_history("m1", [Outcome(name="Yes", price=0.5)], timestamp=NOW - 1 * HOUR_MS)
    rows = storage.query_price_history("m1", 24, now=NOW)
    assert [(r.price, r.timestamp) for r in rows] == [(0.5, NOW - HOUR_MS)]


def test_history_ordering_and_outcome_filter(storage):
    storage.append_price_history(
        "m1", [Outcome(name="Yes", price=0.6), Outcome(name="No", price=0.4)], timestamp=NOW - 2000
    )
    storage.append_price_history(
        "m1", [Outcome(name="Yes", price=0.7), Outcome(name="No", price=0.3)], timestamp=NOW - 1000
    )
    storage.append_price_history("other", [Outcome(name="Yes", price=0.1)], timestamp=NOW - 1500)

    rows = storage.query_price_history("m1", 1, now=NOW)
    assert [(r.outcome, r.price) for r in rows] == [("Yes", 0.6), ("No", 0.4), ("Yes", 0.7), ("No", 0.3)]

    yes = storage.query_price_history("m1", 1, outcome="Yes", now=NOW)
    assert [r.price for r in yes] == [0.6, 0.7]


def test_normalized_market_history_round_trip(storage):
    raw = {
        "id": "555",
        "title": "Will ETH flip BTC?",
        "markets": [{"outcomes": '["Yes", "No"]', "outcomePrices": '["0.25", "0.75"]'}],
    }
    market = normalize(raw, "gamma", rng=random.Random(0), now=NOW)
    storage.save_market(market)
    storage.append_price_history(market.market_id, market.outcomes, timestamp=NOW - 500)
    rows = storage.query_price_history("555", 1, now=NOW)
    assert [(r.outcome, r.price, r.timestamp) for r in rows] == [
        ("Yes", 0.25, NOW - 500),
        ("No", 0.75, NOW - 500),
    ]
    assert storage.get_market("555").category == "Cryptocurrency"


def test_upsert_replaces_fields_but_keeps_created_at(storage):
    storage.save_market(make_market(question="Old question", created_at=NOW - 5000, updated_at=NOW - 5000))
    storage.save_market(
        make_market(
            question="New question",
            category="Politics",
            volume=12.5,
            outcomes=[Outcome(name="A", price=0.9)],
            created_at=NOW,
            updated_at=NOW,
        )
    )
    m = storage.get_market("m1")
    assert m.question == "New question"
    assert m.category == "Politics"
    assert m.volume == 12.5
    assert [o.name for o in m.outcomes] == ["A"]
    assert m.created_at == NOW - 5000
    assert m.updated_at == NOW


def test_get_unknown_market(storage):
    assert storage.get_market("missing") is None


def test_list_markets_and_categories(storage):
    storage.save_market(make_market("a", category="Sports", updated_at=NOW - 3))
    storage.save_market(make_market("b", category="Politics", updated_at=NOW - 1))
    storage.save_market(make_market("c", category="Sports", updated_at=NOW - 2))
    storage.save_market(make_market("d", category="Weather", active=False))

    assert [m.market_id for m in storage.list_markets()] == ["b", "c", "a"]
    assert [m.market_id for m in storage.list_markets(category="Sports")] == ["c", "a"]
    assert [m.market_id for m in storage.list_markets(limit=1)] == ["b"]
    assert len(storage.list_markets(active_only=False)) == 4
    assert storage.list_categories() == ["Politics", "Sports"]


def test_movements_newest_first_with_ids(storage):
    for i, ts in enumerate([NOW - 3000, NOW - 1000, NOW - 2000]):
        stored = storage.save_movement(
            Movement(
                market_id="m1",
                outcome=f"O{i}",
                change_percent=12.0,
                old_price=0.5,
                new_price=0.56,
                detected_at=ts,
            )
        )
        assert stored.id is not None
    old = Movement(market_id="m1", outcome="Old", change_percent=-20.0, old_price=0.5, new_price=0.4,
                   detected_at=NOW - 30 * HOUR_MS)
    storage.save_movement(old)

    rows = storage.list_movements(hours=24, limit=10, now=NOW)
    assert [m.outcome for m in rows] == ["O1", "O2", "O0"]
    assert [m.outcome for m in storage.list_movements(hours=24, limit=2, now=NOW)] == ["O1", "O2"]
    assert storage.has_recent_movement("m1", "O1", NOW - 1500)
    assert not storage.has_recent_movement("m1", "O0", NOW - 1500)
    assert not storage.has_recent_movement("m2", "O1", 0)


def test_stats(storage):
    storage.save_market(make_market("a"))
    storage.append_price_history("a", [Outcome(name="Yes", price=0.5)], timestamp=NOW)
    storage.save_movement(
        Movement(market_id="a", outcome="Yes", change_percent=10, old_price=0.5, new_price=0.55, detected_at=NOW)
    )
    stats = storage.stats(now=NOW)
    assert stats["storage"] == storage.kind
    assert stats["connected"] is storage.durable
    assert stats["markets"] == 1
    assert stats["price_history"] == 1
    assert stats["movements"] == 1
    assert stats["recent_movements"] == 1


def test_memory_retention_evicts_oldest():
    storage = MemoryStorage(history_retention=3, movement_retention=2)
    for i in range(5):
        storage.append_price_history("m1", [Outcome(name="Yes", price=i / 10)], timestamp=NOW - 1000 + i)
    assert [r.price for r in storage.query_price_history("m1", 1, now=NOW)] == [0.2, 0.3, 0.4]

    for i in range(3):
        storage.save_movement(
            Movement(market_id="m1", outcome=f"O{i}", change_percent=15, old_price=0.2, new_price=0.23,
                     detected_at=NOW - 100 + i)
        )
    assert [m.outcome for m in storage.list_movements(now=NOW)] == ["O2", "O1"]


def test_duckdb_storage_survives_reopen(temp_db_path):
    first = DuckDBStorage.open(temp_db_path)
    first.save_market(make_market("persisted"))
    first.close()
    second = DuckDBStorage.open(temp_db_path)
    try:
        assert second.get_market("persisted") is not None
    finally:
        second.close()


def test_open_storage_memory_backend():
    storage = open_storage(Settings(storage={"backend": "memory", "history_retention": 7}))
    assert isinstance(storage, MemoryStorage)


def test_open_storage_falls_back_to_memory(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    settings = Settings(storage={"backend": "duckdb", "db_path": str(blocker / "sub" / "db.duckdb")})
    storage = open_storage(settings)
    assert storage.kind == "memory"
    assert storage.durable is False


def test_open_storage_duckdb(temp_db_path):
    storage = open_storage(Settings(storage={"db_path": str(temp_db_path)}))
    try:
        assert isinstance(storage, DuckDBStorage)
    finally:
        storage.close()
