"""Market normalizer and outcome extraction strategies."""

import random

import pytest

from prophit.ingestion.outcomes import (
    MAX_SYNTH_PRICE,
    MIN_SYNTH_PRICE,
    extract_title_outcomes,
    resolve_outcomes,
    synthesize_prices,
)
from prophit.ingestion.polymarket.normalize import create_slug, normalize, parse_timestamp_ms


def test_synthesized_prices_stay_in_bounds():
    for seed in range(50):
        rng = random.Random(seed)
        for count in (2, 3, 5):
            names = [f"Option {i}" for i in range(count)]
            outcomes = synthesize_prices(names, rng)
            assert [o.name for o in outcomes] == names
            assert 0.3 <= outcomes[0].price <= 0.7
            for o in outcomes:
                assert MIN_SYNTH_PRICE <= o.price <= MAX_SYNTH_PRICE


def test_synthesized_binary_sums_to_one():
    outcomes = synthesize_prices(["A", "B"], random.Random(3))
    assert outcomes[0].price + outcomes[1].price == pytest.approx(1.0)


def test_create_slug():
    assert create_slug("Will Bitcoin reach $100,000 by end of 2024?") == "will-bitcoin-reach-100000-by-end-of-2024"
    assert create_slug("  Lakers   vs.  Celtics ") == "lakers-vs-celtics"
    assert len(create_slug("a " * 40)) == 50


def test_parse_timestamp_ms():
    assert parse_timestamp_ms("2025-03-19T00:00:00Z") == 1742342400000
    assert parse_timestamp_ms(1700000000) == 1700000000000
    assert parse_timestamp_ms(1700000000123) == 1700000000123
    assert parse_timestamp_ms("1700000000") == 1700000000000
    assert parse_timestamp_ms("not a date") is None
    assert parse_timestamp_ms(None) is None
    assert parse_timestamp_ms(float("inf")) is None
    assert parse_timestamp_ms(float("nan")) is None
    # Outside the int64 range of the stored columns
    assert parse_timestamp_ms(1e20) is None
    assert parse_timestamp_ms("99999999999999999999999") is None
    assert parse_timestamp_ms("9999-12-31T23:59:59Z") == 253402300799000


def test_extract_title_outcomes():
    assert extract_title_outcomes("Lakers vs Celtics") == ["Lakers", "Celtics"]
    assert extract_title_outcomes("Presidential election winner: Smith or Jones") == ["Smith", "Jones"]
    assert extract_title_outcomes("Will it rain?") == []


def test_gamma_event_with_prices():
    raw = {
        "id": "123",
        "title": "Fed decision in March?",
        "slug": "fed-decision-in-march",
        "volume24hr": "1500.5",
        "endDate": "2025-03-19T00:00:00Z",
        "markets": [{"outcomes": '["Yes", "No"]', "outcomePrices": '["0.62", "0.38"]'}],
    }
    m = normalize(raw, "gamma", rng=random.Random(1), now=1_700_000_000_000)
    assert m is not None
    assert m.market_id == "123"
    assert m.question == "Fed decision in March?"
    assert m.slug == "fed-decision-in-march"
    assert m.category == "Economics"
    assert [(o.name, o.price) for o in m.outcomes] == [("Yes", 0.62), ("No", 0.38)]
    assert m.volume == 1500.5
    assert m.end_date == 1742342400000
    assert m.created_at == 1_700_000_000_000
    assert m.source == "gamma"


def test_gamma_title_names_replace_generic_yes_no():
    raw = {"id": "g1", "title": "Lakers vs Celtics", "markets": [{"outcomes": '["Yes", "No"]'}]}
    m = normalize(raw, "gamma", rng=random.Random(2))
    assert [o.name for o in m.outcomes] == ["Lakers", "Celtics"]
    assert m.category == "Sports"


def test_gamma_generic_yes_no_kept_without_title_names():
    raw = {"id": "g2", "title": "Will it snow in Paris?", "markets": [{"outcomes": '["Yes", "No"]'}]}
    m = normalize(raw, "gamma", rng=random.Random(2))
    assert [o.name for o in m.outcomes] == ["Yes", "No"]
    assert m.outcomes[0].price + m.outcomes[1].price == pytest.approx(1.0)


def test_gamma_named_outcomes_get_synthesized_prices():
    raw = {"id": "g3", "title": "Who wins the title?", "markets": [{"outcomes": '["A", "B", "C"]'}]}
    m = normalize(raw, "gamma", rng=random.Random(5))
    assert [o.name for o in m.outcomes] == ["A", "B", "C"]


def test_gamma_tag_label_is_category_hint():
    raw = {"id": "g4", "title": "Who takes the trophy?", "tags": [{"label": "Soccer"}]}
    m = normalize(raw, "gamma", rng=random.Random(1))
    assert m.category == "Sports"


def test_clob_market_with_tokens():
    raw = {
        "condition_id": "0xabc",
        "question": "Will it rain in London?",
        "market_slug": "rain-london",
        "category": "weather",
        "tokens": [{"outcome": "Yes", "price": 0.7}, {"outcome": "No", "price": "0.3"}],
        "end_date_iso": "2025-03-19T00:00:00Z",
    }
    m = normalize(raw, "clob", rng=random.Random(1))
    assert m.market_id == "0xabc"
    assert m.slug == "rain-london"
    assert m.category == "Weather"
    assert [(o.name, o.price) for o in m.outcomes] == [("Yes", 0.7), ("No", 0.3)]
    assert m.end_date == 1742342400000
    assert m.source == "clob"


def test_clob_missing_price_draws_in_range_and_duplicates_dropped():
    raw = {
        "question": "Who wins?",
        "outcomes": [{"name": "A"}, {"name": "B", "price": 1.7}, {"name": "A", "price": 0.1}],
    }
    m = normalize(raw, "clob", rng=random.Random(9), now=42)
    assert m.market_id == "clob-42"
    assert [o.name for o in m.outcomes] == ["A", "B"]
    assert 0.2 <= m.outcomes[0].price <= 0.8
    assert m.outcomes[1].price == 1.0


def test_default_binary_when_nothing_else_applies():
    outcomes = resolve_outcomes({}, "Will it snow?", random.Random(4))
    assert [o.name for o in outcomes] == ["Yes", "No"]
    assert 0.3 <= outcomes[0].price <= 0.7
    assert outcomes[0].price + outcomes[1].price == pytest.approx(1.0)


def test_records_without_title_are_skipped():
    assert normalize({"id": "x"}, "gamma") is None
    assert normalize({"title": "   "}, "gamma") is None
    assert normalize({"condition_id": "x"}, "clob") is None
    assert normalize(["not", "a", "dict"], "gamma") is None


def test_unknown_source_raises():
    with pytest.raises(ValueError):
        normalize({"title": "x"}, "kalshi")


def test_non_finite_numbers_do_not_reject_the_record():
    raw = {
        "id": "77",
        "title": "Will the launch slip?",
        "volume24hr": float("inf"),
        "endDate": float("inf"),
        "startDate": 1e20,
    }
    m = normalize(raw, "gamma", rng=random.Random(2), now=42)
    assert m.market_id == "77"
    assert m.volume == 0.0
    assert m.end_date is None
    assert m.created_at == 42
