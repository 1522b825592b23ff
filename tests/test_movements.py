"""Movement detection and deduplication."""

import pytest

from conftest import HOUR_MS, NOW

from prophit.metrics.movements import MovementDetector, change_percent
from prophit.models import Outcome

MINUTE_MS = 60 * 1000


def _record(storage, prices, market_id="m1", outcome="Yes", start=NOW - 30 * MINUTE_MS, step=5 * MINUTE_MS):
    for i, price in enumerate(prices):
        storage.append_price_history(market_id, [Outcome(name=outcome, price=price)], timestamp=start + i * step)


def test_change_percent():
    assert change_percent(0.30, 0.45) == pytest.approx(50.0)
    assert change_percent(0.5, 0.4) == pytest.approx(-20.0)
    assert change_percent(0.0, 0.4) is None


def test_fires_at_threshold_10_not_60(storage):
    _record(storage, [0.30, 0.45])
    fired = MovementDetector(storage, threshold_percent=10).detect("m1", now=NOW)
    assert len(fired) == 1
    m = fired[0]
    assert m.outcome == "Yes"
    assert m.change_percent == pytest.approx(50.0)
    assert (m.old_price, m.new_price) == (0.30, 0.45)
    assert m.detected_at == NOW
    assert MovementDetector(storage, threshold_percent=60).detect("m1", now=NOW) == []


def test_single_sample_never_fires(storage):
    _record(storage, [0.30])
    assert MovementDetector(storage).detect("m1", now=NOW) == []


def test_zero_earliest_price_is_ignored(storage):
    _record(storage, [0.0, 0.5])
    assert MovementDetector(storage).detect("m1", now=NOW) == []


def test_uses_first_and_last_by_time_not_extremes(storage):
    _record(storage, [0.50, 0.90, 0.52])
    assert MovementDetector(storage, threshold_percent=10).detect("m1", now=NOW) == []


def test_drop_fires_and_outside_window_ignored(storage):
    # 0.10 is two hours old and outside the one-hour window
    storage.append_price_history("m1", [Outcome(name="No", price=0.10)], timestamp=NOW - 2 * HOUR_MS)
    _record(storage, [0.50, 0.40], outcome="No")
    fired = MovementDetector(storage, threshold_percent=10).detect("m1", now=NOW)
    assert [(m.outcome, round(m.change_percent, 6)) for m in fired] == [("No", -20.0)]


def test_one_movement_per_outcome(storage):
    _record(storage, [0.30, 0.40, 0.50, 0.60], outcome="Yes")
    _record(storage, [0.70, 0.60, 0.50, 0.40], outcome="No")
    fired = MovementDetector(storage, threshold_percent=10).detect("m1", now=NOW)
    assert sorted(m.outcome for m in fired) == ["No", "Yes"]


def test_detect_and_store_dedupes_within_cooldown(storage):
    _record(storage, [0.30, 0.45])
    detector = MovementDetector(storage, threshold_percent=10, dedupe_minutes=60)
    first = detector.detect_and_store("m1", now=NOW)
    assert len(first) == 1 and first[0].id is not None
    assert detector.detect_and_store("m1", now=NOW + MINUTE_MS) == []
    assert len(storage.list_movements(now=NOW + MINUTE_MS)) == 1

    # After the cooldown a fresh move alerts again
    later = NOW + 61 * MINUTE_MS
    _record(storage, [0.45, 0.60], start=later - 20 * MINUTE_MS)
    again = detector.detect_and_store("m1", now=later)
    assert len(again) == 1
    assert len(storage.list_movements(now=later)) == 2


def test_dedupe_disabled(storage):
    _record(storage, [0.30, 0.45])
    detector = MovementDetector(storage, threshold_percent=10, dedupe_minutes=0)
    assert len(detector.detect_and_store("m1", now=NOW)) == 1
    assert len(detector.detect_and_store("m1", now=NOW)) == 1
    assert len(storage.list_movements(now=NOW)) == 2
