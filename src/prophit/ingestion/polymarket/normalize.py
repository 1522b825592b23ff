"""Polymarket CLOB market / Gamma event -> canonical Market."""

from __future__ import annotations

import math
import random
import re
import time
from datetime import datetime, timezone
from typing import Any

import structlog

from prophit.ingestion.categories import classify
from prophit.ingestion.outcomes import resolve_outcomes
from prophit.models import Market

log = structlog.get_logger(__name__)

SOURCE_CLOB = "clob"
SOURCE_GAMMA = "gamma"

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACE_RE = re.compile(r"\s+")
SLUG_MAX_LEN = 50

# Range of the BIGINT (int64) timestamp columns
_MAX_TS_MS = 2**63 - 1
_MIN_TS_MS = -(2**63)


def now_ms() -> int:
    return int(time.time() * 1000)


def create_slug(text: str) -> str:
    """Lowercase, drop anything but [a-z0-9 whitespace -], whitespace -> '-', max 50 chars."""
    slug = _SLUG_STRIP_RE.sub("", text.strip().lower())
    slug = _SLUG_SPACE_RE.sub("-", slug)
    return slug[:SLUG_MAX_LEN]


def _float(s: Any) -> float:
    if s is None or isinstance(s, bool):
        return 0.0
    try:
        value = float(s)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) and value >= 0 else 0.0


def parse_timestamp_ms(value: Any) -> int | None:
    """ISO-8601 string or epoch number (seconds or ms) -> ms epoch. None when unparsable."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        # Heuristic: anything below 1e11 is seconds
        ms = int(value * 1000) if value < 1e11 else int(value)
        return ms if _MIN_TS_MS <= ms <= _MAX_TS_MS else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return parse_timestamp_ms(int(text))
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        try:
            return int(dt.timestamp() * 1000)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _is_active(raw: dict[str, Any]) -> bool:
    return bool(raw.get("active", True) is not False and not raw.get("closed", False))


def normalize_clob_market(
    raw: dict[str, Any],
    rng: random.Random,
    now: int | None = None,
) -> Market | None:
    """Authenticated CLOB /markets entry -> Market. None when there is no question."""
    question = _text(raw.get("question"))
    if not question:
        return None
    now = now if now is not None else now_ms()
    outcomes = resolve_outcomes(raw, question, rng)
    return Market(
        market_id=str(raw.get("condition_id") or raw.get("id") or f"clob-{now}"),
        question=question,
        slug=_text(raw.get("market_slug")) or _text(raw.get("slug")) or create_slug(question),
        category=classify(_text(raw.get("category")) or None, question),
        outcomes=outcomes,
        volume=_float(raw.get("volume") or raw.get("volume24hr")),
        active=_is_active(raw),
        end_date=parse_timestamp_ms(raw.get("end_date_iso") or raw.get("end_date")),
        created_at=parse_timestamp_ms(raw.get("start_date")) or now,
        updated_at=now,
        source=SOURCE_CLOB,
    )


def _gamma_category_hint(raw: dict[str, Any]) -> str | None:
    hint = _text(raw.get("category"))
    if hint:
        return hint
    tags = raw.get("tags")
    if isinstance(tags, list):
        for tag in tags:
            if isinstance(tag, dict) and _text(tag.get("label")):
                return _text(tag.get("label"))
    return None


def normalize_gamma_event(
    raw: dict[str, Any],
    rng: random.Random,
    now: int | None = None,
) -> Market | None:
    """Public Gamma /events entry -> Market. None when there is no title."""
    title = _text(raw.get("title"))
    if not title:
        return None
    now = now if now is not None else now_ms()
    outcomes = resolve_outcomes(raw, title, rng)
    category = classify(_gamma_category_hint(raw), title)
    log.debug(
        "gamma_event_normalized",
        title=title[:50],
        outcomes=[o.name for o in outcomes],
        category=category,
    )
    return Market(
        market_id=str(raw.get("id") or f"gamma-{now}"),
        question=title,
        slug=_text(raw.get("slug")) or create_slug(title),
        category=category,
        outcomes=outcomes,
        volume=_float(raw.get("volume24hr")),
        active=_is_active(raw),
        end_date=parse_timestamp_ms(raw.get("endDateIso") or raw.get("endDate")),
        created_at=parse_timestamp_ms(raw.get("startDateIso") or raw.get("startDate")) or now,
        updated_at=now,
        source=SOURCE_GAMMA,
    )


_NORMALIZERS = {
    SOURCE_CLOB: normalize_clob_market,
    SOURCE_GAMMA: normalize_gamma_event,
}


def normalize(
    raw: Any,
    source: str,
    *,
    rng: random.Random | None = None,
    now: int | None = None,
) -> Market | None:
    """Convert one upstream record to a Market; None means skip the record."""
    if not isinstance(raw, dict):
        return None
    try:
        normalizer = _NORMALIZERS[source]
    except KeyError:
        raise ValueError(f"Unknown market source: {source}") from None
    return normalizer(raw, rng or random.Random(), now)
