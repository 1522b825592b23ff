"""Outcome/price extraction from upstream payloads - ordered fallback strategies.

Each strategy takes ``(raw, title, rng)`` and returns an ``OutcomeResult`` or
``None`` when it does not apply. ``resolve_outcomes`` walks them in order:

(a) explicit outcomes carrying prices,
(b) JSON-encoded outcome names with synthesized prices,
(c) two names pulled from the title ("X vs Y", election/winner phrasing),
(d) default binary Yes/No.

Synthesized prices are a placeholder for missing upstream prices, not a
market-accurate computation: the first outcome draws uniformly from
[0.3, 0.7] and every later outcome gets ``1 - sum(previous)`` clamped to
[0.01, 0.99].
"""

from __future__ import annotations

import json
import random
import re
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from prophit.models import Outcome

MIN_SYNTH_PRICE = 0.01
MAX_SYNTH_PRICE = 0.99

_VS_RE = re.compile(r"(\w+(?:\s+\w+)*)\s+vs\.?\s+(\w+(?:\s+\w+)*)", re.IGNORECASE)
_VS_OR_RE = re.compile(r"(\w+(?:\s+\w+)*)\s+(?:vs\.?\s+|or\s+)(\w+(?:\s+\w+)*)", re.IGNORECASE)


@dataclass(frozen=True)
class OutcomeResult:
    outcomes: list[Outcome]
    synthesized: bool = False

    @property
    def is_generic_binary(self) -> bool:
        return [o.name for o in self.outcomes] == ["Yes", "No"]


OutcomeStrategy = Callable[[dict[str, Any], str, random.Random], "OutcomeResult | None"]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def parse_price(value: Any) -> float | None:
    """Float in [0, 1] from a number or numeric string; None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if price != price:  # NaN
        return None
    return clamp(price, 0.0, 1.0)


def _load_list(value: Any) -> list[Any] | None:
    """Accept a list or a JSON-encoded list (Gamma encodes arrays as strings)."""
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value:
        try:
            loaded = json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return None
        return loaded if isinstance(loaded, list) else None
    return None


def _dedupe(outcomes: list[Outcome]) -> list[Outcome]:
    seen: set[str] = set()
    out = []
    for o in outcomes:
        if o.name in seen:
            continue
        seen.add(o.name)
        out.append(o)
    return out


def synthesize_prices(names: Sequence[str], rng: random.Random) -> list[Outcome]:
    """Placeholder distribution for names without prices."""
    outcomes: list[Outcome] = []
    total = 0.0
    for index, name in enumerate(names):
        if index == 0:
            price = rng.uniform(0.3, 0.7)
        else:
            price = 1 - total
        price = clamp(price, MIN_SYNTH_PRICE, MAX_SYNTH_PRICE)
        total += price
        outcomes.append(Outcome(name=name, price=price))
    return outcomes


def binary_outcomes(rng: random.Random, low: float = 0.3, high: float = 0.7) -> list[Outcome]:
    yes = rng.uniform(low, high)
    return [Outcome(name="Yes", price=yes), Outcome(name="No", price=1 - yes)]


def extract_title_outcomes(title: str) -> list[str]:
    """Two outcome names from head-to-head or election/winner phrasing, else []."""
    if not title:
        return []
    match = _VS_RE.search(title)
    if match:
        return [match.group(1).strip(), match.group(2).strip()]
    lowered = title.lower()
    if "election" in lowered or "winner" in lowered:
        match = _VS_OR_RE.search(title)
        if match:
            return [match.group(1).strip(), match.group(2).strip()]
    return []


# --- strategies ---


def explicit_outcomes(raw: dict[str, Any], title: str, rng: random.Random) -> OutcomeResult | None:
    """(a) Outcome entries with price / last_price fields (CLOB), or Gamma names + outcomePrices."""
    entries = raw.get("outcomes")
    if not isinstance(entries, list) or not any(isinstance(e, dict) for e in entries):
        entries = raw.get("tokens")
    if isinstance(entries, list) and entries and any(isinstance(e, dict) for e in entries):
        outcomes = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name") or entry.get("title") or entry.get("outcome") or "Unknown"
            price = parse_price(entry.get("price"))
            if price is None:
                price = parse_price(entry.get("last_price"))
            if price is None:
                price = rng.uniform(0.2, 0.8)
            outcomes.append(Outcome(name=str(name), price=price))
        return OutcomeResult(_dedupe(outcomes)) if outcomes else None

    nested = _first_nested_market(raw)
    if nested is None:
        return None
    names = _load_list(nested.get("outcomes"))
    prices = _load_list(nested.get("outcomePrices"))
    if not names or not prices or len(names) != len(prices):
        return None
    parsed = [parse_price(p) for p in prices]
    if any(p is None for p in parsed):
        return None
    outcomes = [Outcome(name=str(n), price=p) for n, p in zip(names, parsed)]
    return OutcomeResult(_dedupe(outcomes))


def encoded_outcome_names(raw: dict[str, Any], title: str, rng: random.Random) -> OutcomeResult | None:
    """(b) JSON-encoded outcome-name array on the first nested market; prices synthesized."""
    nested = _first_nested_market(raw)
    if nested is None:
        return None
    names = _load_list(nested.get("outcomes"))
    if not names:
        return None
    labels = [str(n) if n else f"Option {i + 1}" for i, n in enumerate(names)]
    return OutcomeResult(_dedupe(synthesize_prices(labels, rng)), synthesized=True)


def title_outcomes(raw: dict[str, Any], title: str, rng: random.Random) -> OutcomeResult | None:
    """(c) Names parsed from the title; prices synthesized."""
    names = extract_title_outcomes(title)
    if not names:
        return None
    return OutcomeResult(_dedupe(synthesize_prices(names, rng)), synthesized=True)


def default_binary(raw: dict[str, Any], title: str, rng: random.Random) -> OutcomeResult:
    """(d) Yes/No with a synthesized Yes price."""
    return OutcomeResult(binary_outcomes(rng), synthesized=True)


DEFAULT_STRATEGIES: tuple[OutcomeStrategy, ...] = (
    explicit_outcomes,
    encoded_outcome_names,
    title_outcomes,
    default_binary,
)


def resolve_outcomes(
    raw: dict[str, Any],
    title: str,
    rng: random.Random,
    strategies: Sequence[OutcomeStrategy] = DEFAULT_STRATEGIES,
) -> list[Outcome]:
    """Run strategies in order and return the first usable outcome list.

    A synthesized generic Yes/No result is held back so a later strategy can
    replace it with named outcomes (e.g. team names from the title).
    """
    held: OutcomeResult | None = None
    for strategy in strategies:
        result = strategy(raw, title, rng)
        if result is None or not result.outcomes:
            continue
        if result.synthesized and result.is_generic_binary:
            if held is None:
                held = result
            continue
        return result.outcomes
    if held is not None:
        return held.outcomes
    return binary_outcomes(rng)


def _first_nested_market(raw: dict[str, Any]) -> dict[str, Any] | None:
    markets = raw.get("markets")
    if isinstance(markets, list) and markets and isinstance(markets[0], dict):
        return markets[0]
    return None
