"""Keyword heuristics mapping upstream categories and market titles to a fixed taxonomy."""

from __future__ import annotations

CATEGORIES = (
    "Politics",
    "Sports",
    "Cryptocurrency",
    "Economics",
    "Technology",
    "Entertainment",
    "Other",
)

DEFAULT_CATEGORY = "Other"

# Upstream category keyword -> tag. Order matters for the substring pass.
CATEGORY_MAP: dict[str, str] = {
    "politics": "Politics",
    "political": "Politics",
    "election": "Politics",
    "government": "Politics",
    "sports": "Sports",
    "sport": "Sports",
    "football": "Sports",
    "baseball": "Sports",
    "basketball": "Sports",
    "soccer": "Sports",
    "crypto": "Cryptocurrency",
    "cryptocurrency": "Cryptocurrency",
    "bitcoin": "Cryptocurrency",
    "ethereum": "Cryptocurrency",
    "economics": "Economics",
    "economic": "Economics",
    "finance": "Economics",
    "market": "Economics",
    "technology": "Technology",
    "tech": "Technology",
    "ai": "Technology",
    "entertainment": "Entertainment",
    "culture": "Entertainment",
}

# Title keyword buckets, first match wins.
TITLE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Sports",
        (
            "nfl", "nba", "mlb", "vs.", "vs ", "beat", "super bowl", "world series",
            "premier league", "champions league", "ufc", "f1", "tennis",
            "open winner", "championship",
        ),
    ),
    (
        "Politics",
        (
            "election", "president", "trump", "biden", "congress", "senate",
            "governor", "mayor", "political", "democrat", "republican", "vote",
        ),
    ),
    (
        "Cryptocurrency",
        ("bitcoin", "ethereum", "crypto", "btc", "eth", "blockchain"),
    ),
    (
        "Economics",
        (
            "fed", "interest rate", "recession", "inflation", "gdp", "stock",
            "market", "economy", "price",
        ),
    ),
    (
        "Entertainment",
        ("movie", "box office", "oscar", "emmy", "grammy", "netflix", "conjuring", "film"),
    ),
)

_UNUSABLE_HINTS = {"", "undefined", "null", "none"}


def _usable(hint: str | None) -> bool:
    return hint is not None and hint.strip().lower() not in _UNUSABLE_HINTS


def normalize_category(category: str) -> str:
    """Map an upstream category string onto the taxonomy.

    Exact keyword match first, then substring match in either direction,
    then the title keyword buckets (hints like "nfl week 3"), finally the
    raw value with only its first letter capitalized.
    """
    normalized = category.lower().strip()
    if normalized in CATEGORY_MAP:
        return CATEGORY_MAP[normalized]
    for key, tag in CATEGORY_MAP.items():
        if key in normalized or normalized in key:
            return tag
    tag = _match_keywords(normalized)
    if tag is not None:
        return tag
    category = category.strip()
    return category[:1].upper() + category[1:].lower()


def _match_keywords(text: str) -> str | None:
    for tag, keywords in TITLE_KEYWORDS:
        if any(k in text for k in keywords):
            return tag
    return None


def infer_category_from_title(title: str | None) -> str:
    """Scan the title against the keyword buckets; 'Other' when nothing matches."""
    if not title:
        return DEFAULT_CATEGORY
    return _match_keywords(title.lower()) or DEFAULT_CATEGORY


def classify(category_hint: str | None = None, title: str | None = None) -> str:
    """Return a category tag from an upstream hint, falling back to the title."""
    if _usable(category_hint):
        return normalize_category(category_hint)
    return infer_category_from_title(title)
