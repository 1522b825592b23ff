"""Synthetic markets used when every upstream source fails (degraded mode)."""

from __future__ import annotations

import random
import time

from prophit.ingestion.outcomes import binary_outcomes
from prophit.ingestion.polymarket.normalize import create_slug
from prophit.models import Market

SOURCE_MOCK = "mock"

MOCK_QUESTIONS: tuple[tuple[str, str], ...] = (
    ("Will Trump win the 2024 Presidential Election?", "Politics"),
    ("Will Bitcoin reach $100,000 by end of 2024?", "Cryptocurrency"),
    ("Will there be a recession in 2024?", "Economics"),
    ("Will AI achieve AGI by 2025?", "Technology"),
    ("Will Tesla stock hit $300 in 2024?", "Economics"),
)

_DAY_MS = 24 * 60 * 60 * 1000


class MockSource:
    """Fixed question list with stable ids and random Yes/No prices."""

    name = SOURCE_MOCK

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    async def fetch_markets(self, limit: int = 50) -> list[Market]:
        return mock_markets(limit, self.rng)


def mock_markets(limit: int, rng: random.Random, now: int | None = None) -> list[Market]:
    now = now if now is not None else int(time.time() * 1000)
    markets = []
    for index, (question, category) in enumerate(MOCK_QUESTIONS[: max(0, limit)]):
        markets.append(
            Market(
                market_id=f"mock-market-{index + 1}",
                question=question,
                slug=create_slug(question),
                category=category,
                outcomes=binary_outcomes(rng, 0.2, 0.8),
                volume=rng.uniform(10_000, 510_000),
                active=True,
                end_date=now + int(rng.random() * 365 * _DAY_MS),
                created_at=now - int(rng.random() * 30 * _DAY_MS),
                updated_at=now,
                source=SOURCE_MOCK,
            )
        )
    return markets
