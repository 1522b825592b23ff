"""Polymarket Gamma API client - public event listing."""

from __future__ import annotations

import random
from typing import Any

import structlog

from prophit.errors import SourceUnavailableError
from prophit.ingestion.polymarket.normalize import SOURCE_GAMMA, normalize
from prophit.ingestion.rate_limit import RateLimitedFetcher
from prophit.models import Market

log = structlog.get_logger(__name__)

GAMMA_API_BASE = "https://gamma-api.polymarket.com"


class GammaSource:
    """Public aggregator source: /events ordered by 24h volume."""

    name = SOURCE_GAMMA

    def __init__(
        self,
        fetcher: RateLimitedFetcher,
        base_url: str = GAMMA_API_BASE,
        rng: random.Random | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")
        self.rng = rng or random.Random()

    async def fetch_markets(self, limit: int = 50) -> list[Market]:
        url = self.base_url if self.base_url.endswith("/events") else self.base_url + "/events"
        params = {
            "limit": limit,
            "active": "true",
            "archived": "false",
            "order": "volume24hr",
            "ascending": "false",
        }
        data = await self.fetcher.fetch(url, params=params)
        if not isinstance(data, list):
            raise SourceUnavailableError("Invalid Gamma API response")
        return parse_events(data, self.rng)


def parse_events(rows: list[Any], rng: random.Random) -> list[Market]:
    """Normalize Gamma events, skipping records without a usable title."""
    markets = []
    for row in rows:
        try:
            market = normalize(row, SOURCE_GAMMA, rng=rng)
        except (TypeError, ValueError, ArithmeticError) as e:
            event_id = row.get("id") if isinstance(row, dict) else None
            log.warning("skip_event", event_id=event_id, error=str(e))
            continue
        if market is not None:
            markets.append(market)
    return markets
