"""Polymarket CLOB REST client - authenticated market listing."""

from __future__ import annotations

import random
from typing import Any

import structlog

from prophit.errors import SourceUnavailableError
from prophit.ingestion.polymarket.normalize import SOURCE_CLOB, normalize
from prophit.ingestion.rate_limit import RateLimitedFetcher
from prophit.models import Market

log = structlog.get_logger(__name__)

CLOB_API_BASE = "https://clob.polymarket.com"


class ClobSource:
    """Order-book source. Requires an API key and secret."""

    name = SOURCE_CLOB

    def __init__(
        self,
        fetcher: RateLimitedFetcher,
        api_key: str | None,
        secret: str | None,
        passphrase: str | None = None,
        base_url: str = CLOB_API_BASE,
        rng: random.Random | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.api_key = api_key
        self.secret = secret
        self.passphrase = passphrase
        self.base_url = base_url.rstrip("/")
        self.rng = rng or random.Random()

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.secret)

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-API-SECRET": self.secret or "",
        }
        if self.passphrase:
            headers["X-PASSPHRASE"] = self.passphrase
        return headers

    async def fetch_markets(self, limit: int = 50) -> list[Market]:
        if not self.configured:
            raise SourceUnavailableError("CLOB credentials not configured")
        data = await self.fetcher.fetch(
            f"{self.base_url}/markets",
            params={"limit": limit, "active": "true", "closed": "false"},
            headers=self._headers(),
        )
        # CLOB pages look like {"data": [...], "next_cursor": ...}
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            data = data["data"]
        if not isinstance(data, list):
            raise SourceUnavailableError("Invalid CLOB API response")
        log.info("clob_markets_found", count=len(data))
        return parse_markets(data[:limit], self.rng)


def parse_markets(rows: list[Any], rng: random.Random) -> list[Market]:
    """Normalize CLOB markets, skipping records without a question."""
    markets = []
    for row in rows:
        try:
            market = normalize(row, SOURCE_CLOB, rng=rng)
        except (TypeError, ValueError, ArithmeticError) as e:
            market_id = row.get("condition_id") if isinstance(row, dict) else None
            log.warning("skip_market", market_id=market_id, error=str(e))
            continue
        if market is not None:
            markets.append(market)
    return markets
