"""Ingestion orchestrator - source fallback chain, persistence, movement detection."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Protocol

import httpx
import structlog

from prophit.errors import ProphitError
from prophit.ingestion.mock import MockSource
from prophit.ingestion.rate_limit import RateLimitedFetcher
from prophit.metrics.movements import MovementDetector
from prophit.models import Market
from prophit.storage import Storage

log = structlog.get_logger(__name__)


class MarketSource(Protocol):
    """One upstream: fetch and normalize up to ``limit`` markets, or raise."""

    name: str

    async def fetch_markets(self, limit: int = 50) -> list[Market]: ...


# Failures that send the chain to the next source
SOURCE_ERRORS = (httpx.HTTPError, ProphitError, ValueError, TypeError, KeyError)


@dataclass
class CycleResult:
    markets: int
    movements: int
    source: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class IngestionManager:
    """Fetches markets through the source chain and persists them with their prices.

    Sources are tried in order; the mock source is the final fallback so the
    rest of the pipeline always has input.
    """

    def __init__(
        self,
        storage: Storage,
        fetcher: RateLimitedFetcher,
        sources: list[MarketSource],
        detector: MovementDetector,
        fallback: MarketSource | None = None,
        authenticated: bool = False,
    ):
        self.storage = storage
        self.fetcher = fetcher
        self.sources = sources
        self.detector = detector
        self.fallback = fallback or MockSource()
        self.authenticated = authenticated
        self.last_source: str | None = None

    async def _fetch_from_sources(self, limit: int) -> tuple[list[Market], str]:
        for source in self.sources:
            try:
                markets = await source.fetch_markets(limit)
            except SOURCE_ERRORS as e:
                log.warning("source_failed", source=source.name, error=str(e))
                continue
            return markets, source.name
        log.error("all_sources_failed", fallback=self.fallback.name)
        return await self.fallback.fetch_markets(limit), self.fallback.name

    async def fetch_active_markets(self, limit: int = 50) -> list[Market]:
        """Fetch, upsert each market, append its current prices to history."""
        markets, source = await self._fetch_from_sources(limit)
        self.last_source = source
        for market in markets:
            self.storage.save_market(market)
            if market.outcomes:
                self.storage.append_price_history(market.market_id, market.outcomes)
        log.info("markets_processed", source=source, count=len(markets))
        return markets

    async def process_markets(self, limit: int = 50) -> CycleResult:
        """One poll cycle: fetch + persist, then detect movements per market."""
        markets = await self.fetch_active_markets(limit)
        movements = 0
        for market in markets:
            movements += len(self.detector.detect_and_store(market.market_id))
        return CycleResult(markets=len(markets), movements=movements, source=self.last_source or "")

    def stats(self) -> dict[str, Any]:
        return {
            **self.fetcher.stats(),
            "api_configured": self.authenticated,
            "using_clob": self.authenticated,
            "last_source": self.last_source,
        }
