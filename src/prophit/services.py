"""Builds every pipeline component once at process entry."""

from __future__ import annotations

import random
from dataclasses import dataclass

import httpx
import structlog

from prophit.config import Settings
from prophit.ingestion.manager import IngestionManager, MarketSource
from prophit.ingestion.mock import MockSource
from prophit.ingestion.polymarket.clob import ClobSource
from prophit.ingestion.polymarket.gamma import GammaSource
from prophit.ingestion.rate_limit import RateLimitedFetcher
from prophit.ingestion.scheduler import PollingScheduler
from prophit.metrics.movements import MovementDetector
from prophit.storage import Storage, open_storage

log = structlog.get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    storage: Storage
    fetcher: RateLimitedFetcher
    detector: MovementDetector
    manager: IngestionManager
    scheduler: PollingScheduler

    async def aclose(self) -> None:
        self.scheduler.stop()
        await self.scheduler.wait()
        await self.fetcher.aclose()
        self.storage.close()


def build_services(
    settings: Settings,
    *,
    storage: Storage | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    rng: random.Random | None = None,
) -> Services:
    """Wire storage, fetcher, sources, detector, manager and scheduler together."""
    rng = rng or random.Random()
    storage = storage or open_storage(settings)
    fetcher = RateLimitedFetcher(
        delay_ms=settings.rate_limit_delay_ms,
        timeout=settings.request_timeout_sec,
        user_agent=settings.user_agent,
        transport=transport,
    )
    sources: list[MarketSource] = []
    if settings.has_credentials:
        log.info("clob_credentials_configured")
        sources.append(
            ClobSource(
                fetcher,
                api_key=settings.api_key,
                secret=settings.api_secret,
                passphrase=settings.api_passphrase,
                base_url=settings.clob_api_base,
                rng=rng,
            )
        )
    else:
        log.info("clob_credentials_missing", msg="Using public Gamma API only")
    sources.append(GammaSource(fetcher, base_url=settings.gamma_api_base, rng=rng))

    detector = MovementDetector(
        storage,
        threshold_percent=settings.movement_threshold_percent,
        window_hours=settings.movement_window_hours,
        dedupe_minutes=settings.movement_dedupe_minutes,
    )
    manager = IngestionManager(
        storage,
        fetcher,
        sources,
        detector,
        fallback=MockSource(rng),
        authenticated=settings.has_credentials,
    )
    scheduler = PollingScheduler(
        lambda: manager.process_markets(settings.market_limit),
        interval_minutes=settings.poll_interval_minutes,
        initial_delay_sec=settings.poll_initial_delay_sec,
    )
    return Services(
        settings=settings,
        storage=storage,
        fetcher=fetcher,
        detector=detector,
        manager=manager,
        scheduler=scheduler,
    )
