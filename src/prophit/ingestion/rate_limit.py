"""Minimum-delay rate limiter and JSON fetcher for upstream REST APIs."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

import httpx
import structlog

from prophit.errors import FetchError

log = structlog.get_logger(__name__)

DEFAULT_DELAY_MS = 1000
DEFAULT_TIMEOUT_SEC = 10.0


class MinDelayLimiter:
    """Spaces consecutive calls at least ``delay_ms`` apart (no burst)."""

    def __init__(
        self,
        delay_ms: int = DEFAULT_DELAY_MS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.delay_sec = max(0, delay_ms) / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None
        self._lock = asyncio.Lock()

    async def wait(self) -> float:
        """Block until the delay since the previous call has passed. Return seconds waited."""
        async with self._lock:
            waited = 0.0
            if self._last is not None:
                elapsed = self._clock() - self._last
                if elapsed < self.delay_sec:
                    waited = self.delay_sec - elapsed
                    await self._sleep(waited)
            self._last = self._clock()
            return waited


class RateLimitedFetcher:
    """Serialized GET-and-decode with a minimum inter-request delay.

    Errors propagate to the caller; retry and source fallback are the caller's job.
    """

    def __init__(
        self,
        delay_ms: int = DEFAULT_DELAY_MS,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        user_agent: str = "Prophit/1.0",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.delay_ms = delay_ms
        self.timeout = timeout
        self._limiter = MinDelayLimiter(delay_ms, clock=clock, sleep=sleep)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json", "User-Agent": user_agent},
        )
        self.request_count = 0
        self.last_request_at: int | None = None  # ms epoch

    async def fetch(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET url and return decoded JSON. Raises httpx errors or FetchError."""
        await self._limiter.wait()
        self.request_count += 1
        self.last_request_at = int(time.time() * 1000)
        try:
            resp = await self._client.get(url, params=params, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            log.warning("request_failed", url=url, error=str(e))
            raise
        try:
            return resp.json()
        except ValueError as e:
            log.warning("invalid_json", url=url, status=resp.status_code)
            raise FetchError(f"Invalid JSON from {url}") from e

    def stats(self) -> dict[str, Any]:
        return {
            "request_count": self.request_count,
            "last_request_at": self.last_request_at,
            "rate_limit_delay_ms": self.delay_ms,
        }

    async def aclose(self) -> None:
        await self._client.aclose()
