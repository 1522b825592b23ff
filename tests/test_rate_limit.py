"""Minimum-delay limiter and JSON fetcher."""

import asyncio

import httpx
import pytest

from prophit.errors import FetchError
from prophit.ingestion.rate_limit import MinDelayLimiter, RateLimitedFetcher


class FakeClock:
    """Monotonic clock that only moves when slept on or advanced."""

    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_limiter_waits_out_remaining_delay():
    clock = FakeClock()
    limiter = MinDelayLimiter(1000, clock=clock, sleep=clock.sleep)

    async def run():
        first = await limiter.wait()
        clock.now += 0.25
        second = await limiter.wait()
        clock.now += 2.0
        third = await limiter.wait()
        return first, second, third

    first, second, third = asyncio.run(run())
    assert first == 0.0
    assert second == pytest.approx(0.75)
    assert third == 0.0
    assert clock.sleeps == [pytest.approx(0.75)]


def test_fetch_spaces_requests_and_counts():
    clock = FakeClock()
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": "1"}])

    fetcher = RateLimitedFetcher(
        delay_ms=500,
        user_agent="test-agent",
        transport=httpx.MockTransport(handler),
        clock=clock,
        sleep=clock.sleep,
    )

    async def run():
        try:
            a = await fetcher.fetch("https://example.test/events", params={"limit": 2})
            b = await fetcher.fetch("https://example.test/events", headers={"X-Test": "1"})
            return a, b
        finally:
            await fetcher.aclose()

    a, b = asyncio.run(run())
    assert a == b == [{"id": "1"}]
    assert fetcher.request_count == 2
    assert fetcher.last_request_at is not None
    assert clock.sleeps == [pytest.approx(0.5)]
    assert seen[0].url.params["limit"] == "2"
    assert seen[0].headers["user-agent"] == "test-agent"
    assert seen[1].headers["x-test"] == "1"


def test_non_2xx_raises_without_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"error": "down"})

    fetcher = RateLimitedFetcher(delay_ms=0, transport=httpx.MockTransport(handler))

    async def run():
        try:
            await fetcher.fetch("https://example.test/events")
        finally:
            await fetcher.aclose()

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(run())
    assert len(calls) == 1
    assert fetcher.request_count == 1


def test_invalid_json_raises_fetch_error():
    fetcher = RateLimitedFetcher(
        delay_ms=0,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>")),
    )

    async def run():
        try:
            await fetcher.fetch("https://example.test/events")
        finally:
            await fetcher.aclose()

    with pytest.raises(FetchError):
        asyncio.run(run())


def test_stats():
    fetcher = RateLimitedFetcher(delay_ms=250)
    stats = fetcher.stats()
    assert stats == {"request_count": 0, "last_request_at": None, "rate_limit_delay_ms": 250}
    asyncio.run(fetcher.aclose())
