import asyncio

import httpx
import pytest

from lead_enricher.rate_limit import (
    ProviderError,
    ProviderRequest,
    ProviderTimeout,
    RateLimitedClient,
    RateLimiter,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(round(seconds, 6))
        self.now += seconds


def test_rate_limiter_spaces_consecutive_calls() -> None:
    clock = FakeClock()
    limiter = RateLimiter(240, clock=clock, sleep=clock.sleep)

    async def scenario() -> None:
        await limiter.acquire()
        await limiter.acquire()
        clock.now += 1.0
        await limiter.acquire()

    asyncio.run(scenario())

    assert limiter.interval == pytest.approx(0.25)
    assert clock.sleeps == [0.25]


def test_rate_limiter_adds_capped_penalty_after_throttling() -> None:
    clock = FakeClock()
    limiter = RateLimiter(240, clock=clock, sleep=clock.sleep)

    async def scenario() -> None:
        await limiter.acquire()
        limiter.record_throttle()
        limiter.record_throttle()
        await limiter.acquire()
        for _ in range(10):
            limiter.record_throttle()
        await limiter.acquire()
        limiter.reset_throttle()
        await limiter.acquire()

    asyncio.run(scenario())

    assert clock.sleeps == [1.25, 2.25, 0.25]


def test_rate_limiter_without_limit_never_sleeps() -> None:
    clock = FakeClock()
    limiter = RateLimiter(None, clock=clock, sleep=clock.sleep)

    async def scenario() -> None:
        for _ in range(3):
            await limiter.acquire()

    asyncio.run(scenario())
    assert clock.sleeps == []


def _client(handler, clock: FakeClock, **kwargs) -> RateLimitedClient:
    limiter = RateLimiter(None, clock=clock, sleep=clock.sleep)
    return RateLimitedClient(limiter, transport=httpx.MockTransport(handler), sleep=clock.sleep, **kwargs)


def test_client_returns_parsed_payload_and_non_2xx_responses() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/ok":
            return httpx.Response(200, json={"value": 1})
        return httpx.Response(503, text="service down")

    clock = FakeClock()

    async def scenario():
        async with _client(handler, clock) as client:
            ok = await client.call(ProviderRequest(name="Test", url="https://api.example.com/ok"))
            failed = await client.call(ProviderRequest(name="Test", url="https://api.example.com/down"))
        return ok, failed

    ok, failed = asyncio.run(scenario())

    assert ok.ok and ok.payload == {"value": 1}
    assert not failed.ok
    assert failed.payload is None
    assert failed.error_message() == "Test: HTTP 503 service down"


def test_client_maps_timeouts_and_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/slow":
            raise httpx.ReadTimeout("timed out", request=request)
        raise httpx.ConnectError("refused", request=request)

    clock = FakeClock()

    async def scenario() -> None:
        async with _client(handler, clock, timeout=30.0) as client:
            with pytest.raises(ProviderTimeout, match="Request timeout after 30s"):
                await client.call(ProviderRequest(name="Slow", url="https://api.example.com/slow"))
            with pytest.raises(ProviderError, match="refused"):
                await client.call(ProviderRequest(name="Down", url="https://api.example.com/down"))

    asyncio.run(scenario())


def test_client_does_not_retry_rate_limited_calls_by_default() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(429, json={"message": "Too many requests"})

    clock = FakeClock()

    async def scenario():
        async with _client(handler, clock) as client:
            response = await client.call(ProviderRequest(name="Busy", url="https://api.example.com/busy"))
            return response, client.rate_limiter.consecutive_throttles

    response, throttles = asyncio.run(scenario())

    assert response.rate_limited
    assert calls == ["/busy"]
    assert throttles == 1


def test_client_retries_rate_limited_calls_with_backoff_when_enabled() -> None:
    statuses = [429, 429, 200]

    def handler(request: httpx.Request) -> httpx.Response:
        status = statuses.pop(0)
        return httpx.Response(status, json={"ok": status == 200})

    clock = FakeClock()

    async def scenario():
        async with _client(handler, clock, retry_on_rate_limit=3) as client:
            response = await client.call(ProviderRequest(name="Busy", url="https://api.example.com/busy"))
            return response, client.rate_limiter.consecutive_throttles

    response, throttles = asyncio.run(scenario())

    assert response.ok
    assert throttles == 0
    assert clock.sleeps == [1.0, 1.5]


def test_client_uses_per_request_timeout() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.extensions["timeout"])
        return httpx.Response(200, json={})

    clock = FakeClock()

    async def scenario() -> None:
        async with _client(handler, clock, timeout=30.0) as client:
            await client.call(ProviderRequest(name="Details", url="https://api.example.com/d", timeout=60.0))

    asyncio.run(scenario())
    assert seen["read"] == 60.0
