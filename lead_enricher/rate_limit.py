"""Utilities for throttling and issuing outbound provider calls."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

_THROTTLE_STEP_SECONDS = 0.5
_THROTTLE_MAX_SECONDS = 2.0
_BACKOFF_BASE_SECONDS = 1.0
_BACKOFF_MAX_SECONDS = 5.0


class ProviderError(RuntimeError):
    """Raised when an outbound call fails before a response is received."""


class ProviderTimeout(ProviderError):
    """Raised when an outbound call exceeds its timeout."""


class RateLimiter:
    """Enforces a minimum interval between consecutive calls.

    The limiter holds the only "last call" cursor shared by the stages that use
    it. It is not locked: callers run on a single event loop and never issue
    two calls at once.
    """

    def __init__(
        self,
        calls_per_minute: Optional[float],
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._interval = 60.0 / float(calls_per_minute) if calls_per_minute else 0.0
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self._consecutive_throttles = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def consecutive_throttles(self) -> int:
        return self._consecutive_throttles

    def _penalty(self) -> float:
        if not self._consecutive_throttles:
            return 0.0
        return min(self._consecutive_throttles * _THROTTLE_STEP_SECONDS, _THROTTLE_MAX_SECONDS)

    async def acquire(self) -> None:
        spacing = self._interval + self._penalty()
        now = self._clock()
        if self._last_call is not None and spacing > 0:
            wait = self._last_call + spacing - now
            if wait > 0:
                if self._consecutive_throttles:
                    LOGGER.info(
                        "Waiting %.2fs before next call (%s consecutive 429s)", wait, self._consecutive_throttles
                    )
                await self._sleep(wait)
                now = self._clock()
        self._last_call = now

    def record_throttle(self) -> None:
        self._consecutive_throttles += 1

    def reset_throttle(self) -> None:
        self._consecutive_throttles = 0


@dataclass
class ProviderRequest:
    """Description of one outbound provider call."""

    name: str
    url: str
    method: str = "GET"
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    json: Any = None
    timeout: Optional[float] = None


@dataclass
class ProviderResponse:
    """Status and decoded body of a provider response."""

    name: str
    status_code: int
    payload: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429

    def error_message(self) -> str:
        detail = ""
        if isinstance(self.payload, Mapping):
            detail = str(self.payload.get("error") or self.payload.get("message") or "")
        if not detail:
            detail = self.text.strip()[:200] or "Failed to enrich"
        return f"{self.name}: HTTP {self.status_code} {detail}"


class RateLimitedClient:
    """Async HTTP client applying a shared rate limiter and per-call timeouts."""

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        *,
        timeout: float = 30.0,
        base_headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_on_rate_limit: int = 0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._rate_limiter = rate_limiter or RateLimiter(None)
        self._timeout = timeout
        self._retry_on_rate_limit = max(int(retry_on_rate_limit), 0)
        self._sleep = sleep
        self._client = httpx.AsyncClient(headers=dict(base_headers or {}), transport=transport)

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def __aenter__(self) -> "RateLimitedClient":
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(self, request: ProviderRequest) -> ProviderResponse:
        """Issue ``request`` after the limiter allows it.

        Non-2xx responses are returned to the caller. HTTP 429 is only retried
        when the client was built with ``retry_on_rate_limit``.
        """

        attempts = 0
        while True:
            response = await self._send(request)
            if not response.rate_limited:
                self._rate_limiter.reset_throttle()
                return response

            self._rate_limiter.record_throttle()
            if attempts >= self._retry_on_rate_limit:
                LOGGER.warning("%s rate limited (429)", request.name)
                return response

            backoff = min(
                _BACKOFF_BASE_SECONDS * (1.5 ** (self._rate_limiter.consecutive_throttles - 1)),
                _BACKOFF_MAX_SECONDS,
            )
            LOGGER.warning("%s rate limited (429), retrying in %.1fs", request.name, backoff)
            await self._sleep(backoff)
            attempts += 1

    async def _send(self, request: ProviderRequest) -> ProviderResponse:
        await self._rate_limiter.acquire()
        timeout = request.timeout if request.timeout is not None else self._timeout
        LOGGER.debug("Calling %s at %s", request.name, request.url)
        try:
            response = await self._client.request(
                request.method,
                request.url,
                params=request.params or None,
                headers=request.headers or None,
                json=request.json,
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderTimeout(f"{request.name}: Request timeout after {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{request.name}: {exc}") from exc

        LOGGER.debug("%s response status: %s", request.name, response.status_code)
        return ProviderResponse(
            name=request.name,
            status_code=response.status_code,
            payload=_decode_json(response),
            text=response.text,
        )


def _decode_json(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
