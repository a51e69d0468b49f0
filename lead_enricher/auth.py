"""Bearer token providers for the DNC scrub service."""
from __future__ import annotations

import logging
import os
import time
from typing import Callable, Optional, Protocol

import jwt

LOGGER = logging.getLogger(__name__)

# Tokens this close to expiry are treated as already expired.
_EXPIRY_MARGIN_SECONDS = 60


class TokenProvider(Protocol):
    """Anything able to hand out a bearer token, possibly refreshing it."""

    async def get_token(self, force_refresh: bool = False) -> Optional[str]:  # pragma: no cover - protocol
        ...


def token_expiry(token: str) -> Optional[float]:
    """Return the ``exp`` claim of a JWT, or ``None`` when it carries none.

    Raises :class:`jwt.InvalidTokenError` when ``token`` is not a JWT.
    """

    claims = jwt.decode(token, options={"verify_signature": False})
    exp = claims.get("exp")
    return float(exp) if exp is not None else None


def is_usable(token: Optional[str], *, now: Optional[float] = None) -> bool:
    if not token:
        return False
    try:
        expiry = token_expiry(token)
    except jwt.InvalidTokenError:
        LOGGER.warning("Bearer token is not a valid JWT")
        return False
    if expiry is None:
        return True
    current = time.time() if now is None else now
    return expiry - _EXPIRY_MARGIN_SECONDS > current


class StaticTokenProvider:
    """Returns a fixed token; a forced refresh cannot produce a new one."""

    def __init__(self, token: Optional[str]) -> None:
        self._token = token or None

    async def get_token(self, force_refresh: bool = False) -> Optional[str]:
        if force_refresh:
            return None
        return self._token


class EnvTokenProvider:
    """Reads the token from an environment variable and caches it until expiry."""

    def __init__(
        self,
        variable: str = "USHA_JWT_TOKEN",
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._variable = variable
        self._clock = clock
        self._cached: Optional[str] = None

    async def get_token(self, force_refresh: bool = False) -> Optional[str]:
        if self._cached and not force_refresh and is_usable(self._cached, now=self._clock()):
            return self._cached

        candidate = (os.getenv(self._variable) or "").strip()
        if force_refresh and candidate == self._cached:
            LOGGER.warning("%s has not changed since the last rejected token", self._variable)
            return None
        if not is_usable(candidate, now=self._clock()):
            if candidate:
                LOGGER.warning("%s is expired or malformed; DNC checks will be skipped", self._variable)
            self._cached = None
            return None

        self._cached = candidate
        return candidate


__all__ = ["EnvTokenProvider", "StaticTokenProvider", "TokenProvider", "is_usable", "token_expiry"]
