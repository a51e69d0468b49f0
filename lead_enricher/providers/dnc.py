"""Do-Not-Call scrub against the agent portal's lead API."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from ..auth import TokenProvider
from ..models import DNCResult
from ..rate_limit import ProviderRequest, RateLimitedClient
from .base import HttpProvider, mask_phone

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-business-agent.ushadvisors.com"
SCRUB_PATH = "/Leads/api/leads/scrubphonenumber"

ERROR_REASON = "Error checking DNC"
INVALID_PHONE_REASON = "Invalid phone number format"


def _digits(phone: Optional[str]) -> str:
    return "".join(char for char in str(phone or "") if char.isdigit())


def interpret_scrub(payload: Any) -> DNCResult:
    """Map a scrub response onto a :class:`DNCResult`."""

    data = payload.get("data", payload) if isinstance(payload, Mapping) else {}
    if not isinstance(data, Mapping):
        data = {}
    contact_status = data.get("contactStatus") if isinstance(data.get("contactStatus"), Mapping) else {}

    is_dnc = data.get("isDoNotCall") is True or contact_status.get("canContact") is False
    can_contact = not is_dnc and contact_status.get("canContact") is not False
    reason = contact_status.get("reason") or data.get("reason") or ("Do Not Call" if is_dnc else None)
    return DNCResult(is_do_not_call=is_dnc, can_contact=can_contact, reason=reason)


def _fail_open(detail: str) -> DNCResult:
    return DNCResult(is_do_not_call=False, can_contact=True, reason=ERROR_REASON, error=detail)


class DNCChecker(HttpProvider):
    """Checks phones against the DNC scrub endpoint and fails open on any error."""

    stage = "DNC"

    def __init__(
        self,
        client: RateLimitedClient,
        agent_number: str = "",
        *,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        super().__init__(client)
        self._agent_number = agent_number
        self._base_url = base_url.rstrip("/")

    async def _scrub(self, phone: str, token: str) -> Tuple[DNCResult, int]:
        digits = _digits(phone)
        if len(digits) < 10:
            return DNCResult(is_do_not_call=False, can_contact=True, reason=INVALID_PHONE_REASON), 0

        request = ProviderRequest(
            name=self.stage,
            url=f"{self._base_url}{SCRUB_PATH}",
            params={"currentContextAgentNumber": self._agent_number, "phone": digits},
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        )
        try:
            response = await self._client.call(request)
        except Exception as exc:
            LOGGER.warning("DNC check failed for %s: %s", mask_phone(digits), exc)
            return _fail_open(str(exc)), 0

        if not response.ok:
            LOGGER.warning("DNC check for %s returned HTTP %s", mask_phone(digits), response.status_code)
            return _fail_open(response.error_message()), response.status_code

        if response.payload is None:
            LOGGER.warning("DNC check for %s returned a non-JSON body", mask_phone(digits))
            return _fail_open(f"{self.stage}: Response was not valid JSON"), response.status_code

        result = interpret_scrub(response.payload)
        LOGGER.debug(
            "DNC status for %s: %s", mask_phone(digits), "Do Not Call" if result.is_do_not_call else "Safe"
        )
        return result, response.status_code

    async def check_dnc(self, phone: str, token: str) -> DNCResult:
        """Return the DNC status of ``phone``; never raises."""

        result, _ = await self._scrub(phone, token)
        return result

    async def check_with_provider(self, phone: str, token_provider: TokenProvider) -> Optional[DNCResult]:
        """Check ``phone`` with a token from ``token_provider``.

        A 401 triggers one forced token refresh and retry. Returns ``None`` when
        no token could be obtained.
        """

        try:
            token = await token_provider.get_token()
        except Exception as exc:
            LOGGER.warning("Could not obtain DNC token: %s", exc)
            return None
        if not token:
            return None

        result, status = await self._scrub(phone, token)
        if status != 401:
            return result

        LOGGER.info("DNC token rejected, requesting a fresh one")
        try:
            token = await token_provider.get_token(force_refresh=True)
        except Exception as exc:
            LOGGER.warning("Could not refresh DNC token: %s", exc)
            return result
        if not token:
            return result
        result, _ = await self._scrub(phone, token)
        return result


__all__ = ["DEFAULT_BASE_URL", "DNCChecker", "ERROR_REASON", "INVALID_PHONE_REASON", "interpret_scrub"]
