"""Shared helpers for the HTTP-backed enrichment providers."""
from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional, Sequence

from ..rate_limit import ProviderError, ProviderRequest, ProviderResponse, RateLimitedClient

LOGGER = logging.getLogger(__name__)

PHONE_ALIASES: Sequence[str] = (
    "Telephone",
    "phone",
    "phone_number",
    "Phone Number",
    "Phone",
    "phoneNumber",
    "PhoneNumber",
    "mobile",
    "Mobile",
    "cell",
    "Cell",
    "primaryPhone",
    "Primary Phone",
)

EMAIL_ALIASES: Sequence[str] = (
    "Email",
    "email",
    "email_address",
    "Email Address",
    "emailAddress",
    "primaryEmail",
)

AGE_ALIASES: Sequence[str] = ("Age", "age")

DOB_ALIASES: Sequence[str] = ("DOB", "dob", "Date of Birth", "dateOfBirth", "date_of_birth", "Born")

_NON_PHONE_CHARS = re.compile(r"[^\d+]")


class StageFailure(RuntimeError):
    """Raised by a provider when its external call failed."""

    def __init__(self, stage: str, message: str) -> None:
        # Client errors already carry the request name as their prefix.
        if not message.startswith(stage):
            message = f"{stage}: {message}"
        super().__init__(message)
        self.stage = stage


def first_value(record: Any, aliases: Sequence[str]) -> Optional[str]:
    """Return the first non-empty value of ``record`` under ``aliases``, in order."""

    if not isinstance(record, Mapping):
        return None
    for alias in aliases:
        value = record.get(alias)
        if value is None or isinstance(value, (Mapping, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def clean_phone(value: Any) -> Optional[str]:
    """Digits of a US phone number without the country code, or ``None`` if too short."""

    if value is None:
        return None
    phone = _NON_PHONE_CHARS.sub("", str(value))
    if phone.startswith("+1"):
        phone = phone[2:]
    elif phone.startswith("+"):
        phone = phone[1:]
    phone = phone.replace("+", "")
    if len(phone) == 11 and phone.startswith("1"):
        phone = phone[1:]
    return phone if len(phone) >= 10 else None


def clean_email(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text if "@" in text else None


def mask_phone(phone: Optional[str]) -> str:
    if not phone:
        return "<none>"
    return f"{phone[:5]}..."


class HttpProvider:
    """Base class for providers that talk to an API through a :class:`RateLimitedClient`."""

    uses_http = True
    stage = "provider"

    def __init__(self, client: RateLimitedClient) -> None:
        self._client = client

    async def _fetch(self, request: ProviderRequest) -> ProviderResponse:
        """Issue ``request`` and convert every failure into :class:`StageFailure`."""

        try:
            response = await self._client.call(request)
        except ProviderError as exc:
            raise StageFailure(self.stage, str(exc)) from exc

        if not response.ok:
            raise StageFailure(self.stage, response.error_message())
        payload = response.payload
        if isinstance(payload, Mapping) and (payload.get("success") is False or payload.get("error")):
            raise StageFailure(self.stage, str(payload.get("error") or "Unknown error"))
        if payload is None:
            raise StageFailure(self.stage, "Response was not valid JSON")
        return response


__all__ = [
    "AGE_ALIASES",
    "DOB_ALIASES",
    "EMAIL_ALIASES",
    "HttpProvider",
    "PHONE_ALIASES",
    "StageFailure",
    "clean_email",
    "clean_phone",
    "first_value",
    "mask_phone",
]
