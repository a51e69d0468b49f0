"""Telnyx number lookup used to classify line type and carrier."""
from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional

from ..models import PhoneIntel
from ..rate_limit import ProviderRequest, RateLimitedClient
from .base import HttpProvider, clean_phone, mask_phone

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.telnyx.com/v2"

LINE_TYPE_ALIASES: Mapping[str, str] = {
    "mobile": "mobile",
    "wireless": "mobile",
    "cell": "mobile",
    "cellular": "mobile",
    "landline": "landline",
    "fixed line": "landline",
    "fixed_line": "landline",
    "fixed": "landline",
    "wireline": "landline",
    "voip": "voip",
    "non-fixed voip": "voip",
    "non_fixed_voip": "voip",
    "fixed voip": "voip",
    "interconnected voip": "voip",
    "toll free": "toll-free",
    "toll-free": "toll-free",
    "toll_free": "toll-free",
    "shared cost": "shared-cost",
    "premium rate": "premium-rate",
    "pager": "pager",
}

_WHITESPACE = re.compile(r"\s+")


def normalize_line_type(value: Optional[str]) -> Optional[str]:
    """Map a provider line type onto a lower-case canonical value."""

    if not value:
        return None
    text = _WHITESPACE.sub(" ", str(value)).strip().lower()
    if not text:
        return None
    if text in LINE_TYPE_ALIASES:
        return LINE_TYPE_ALIASES[text]
    if "voip" in text:
        return "voip"
    return text


def normalize_carrier(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    text = _WHITESPACE.sub(" ", str(value)).strip()
    return text or None


def _lookup_body(payload: Any) -> Mapping[str, Any]:
    body = payload.get("data") if isinstance(payload, Mapping) else None
    if isinstance(body, Mapping) and isinstance(body.get("data"), Mapping):
        body = body["data"]
    return body if isinstance(body, Mapping) else {}


def parse_lookup(payload: Any) -> PhoneIntel:
    """Extract the classification fields from a number lookup payload."""

    body = _lookup_body(payload)
    portability = body.get("portability") if isinstance(body.get("portability"), Mapping) else {}
    carrier = body.get("carrier") if isinstance(body.get("carrier"), Mapping) else {}
    return PhoneIntel(
        line_type=normalize_line_type(portability.get("line_type")),
        carrier_name=normalize_carrier(carrier.get("name")),
        carrier_type=normalize_carrier(carrier.get("type")),
        normalized_carrier=normalize_carrier(carrier.get("normalized_carrier")),
        raw=payload,
    )


class TelnyxLookupProvider(HttpProvider):
    """Carrier lookup against the Telnyx number lookup API."""

    stage = "Telnyx"

    def __init__(self, client: RateLimitedClient, api_key: str, *, base_url: str = DEFAULT_BASE_URL) -> None:
        super().__init__(client)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def classify_phone(self, phone: Optional[str]) -> Optional[PhoneIntel]:
        if not phone:
            return None
        digits = clean_phone(phone) or "".join(char for char in phone if char.isdigit())
        response = await self._fetch(
            ProviderRequest(
                name=self.stage,
                url=f"{self._base_url}/number_lookup/+1{digits}",
                params={"type": "carrier"},
                headers={"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"},
            )
        )
        intel = parse_lookup(response.payload)
        LOGGER.debug(
            "Telnyx lookup for %s: line_type=%s carrier=%s", mask_phone(digits), intel.line_type, intel.carrier_name
        )
        return intel


__all__ = [
    "DEFAULT_BASE_URL",
    "TelnyxLookupProvider",
    "normalize_carrier",
    "normalize_line_type",
    "parse_lookup",
]
