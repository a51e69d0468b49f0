"""Offline providers that answer from local data, for dry runs and tests."""
from __future__ import annotations

from typing import Iterable, Optional

from ..auth import TokenProvider
from ..models import AgeLookup, DNCResult, PhoneDiscovery, PhoneIntel


class EchoSkipTracingProvider:
    """Skip-tracing stand-in that returns the configured contact details for everyone."""

    name = "echo"

    def __init__(
        self,
        phone: Optional[str] = "5125550100",
        email: Optional[str] = None,
        age: Optional[str] = "42",
        dob: Optional[str] = None,
    ) -> None:
        self._phone = phone
        self._email = email
        self._age = age
        self._dob = dob

    async def discover_phone(
        self,
        first_name: str,
        last_name: str,
        city: str = "",
        state: str = "",
        zip_code: str = "",
    ) -> Optional[PhoneDiscovery]:
        if not first_name or not last_name:
            return None
        raw = {"name": f"{first_name} {last_name}", "source": self.name}
        return PhoneDiscovery(phone=self._phone, email=self._email, raw=raw)

    async def enrich_age(
        self,
        first_name: str,
        last_name: str,
        city: str = "",
        state: str = "",
        person_id: Optional[str] = None,
    ) -> AgeLookup:
        return AgeLookup(age=self._age, dob=self._dob, raw={"source": self.name})


class StaticPhoneIntelProvider:
    """Classifies every phone with the same line type and carrier."""

    def __init__(self, line_type: Optional[str] = "mobile", carrier_name: Optional[str] = "Sample Wireless") -> None:
        self._line_type = line_type
        self._carrier_name = carrier_name

    async def classify_phone(self, phone: Optional[str]) -> Optional[PhoneIntel]:
        if not phone:
            return None
        return PhoneIntel(
            line_type=self._line_type,
            carrier_name=self._carrier_name,
            raw={"phone": phone, "line_type": self._line_type, "carrier": self._carrier_name},
        )


class StaticDNCChecker:
    """Flags phones starting with any of ``blocked_prefixes`` as Do Not Call."""

    def __init__(self, blocked_prefixes: Iterable[str] = ()) -> None:
        self._blocked = tuple(blocked_prefixes)

    async def check_dnc(self, phone: str, token: str) -> DNCResult:
        digits = "".join(char for char in phone if char.isdigit())
        if len(digits) < 10:
            return DNCResult(reason="Invalid phone number format")
        if digits.startswith(self._blocked) and self._blocked:
            return DNCResult(is_do_not_call=True, can_contact=False, reason="Do Not Call")
        return DNCResult()

    async def check_with_provider(self, phone: str, token_provider: TokenProvider) -> Optional[DNCResult]:
        token = await token_provider.get_token()
        if not token:
            return None
        return await self.check_dnc(phone, token)


__all__ = ["EchoSkipTracingProvider", "StaticDNCChecker", "StaticPhoneIntelProvider"]
