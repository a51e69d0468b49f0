"""Skip-tracing provider used for phone discovery and age enrichment."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..models import AgeLookup, PhoneDiscovery
from ..names import clean_name_for_api
from ..rate_limit import ProviderRequest, RateLimitedClient
from .base import (
    AGE_ALIASES,
    DOB_ALIASES,
    EMAIL_ALIASES,
    PHONE_ALIASES,
    HttpProvider,
    StageFailure,
    clean_email,
    clean_phone,
    first_value,
    mask_phone,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_HOST = "skip-tracing-working-api.p.rapidapi.com"
PERSON_ID_ALIASES = ("Person ID", "person_id", "peo_id", "PersonID")


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, Mapping) and isinstance(payload.get("data"), (Mapping, list)):
        return payload["data"]
    return payload


def first_record(payload: Any) -> Optional[Mapping[str, Any]]:
    """Return the first person record of a search payload."""

    data = _unwrap(payload)
    if isinstance(data, Mapping):
        people = data.get("PeopleDetails")
        if isinstance(people, list):
            return people[0] if people and isinstance(people[0], Mapping) else None
        return data
    if isinstance(data, list) and data and isinstance(data[0], Mapping):
        return data[0]
    return None


def _parse_reported(value: Any) -> datetime:
    text = str(value or "").strip()
    for fmt in ("%m/%d/%Y", "%Y-%m-%d", "%b %Y", "%m/%Y", "%Y"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return datetime.min


def best_phone(details: Mapping[str, Any]) -> Optional[str]:
    """Pick the best phone of a person-details payload: wireless first, then most recent."""

    candidates: List[Mapping[str, Any]] = [
        item for item in details.get("All Phone Details") or [] if isinstance(item, Mapping)
    ]
    candidates.sort(key=lambda item: _parse_reported(item.get("last_reported")), reverse=True)
    candidates.sort(key=lambda item: str(item.get("phone_type") or "").lower() != "wireless")
    for item in candidates:
        phone = clean_phone(item.get("phone_number"))
        if phone:
            return phone

    person = _person_details(details)
    if person is not None:
        return clean_phone(person.get("Telephone"))
    return None


def _person_details(details: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    people = details.get("Person Details")
    if isinstance(people, list) and people and isinstance(people[0], Mapping):
        return people[0]
    return None


def _current_address(details: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    addresses = details.get("Current Address Details List")
    if isinstance(addresses, list) and addresses and isinstance(addresses[0], Mapping):
        return addresses[0]
    return None


class SkipTracingProvider(HttpProvider):
    """Client for the RapidAPI skip-tracing service.

    ``discover_phone`` issues one name search plus, only when the search record
    has no phone but carries a person id, one person-details call.
    ``enrich_age`` issues exactly one call.
    """

    stage = "Skip-tracing"

    def __init__(
        self,
        client: RateLimitedClient,
        api_key: str,
        *,
        host: str = DEFAULT_HOST,
        base_url: Optional[str] = None,
        details_timeout: float = 60.0,
    ) -> None:
        super().__init__(client)
        self._api_key = api_key
        self._host = host
        self._base_url = (base_url or f"https://{host}").rstrip("/")
        self._details_timeout = details_timeout

    def _headers(self) -> Dict[str, str]:
        return {"x-rapidapi-key": self._api_key, "x-rapidapi-host": self._host}

    async def search(self, first_name: str, last_name: str, city: str = "", state: str = "", zip_code: str = "") -> Any:
        name = clean_name_for_api(f"{first_name} {last_name}")
        params: Dict[str, Any] = {"name": name}
        if city and state:
            citystatezip = f"{city}, {state}"
            if zip_code:
                citystatezip = f"{citystatezip} {zip_code}"
            params["citystatezip"] = citystatezip
            path = "/search/bynameaddress"
        else:
            path = "/search/byname"
        params["page"] = 1

        response = await self._fetch(
            ProviderRequest(name=self.stage, url=f"{self._base_url}{path}", params=params, headers=self._headers())
        )
        return response.payload

    async def person_details(self, person_id: str) -> Mapping[str, Any]:
        response = await self._fetch(
            ProviderRequest(
                name=f"{self.stage} (person details)",
                url=f"{self._base_url}/search/detailsbyID",
                params={"peo_id": person_id},
                headers=self._headers(),
                timeout=self._details_timeout,
            )
        )
        details = _unwrap(response.payload)
        return details if isinstance(details, Mapping) else {}

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

        payload = await self.search(first_name, last_name, city, state, zip_code)
        record = first_record(payload) or {}
        discovery = PhoneDiscovery(
            phone=clean_phone(first_value(record, PHONE_ALIASES)),
            email=clean_email(first_value(record, EMAIL_ALIASES)),
            age=first_value(record, AGE_ALIASES),
            dob=first_value(record, DOB_ALIASES),
            person_id=first_value(record, PERSON_ID_ALIASES),
            raw=_unwrap(payload),
        )

        if discovery.phone is None and discovery.person_id:
            LOGGER.debug("No phone in search results, fetching person details for %s", discovery.person_id)
            try:
                details = await self.person_details(discovery.person_id)
            except StageFailure as exc:
                # The search record still counts; the caller records the failure.
                LOGGER.warning("Person details failed for %s: %s", discovery.person_id, exc)
                discovery.error = str(exc)
                return discovery
            discovery.phone = best_phone(details)
            emails = details.get("Email Addresses") or []
            if discovery.email is None and isinstance(emails, list) and emails:
                discovery.email = clean_email(emails[0])
            address = _current_address(details)
            if address is not None:
                postal = str(address.get("postal_code") or "").strip()
                if len(postal) >= 5:
                    discovery.zip_code = postal
            person = _person_details(details)
            if person is not None:
                discovery.age = discovery.age or first_value(person, AGE_ALIASES)
                discovery.dob = discovery.dob or first_value(person, DOB_ALIASES)

        LOGGER.debug(
            "Phone discovery for %s %s: phone=%s email=%s", first_name, last_name, mask_phone(discovery.phone), bool(discovery.email)
        )
        return discovery

    async def enrich_age(
        self,
        first_name: str,
        last_name: str,
        city: str = "",
        state: str = "",
        person_id: Optional[str] = None,
    ) -> AgeLookup:
        if person_id:
            details = await self.person_details(person_id)
            person = _person_details(details) or {}
            return AgeLookup(
                age=first_value(person, AGE_ALIASES),
                dob=first_value(person, DOB_ALIASES),
                raw=details,
            )

        if not first_name or not last_name:
            return AgeLookup()

        payload = await self.search(first_name, last_name, city, state)
        record = first_record(payload) or {}
        return AgeLookup(
            age=first_value(record, AGE_ALIASES),
            dob=first_value(record, DOB_ALIASES),
            raw=_unwrap(payload),
        )


__all__ = ["DEFAULT_HOST", "SkipTracingProvider", "best_phone", "first_record"]
