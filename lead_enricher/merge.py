"""Field precedence rules for combining lead data with stage outputs."""
from __future__ import annotations

from typing import Optional, Tuple

from .models import AgeLookup, Lead, PhoneDiscovery
from .providers.base import clean_email, clean_phone


def first_present(*values: Optional[str]) -> str:
    """Return the first value that is non-empty after stripping, else ``""``."""

    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def normalise_lead_phone(phone: Optional[str]) -> str:
    if not phone:
        return ""
    return clean_phone(phone) or str(phone).strip()


def merge_contact(lead: Lead, discovery: Optional[PhoneDiscovery]) -> Tuple[str, str]:
    """Phone and email: the lead's own values win over discovered ones."""

    phone = normalise_lead_phone(lead.phone)
    email = clean_email(lead.email) or ""
    if discovery is not None:
        phone = phone or first_present(discovery.phone)
        email = email or first_present(discovery.email)
    return phone, email


def merge_zip(lead: Lead, discovery: Optional[PhoneDiscovery], looked_up: Optional[str]) -> str:
    """ZIP: lead, then the provider's current address, then the local lookup."""

    return first_present(lead.zip_code, discovery.zip_code if discovery else None, looked_up)


def merge_age(
    lead: Lead,
    discovery: Optional[PhoneDiscovery],
    age_lookup: Optional[AgeLookup],
) -> Tuple[str, str]:
    """Age and DOB: age enrichment, then phone discovery, then the lead."""

    age = first_present(
        age_lookup.age if age_lookup else None,
        discovery.age if discovery else None,
        lead.age,
    )
    dob = first_present(
        age_lookup.dob if age_lookup else None,
        discovery.dob if discovery else None,
        lead.dob,
    )
    return age, dob


__all__ = ["first_present", "merge_age", "merge_contact", "merge_zip", "normalise_lead_phone"]
