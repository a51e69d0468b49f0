"""Decides whether a lead is worth the paid age enrichment call."""
from __future__ import annotations

from typing import Optional

from .models import GatekeepDecision

DENIED_CARRIER_FRAGMENTS = (
    "google voice",
    "textnow",
    "burner",
    "hushed",
    "line2",
    "bandwidth",
    "twilio",
)


def should_continue(
    phone: Optional[str],
    line_type: Optional[str],
    carrier_name: Optional[str],
) -> GatekeepDecision:
    """Apply the gatekeeping rules in order; missing classification never blocks."""

    if not (phone or "").strip():
        return GatekeepDecision(False, "No phone number")

    if (line_type or "").strip().lower() == "voip":
        return GatekeepDecision(False, "VoIP line")

    carrier = (carrier_name or "").lower()
    for fragment in DENIED_CARRIER_FRAGMENTS:
        if fragment in carrier:
            return GatekeepDecision(False, f"Carrier on deny list ({carrier_name})")

    return GatekeepDecision(True, "Passed")


__all__ = ["DENIED_CARRIER_FRAGMENTS", "should_continue"]
