"""Unified data models for the enrichment pipeline, batch driver, and exporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


# --- Core Input Models ---

@dataclass(frozen=True)
class Lead:
    """Lead record as received from ingestion; never mutated by the pipeline."""

    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    zip_code: Optional[str] = None
    age: Optional[str] = None
    dob: Optional[str] = None
    linkedin_url: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def display_name(self) -> str:
        """Return a readable name for logs and progress output."""
        if self.name:
            return self.name
        return " ".join(filter(None, [self.first_name, self.last_name])).strip() or "(Unnamed Lead)"

    def has_name(self) -> bool:
        return bool((self.name or "").strip() or (self.first_name or "").strip())

    def has_location(self) -> bool:
        return bool((self.city or "").strip() and (self.state or "").strip())

    def has_identity(self) -> bool:
        """Whether the lead carries enough to attempt at least one stage."""

        if (self.phone or "").strip():
            return True
        return self.has_name() and self.has_location()

    def key(self) -> str:
        """Deduplication key used for resume and duplicate detection."""

        if self.linkedin_url:
            return f"linkedin:{self.linkedin_url.strip()}"
        name = self.display_name() if self.has_name() else ""
        contact = (self.email or "").strip() or (self.phone or "").strip()
        if name and contact:
            return f"name:{name}:{contact}"
        if contact:
            return f"contact:{contact}"
        return f"name:{name or 'unknown'}"


# --- Stage Outputs ---

@dataclass(slots=True)
class ResolvedIdentity:
    """Output of the free name/location resolution step."""

    first_name: str = ""
    last_name: str = ""
    zip_code: str = ""


@dataclass(slots=True)
class PhoneDiscovery:
    """Contact data discovered by the skip-tracing search."""

    phone: Optional[str] = None
    email: Optional[str] = None
    age: Optional[str] = None
    dob: Optional[str] = None
    zip_code: Optional[str] = None
    person_id: Optional[str] = None
    raw: Any = None
    error: Optional[str] = None


@dataclass(slots=True)
class PhoneIntel:
    """Line type and carrier classification for a phone number."""

    line_type: Optional[str] = None
    carrier_name: Optional[str] = None
    carrier_type: Optional[str] = None
    normalized_carrier: Optional[str] = None
    raw: Any = None


@dataclass(slots=True)
class AgeLookup:
    """Age and date of birth returned by the paid age lookup."""

    age: Optional[str] = None
    dob: Optional[str] = None
    raw: Any = None


@dataclass(frozen=True)
class GatekeepDecision:
    """Whether paid enrichment should continue, and why."""

    proceed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.proceed


@dataclass(slots=True)
class DNCResult:
    """Do-Not-Call status for a single phone number."""

    is_do_not_call: bool = False
    can_contact: bool = True
    reason: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "isDoNotCall": self.is_do_not_call,
            "canContact": self.can_contact,
        }
        if self.reason:
            payload["reason"] = self.reason
        if self.error:
            payload["error"] = self.error
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DNCResult":
        return cls(
            is_do_not_call=bool(data.get("isDoNotCall", False)),
            can_contact=bool(data.get("canContact", True)),
            reason=data.get("reason"),
            error=data.get("error"),
        )


# --- Orchestrator Output ---

_SCALAR_FIELDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "city": "city",
    "state": "state",
    "zip_code": "zipCode",
    "phone": "phone",
    "email": "email",
    "line_type": "lineType",
    "carrier_name": "carrierName",
    "carrier_type": "carrierType",
    "normalized_carrier": "normalizedCarrier",
    "age": "age",
    "dob": "dob",
    "linkedin_url": "linkedinUrl",
    "lead_key": "leadKey",
}

_RAW_FIELDS = {
    "skip_tracing_data": "skipTracingData",
    "telnyx_lookup_data": "telnyxLookupData",
    "age_lookup_data": "ageLookupData",
}


@dataclass
class EnrichmentResult:
    """Per-lead aggregate produced by the orchestrator.

    ``error`` holds the first stage failure only; ``errors`` keeps every one.
    A set ``error`` does not mean the remaining fields are empty.
    """

    first_name: str = ""
    last_name: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    phone: str = ""
    email: str = ""
    line_type: str = ""
    carrier_name: str = ""
    carrier_type: str = ""
    normalized_carrier: str = ""
    age: str = ""
    dob: str = ""
    linkedin_url: str = ""
    lead_key: str = ""
    gatekeep: Optional[GatekeepDecision] = None
    dnc: Optional[DNCResult] = None
    skip_tracing_data: Any = None
    telnyx_lookup_data: Any = None
    age_lookup_data: Any = None
    stages: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        if self.error is None:
            self.error = message

    def to_dict(self) -> Dict[str, Any]:
        """Serialise using the camelCase record layout of the output files."""

        record: Dict[str, Any] = {key: getattr(self, attr) for attr, key in _SCALAR_FIELDS.items()}
        for attr, key in _RAW_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                record[key] = value
        if self.gatekeep is not None:
            record["gatekeepPassed"] = self.gatekeep.proceed
            record["gatekeepReason"] = self.gatekeep.reason
        if self.dnc is not None:
            record["dnc"] = self.dnc.as_dict()
        record["stages"] = list(self.stages)
        if self.errors:
            record["errors"] = list(self.errors)
        if self.error:
            record["error"] = self.error
        return record

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EnrichmentResult":
        kwargs: Dict[str, Any] = {
            attr: str(data.get(key) or "") for attr, key in _SCALAR_FIELDS.items()
        }
        kwargs.update({attr: data.get(key) for attr, key in _RAW_FIELDS.items()})
        result = cls(**kwargs)
        if "gatekeepPassed" in data:
            result.gatekeep = GatekeepDecision(
                proceed=bool(data["gatekeepPassed"]),
                reason=str(data.get("gatekeepReason") or ""),
            )
        if isinstance(data.get("dnc"), Mapping):
            result.dnc = DNCResult.from_dict(data["dnc"])
        result.stages = list(data.get("stages") or [])
        result.errors = list(data.get("errors") or [])
        result.error = data.get("error") or (result.errors[0] if result.errors else None)
        return result


# --- Batch Models ---

@dataclass(slots=True)
class BatchStats:
    """Run-level counters maintained by the batch driver."""

    total: int = 0
    processed: int = 0
    succeeded: int = 0
    errored: int = 0
    skipped: int = 0
    stage_errors: int = 0


@dataclass
class EnrichedBatch:
    """Ordered enrichment results plus the counters for the run."""

    results: List[EnrichmentResult] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)

    def records(self) -> List[Dict[str, Any]]:
        return [result.to_dict() for result in self.results]
