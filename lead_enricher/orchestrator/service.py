"""Per-lead enrichment orchestrator that walks the stage sequence."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, TypeVar

from ..auth import TokenProvider
from ..gatekeeper import should_continue
from ..merge import merge_age, merge_contact, merge_zip
from ..models import AgeLookup, DNCResult, EnrichmentResult, Lead, PhoneDiscovery, PhoneIntel
from ..names import resolve
from ..providers.base import StageFailure, mask_phone
from ..zip_lookup import ZipLookup

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
ProgressCallback = Callable[[str, Dict[str, Any]], None]


class SkipTracingProtocol(Protocol):
    """Provider of the phone discovery and age enrichment stages."""

    async def discover_phone(
        self, first_name: str, last_name: str, city: str = "", state: str = "", zip_code: str = ""
    ) -> Optional[PhoneDiscovery]:  # pragma: no cover - runtime protocol
        ...

    async def enrich_age(
        self, first_name: str, last_name: str, city: str = "", state: str = "", person_id: Optional[str] = None
    ) -> AgeLookup:  # pragma: no cover - runtime protocol
        ...


class PhoneIntelProtocol(Protocol):
    async def classify_phone(self, phone: Optional[str]) -> Optional[PhoneIntel]:  # pragma: no cover
        ...


class DNCProtocol(Protocol):
    async def check_with_provider(
        self, phone: str, token_provider: TokenProvider
    ) -> Optional[DNCResult]:  # pragma: no cover
        ...


class EnrichmentOrchestrator:
    """Runs the enrichment stages for one lead at a time.

    Stage failures never abort a lead: the failure is recorded on the result
    and the remaining stages continue with whatever data is available.
    """

    def __init__(
        self,
        skip_tracing: SkipTracingProtocol,
        phone_intel: PhoneIntelProtocol,
        zip_lookup: Optional[ZipLookup] = None,
        *,
        dnc: Optional[DNCProtocol] = None,
        token_provider: Optional[TokenProvider] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        self._skip_tracing = skip_tracing
        self._phone_intel = phone_intel
        self._zip_lookup = zip_lookup
        self._dnc = dnc
        self._token_provider = token_provider
        self._progress_callback = progress_callback

    @property
    def dnc_enabled(self) -> bool:
        return self._dnc is not None and self._token_provider is not None

    def _progress(self, step: str, **details: Any) -> None:
        if self._progress_callback is not None:
            self._progress_callback(step, details)

    async def _run_stage(
        self,
        result: EnrichmentResult,
        label: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> Optional[T]:
        try:
            return await func(*args, **kwargs)
        except StageFailure as exc:
            LOGGER.warning("%s failed: %s", label, exc)
            result.add_error(str(exc))
        except Exception as exc:
            LOGGER.warning("%s raised %s: %s", label, type(exc).__name__, exc)
            result.add_error(f"{label}: {exc}")
        return None

    async def enrich_row(self, lead: Lead) -> EnrichmentResult:
        """Enrich a single lead; always returns a result."""

        result = EnrichmentResult(
            city=(lead.city or "").strip(),
            state=(lead.state or "").strip(),
            linkedin_url=(lead.linkedin_url or "").strip(),
            lead_key=lead.key(),
        )
        result.stages.append("start")

        identity = resolve(lead, self._zip_lookup)
        result.first_name = identity.first_name
        result.last_name = identity.last_name
        result.stages.append("name_resolved")
        self._progress("linkedin", firstName=identity.first_name, lastName=identity.last_name)

        result.zip_code = identity.zip_code
        result.stages.append("zip_resolved")
        self._progress("zip", zipCode=identity.zip_code)

        discovery: Optional[PhoneDiscovery] = None
        if not (lead.phone or "").strip() and identity.first_name and identity.last_name:
            discovery = await self._run_stage(
                result,
                "Phone discovery",
                self._skip_tracing.discover_phone,
                identity.first_name,
                identity.last_name,
                result.city,
                result.state,
                identity.zip_code,
            )
        result.stages.append("phone_discovery_attempted")

        result.phone, result.email = merge_contact(lead, discovery)
        result.zip_code = merge_zip(lead, discovery, identity.zip_code)
        if discovery is not None:
            result.skip_tracing_data = discovery.raw
            if discovery.error:
                result.add_error(discovery.error)
        self._progress("phone-discovery", phone=mask_phone(result.phone), email=bool(result.email))

        if result.phone:
            intel = await self._run_stage(result, "Phone intelligence", self._phone_intel.classify_phone, result.phone)
            result.stages.append("phone_intel_attempted")
            if intel is not None:
                result.line_type = intel.line_type or ""
                result.carrier_name = intel.carrier_name or ""
                result.carrier_type = intel.carrier_type or ""
                result.normalized_carrier = intel.normalized_carrier or ""
                result.telnyx_lookup_data = intel.raw
        else:
            result.stages.append("skipped_no_phone")
        self._progress("telnyx", lineType=result.line_type, carrierName=result.carrier_name)

        decision = should_continue(result.phone, result.line_type, result.carrier_name)
        result.gatekeep = decision
        result.stages.append("gatekeep_evaluated")
        self._progress("gatekeep", proceed=decision.proceed, reason=decision.reason)

        age_lookup: Optional[AgeLookup] = None
        if decision.proceed:
            age_lookup = await self._run_stage(
                result,
                "Age enrichment",
                self._skip_tracing.enrich_age,
                identity.first_name,
                identity.last_name,
                result.city,
                result.state,
                person_id=discovery.person_id if discovery else None,
            )
            result.stages.append("age_attempted")
            if age_lookup is not None:
                result.age_lookup_data = age_lookup.raw
        else:
            LOGGER.debug("Skipping age enrichment for %s: %s", lead.display_name(), decision.reason)
            result.stages.append("skipped_gatekeep")
        result.age, result.dob = merge_age(lead, discovery, age_lookup)
        self._progress("age", age=result.age, dob=result.dob)

        if self.dnc_enabled:
            await self._check_dnc(result)

        result.stages.append("done")
        self._progress("complete", **result.to_dict())
        return result

    async def _check_dnc(self, result: EnrichmentResult) -> None:
        dnc_result: Optional[DNCResult] = None
        if result.phone:
            dnc_result = await self._run_stage(
                result, "DNC check", self._dnc.check_with_provider, result.phone, self._token_provider
            )
        if dnc_result is None:
            result.stages.append("dnc_skipped")
        else:
            result.dnc = dnc_result
            result.stages.append("dnc_attempted")
        self._progress(
            "dnc",
            isDoNotCall=dnc_result.is_do_not_call if dnc_result else None,
            canContact=dnc_result.can_contact if dnc_result else None,
        )

    async def enrich_data(self, leads: Iterable[Lead]) -> List[EnrichmentResult]:
        """Enrich ``leads`` one after another, in order."""

        results: List[EnrichmentResult] = []
        for lead in leads:
            results.append(await self.enrich_row(lead))
        return results


__all__ = ["EnrichmentOrchestrator", "ProgressCallback"]
