"""Top-level package for the cost-aware lead enrichment pipeline."""

from . import models  # noqa: F401
from .gatekeeper import should_continue  # noqa: F401
from .models import (
    AgeLookup,
    BatchStats,
    DNCResult,
    EnrichedBatch,
    EnrichmentResult,
    GatekeepDecision,
    Lead,
    PhoneDiscovery,
    PhoneIntel,
)
from .names import resolve, split_name  # noqa: F401
from .orchestrator import BatchDriver, EnrichmentOrchestrator  # noqa: F401

__all__ = [
    "AgeLookup",
    "BatchDriver",
    "BatchStats",
    "DNCResult",
    "EnrichedBatch",
    "EnrichmentOrchestrator",
    "EnrichmentResult",
    "GatekeepDecision",
    "Lead",
    "PhoneDiscovery",
    "PhoneIntel",
    "resolve",
    "should_continue",
    "split_name",
    "ingestion",
    "orchestrator",
    "providers",
]
