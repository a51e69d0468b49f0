"""Per-lead orchestration, batch driving and the DNC scrub job."""

from .batch import BatchDriver
from .dnc_batch import scrub_rows
from .service import EnrichmentOrchestrator

__all__ = ["BatchDriver", "EnrichmentOrchestrator", "scrub_rows"]
