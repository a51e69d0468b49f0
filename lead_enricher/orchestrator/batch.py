"""Sequential batch driver with periodic checkpointing."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from ..io import FatalError, write_json_atomic
from ..models import BatchStats, EnrichedBatch, EnrichmentResult, Lead
from ..names import resolve
from ..rate_limit import RateLimiter
from .service import EnrichmentOrchestrator

LOGGER = logging.getLogger(__name__)

LeadProgressCallback = Callable[[int, int, EnrichmentResult], None]


class BatchDriver:
    """Feeds leads through the orchestrator one at a time, in input order."""

    def __init__(
        self,
        orchestrator: EnrichmentOrchestrator,
        *,
        checkpoint_path: Optional[str | Path] = None,
        checkpoint_interval: int = 5,
        throttle: Optional[RateLimiter] = None,
        progress_callback: Optional[LeadProgressCallback] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._checkpoint_path = Path(checkpoint_path) if checkpoint_path else None
        self._checkpoint_interval = max(int(checkpoint_interval), 1)
        self._throttle = throttle
        self._progress_callback = progress_callback

    @property
    def checkpoint_path(self) -> Optional[Path]:
        return self._checkpoint_path

    def checkpoint(self, results: List[EnrichmentResult]) -> None:
        if self._checkpoint_path is None:
            return
        try:
            write_json_atomic(self._checkpoint_path, [result.to_dict() for result in results])
        except OSError as exc:
            raise FatalError(f"Could not write checkpoint {self._checkpoint_path}: {exc}") from exc
        LOGGER.info("Checkpoint saved: %s results in %s", len(results), self._checkpoint_path)

    async def run(
        self,
        leads: Iterable[Lead],
        existing: Optional[Iterable[EnrichmentResult]] = None,
    ) -> EnrichedBatch:
        """Enrich ``leads``; results in ``existing`` are kept and their leads not redone."""

        pending = list(leads)
        batch = EnrichedBatch(results=list(existing or []), stats=BatchStats(total=len(pending)))
        stats = batch.stats
        done: Set[str] = {result.lead_key for result in batch.results if result.lead_key}
        if done:
            LOGGER.info("Resuming with %s previously enriched leads", len(done))

        since_checkpoint = 0
        for index, lead in enumerate(pending, start=1):
            if not lead.has_identity():
                LOGGER.info("[%s/%s] Skipping lead without name and location or phone", index, stats.total)
                stats.skipped += 1
                continue
            key = lead.key()
            if key in done:
                LOGGER.debug("[%s/%s] Already enriched: %s", index, stats.total, lead.display_name())
                stats.skipped += 1
                continue

            if self._throttle is not None:
                await self._throttle.acquire()

            LOGGER.info("[%s/%s] Enriching %s", index, stats.total, lead.display_name())
            try:
                result = await self._orchestrator.enrich_row(lead)
            except Exception as exc:
                LOGGER.exception("Unhandled error while enriching %s", lead.display_name())
                result = self._placeholder(lead, exc)
                stats.errored += 1
            else:
                stats.succeeded += 1
                if result.errors:
                    stats.stage_errors += 1
                    LOGGER.info("[%s/%s] Completed with errors: %s", index, stats.total, result.error)

            batch.results.append(result)
            done.add(key)
            stats.processed += 1
            since_checkpoint += 1
            if self._progress_callback is not None:
                self._progress_callback(index, stats.total, result)

            if since_checkpoint >= self._checkpoint_interval:
                self.checkpoint(batch.results)
                since_checkpoint = 0

        if since_checkpoint:
            self.checkpoint(batch.results)

        LOGGER.info(
            "Batch finished: %s processed, %s succeeded, %s errored, %s skipped, %s with stage errors",
            stats.processed,
            stats.succeeded,
            stats.errored,
            stats.skipped,
            stats.stage_errors,
        )
        return batch

    @staticmethod
    def _placeholder(lead: Lead, exc: Exception) -> EnrichmentResult:
        identity = resolve(lead)
        result = EnrichmentResult(
            first_name=identity.first_name,
            last_name=identity.last_name,
            city=(lead.city or "").strip(),
            state=(lead.state or "").strip(),
            phone=(lead.phone or "").strip(),
            email=(lead.email or "").strip(),
            linkedin_url=(lead.linkedin_url or "").strip(),
            lead_key=lead.key(),
        )
        result.add_error(f"Unhandled error: {exc}")
        return result


__all__ = ["BatchDriver", "LeadProgressCallback"]
