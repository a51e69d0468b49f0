import asyncio
import json

import pytest

from lead_enricher.io import load_results
from lead_enricher.models import EnrichmentResult, Lead
from lead_enricher.orchestrator import BatchDriver
from lead_enricher.rate_limit import RateLimiter


class SimulatedCrash(BaseException):
    """Stands in for the process being killed mid-run."""


class StubOrchestrator:
    def __init__(self, fail_on=(), crash_on=None) -> None:
        self.fail_on = set(fail_on)
        self.crash_on = crash_on
        self.seen = []

    async def enrich_row(self, lead):
        self.seen.append(lead.name)
        if lead.name == self.crash_on:
            raise SimulatedCrash()
        if lead.name in self.fail_on:
            raise ValueError("bad row")
        result = EnrichmentResult(first_name=lead.name.split()[0], lead_key=lead.key())
        if lead.name.endswith("Partial"):
            result.add_error("Telnyx: HTTP 500 boom")
        result.stages.append("done")
        return result


def _leads(count):
    return [Lead(name=f"Lead{index} Person", city="Austin", state="TX") for index in range(1, count + 1)]


def _checkpoint_names(path):
    return [record["firstName"] for record in json.loads(path.read_text(encoding="utf-8"))]


def test_crash_keeps_last_full_checkpoint(tmp_path) -> None:
    checkpoint = tmp_path / "out.partial.json"
    driver = BatchDriver(StubOrchestrator(crash_on="Lead8 Person"), checkpoint_path=checkpoint, checkpoint_interval=5)

    with pytest.raises(SimulatedCrash):
        asyncio.run(driver.run(_leads(10)))

    assert _checkpoint_names(checkpoint) == ["Lead1", "Lead2", "Lead3", "Lead4", "Lead5"]
    assert not list(tmp_path.glob("*.tmp"))


def test_unhandled_error_becomes_placeholder_and_batch_continues(tmp_path) -> None:
    leads = [
        Lead(name="Ann Able", city="Austin", state="TX"),
        Lead(name="Bob Baker", city="Austin", state="TX", phone="5125550000"),
        Lead(name="Cy Partial", city="Austin", state="TX"),
    ]
    driver = BatchDriver(StubOrchestrator(fail_on={"Bob Baker"}))

    batch = asyncio.run(driver.run(leads))

    assert [result.first_name for result in batch.results] == ["Ann", "Bob", "Cy"]
    placeholder = batch.results[1]
    assert placeholder.error == "Unhandled error: bad row"
    assert placeholder.phone == "5125550000"
    assert placeholder.last_name == "Baker"
    assert batch.stats.processed == 3
    assert batch.stats.succeeded == 2
    assert batch.stats.errored == 1
    assert batch.stats.stage_errors == 1


def test_leads_without_identity_are_skipped() -> None:
    orchestrator = StubOrchestrator()
    leads = [Lead(name="Ann Able"), Lead(city="Austin", state="TX"), Lead(name="Bob Baker", city="Austin", state="TX")]

    batch = asyncio.run(BatchDriver(orchestrator).run(leads))

    assert orchestrator.seen == ["Bob Baker"]
    assert batch.stats.skipped == 2
    assert batch.stats.total == 3


def test_resume_skips_leads_already_in_checkpoint(tmp_path) -> None:
    checkpoint = tmp_path / "out.partial.json"
    leads = _leads(4)
    first = BatchDriver(StubOrchestrator(crash_on="Lead3 Person"), checkpoint_path=checkpoint, checkpoint_interval=1)
    with pytest.raises(SimulatedCrash):
        asyncio.run(first.run(leads))

    orchestrator = StubOrchestrator()
    existing = load_results(checkpoint)
    batch = asyncio.run(BatchDriver(orchestrator, checkpoint_path=checkpoint).run(leads, existing))

    assert orchestrator.seen == ["Lead3 Person", "Lead4 Person"]
    assert [result.first_name for result in batch.results] == ["Lead1", "Lead2", "Lead3", "Lead4"]
    assert batch.stats.skipped == 2
    assert _checkpoint_names(checkpoint) == ["Lead1", "Lead2", "Lead3", "Lead4"]


def test_final_partial_group_is_checkpointed(tmp_path) -> None:
    checkpoint = tmp_path / "out.partial.json"
    driver = BatchDriver(StubOrchestrator(), checkpoint_path=checkpoint, checkpoint_interval=5)

    asyncio.run(driver.run(_leads(7)))

    assert len(_checkpoint_names(checkpoint)) == 7


def test_throttle_spaces_leads_and_progress_is_reported() -> None:
    now = [0.0]
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(round(seconds, 6))
        now[0] += seconds

    throttle = RateLimiter(600, clock=lambda: now[0], sleep=fake_sleep)
    progress = []
    driver = BatchDriver(
        StubOrchestrator(),
        throttle=throttle,
        progress_callback=lambda index, total, result: progress.append((index, total)),
    )

    asyncio.run(driver.run(_leads(3)))

    assert sleeps == [0.1, 0.1]
    assert progress == [(1, 3), (2, 3), (3, 3)]
