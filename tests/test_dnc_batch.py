import asyncio

from lead_enricher.orchestrator import scrub_rows
from lead_enricher.providers.sample import StaticDNCChecker


def test_scrub_rows_annotates_every_row_and_counts_statuses() -> None:
    rows = [
        {"firstName": "Ann", "phone": "303-555-1212"},
        {"firstName": "Bob", "Phone Number": "(512) 555-3434"},
        {"firstName": "Cy", "phone": ""},
        {"firstName": "Di", "Mobile Phone": "3035559999", "dncStatus": "stale"},
    ]
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    scrubbed, summary = asyncio.run(
        scrub_rows(rows, StaticDNCChecker(["303"]), "token", delay_seconds=0.5, sleep=fake_sleep)
    )

    assert [row["dncStatus"] for row in scrubbed] == ["Do Not Call", "Safe", "Unknown", "Do Not Call"]
    assert scrubbed[0]["isDoNotCall"] == "Yes"
    assert scrubbed[0]["canContact"] == "No"
    assert scrubbed[1]["canContact"] == "Yes"
    assert scrubbed[2]["dncReason"] == "No phone number"
    assert scrubbed[3]["firstName"] == "Di"
    assert (summary.total, summary.do_not_call, summary.safe, summary.unknown) == (4, 2, 1, 1)
    assert sleeps == [0.5, 0.5]
    assert "dncStatus" not in rows[0]


def test_scrub_rows_does_not_wait_before_first_check() -> None:
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    asyncio.run(scrub_rows([{"phone": "5125551212"}], StaticDNCChecker(), "token", delay_seconds=0.5, sleep=fake_sleep))

    assert sleeps == []
