"""Scrub a lead spreadsheet against the DNC service, one phone at a time."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

import pandas as pd

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from lead_enricher.auth import EnvTokenProvider  # noqa: E402  (import after path fix)
from lead_enricher.config import Settings  # noqa: E402
from lead_enricher.ingestion.loaders import read_records  # noqa: E402
from lead_enricher.orchestrator.dnc_batch import scrub_rows  # noqa: E402
from lead_enricher.providers.dnc import DNCChecker  # noqa: E402
from lead_enricher.rate_limit import RateLimitedClient, RateLimiter  # noqa: E402

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Annotate leads with Do-Not-Call status.")
    parser.add_argument("input", type=Path, help="Input CSV (or JSON/XLSX) with a phone column")
    parser.add_argument("output", type=Path, nargs="?", help="Output CSV (defaults to <input>-dnc-scrubbed.csv)")
    parser.add_argument("--delay", type=float, default=0.5, help="Seconds to wait between DNC requests")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Console log level",
    )
    return parser.parse_args(argv)


async def run_scrub(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    token = await EnvTokenProvider().get_token()
    if not token:
        LOGGER.error("USHA_JWT_TOKEN is missing, malformed or expired")
        return 1

    rows = read_records(args.input)
    output = args.output or args.input.with_name(f"{args.input.stem}-dnc-scrubbed.csv")

    async with RateLimitedClient(RateLimiter(settings.rate_limit_per_minute), timeout=settings.timeout_seconds) as client:
        checker = DNCChecker(client, settings.usha_agent_number)
        scrubbed, summary = await scrub_rows(rows, checker, token, delay_seconds=args.delay)

    pd.DataFrame(scrubbed).to_csv(output, index=False)
    print(f"Total rows:       {summary.total}")
    print(f"Do Not Call:      {summary.do_not_call}")
    print(f"Safe to call:     {summary.safe}")
    print(f"Unknown/no phone: {summary.unknown}")
    print(f"Written to {output}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv or sys.argv[1:])
    logging.basicConfig(level=getattr(logging, args.log_level))
    try:
        sys.exit(asyncio.run(run_scrub(args)))
    except (OSError, ValueError) as exc:
        LOGGER.error("DNC scrub failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
