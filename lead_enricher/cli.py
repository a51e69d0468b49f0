"""Command line interface for running the enrichment pipeline over a lead file."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import ConfigurationError, Settings, load_configuration
from .factory import build_pipeline
from .ingestion.exporters import summarize_results
from .io import FatalError, load_leads, load_results, write_results
from .orchestrator import BatchDriver

LOGGER = logging.getLogger(__name__)


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Enrich leads with phone, carrier, age and DNC data",
    )
    parser.add_argument("input", help="Path to the input leads (JSON, CSV or XLSX)")
    parser.add_argument(
        "output",
        nargs="?",
        default=None,
        help="Where to write the enriched results (defaults to <input>-enriched.json)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the pipeline configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--checkpoint-interval",
        type=int,
        default=None,
        help="Save partial results after this many leads (default from ENRICH_CHECKPOINT_INTERVAL or 5)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Only process the first N leads",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Skip leads already present in the checkpoint file from an interrupted run",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def default_output_path(input_path: Path) -> Path:
    return input_path.with_name(f"{input_path.stem}-enriched.json")


def checkpoint_path_for(output_path: Path) -> Path:
    return output_path.with_name(f"{output_path.stem}.partial.json")


async def run(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else default_output_path(input_path)
    checkpoint_path = checkpoint_path_for(output_path)

    settings = Settings.from_env()
    config = load_configuration(args.config) if args.config else {}

    leads = load_leads(input_path)
    if args.limit is not None:
        leads = leads[: max(args.limit, 0)]
    existing = load_results(checkpoint_path) if args.resume else []

    pipeline = build_pipeline(config, settings)
    interval = args.checkpoint_interval or pipeline.settings.checkpoint_interval
    driver = BatchDriver(
        pipeline.orchestrator,
        checkpoint_path=checkpoint_path,
        checkpoint_interval=interval,
        throttle=pipeline.throttle,
    )

    LOGGER.info("Enriching %s leads from %s", len(leads), input_path)
    try:
        batch = await driver.run(leads, existing)
    finally:
        await pipeline.aclose()

    write_results(output_path, batch.results)
    checkpoint_path.unlink(missing_ok=True)

    stats = batch.stats
    LOGGER.info(
        "Processed %s of %s leads: %s succeeded, %s errored, %s skipped",
        stats.processed,
        stats.total,
        stats.succeeded,
        stats.errored,
        stats.skipped,
    )
    for label, value in summarize_results(batch.results).items():
        LOGGER.info("%s: %.1f%%", label, value)
    LOGGER.info("Enriched results written to %s", output_path.resolve())
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        return asyncio.run(run(args))
    except (ConfigurationError, FatalError) as exc:
        LOGGER.error("%s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
