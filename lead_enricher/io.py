"""Input/output helpers for lead files, result files and checkpoints."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List

from .ingestion.exporters import export_results
from .ingestion.loaders import UnsupportedFileTypeError, extract_records
from .ingestion.loaders import load_leads as _load_leads
from .models import EnrichmentResult, Lead

LOGGER = logging.getLogger(__name__)

_JSON_SUFFIXES = {".json"}
_TABULAR_SUFFIXES = {".csv", ".tsv", ".xls", ".xlsx", ".xlsm", ".xlsb"}


class FatalError(RuntimeError):
    """Raised when input cannot be read or output cannot be written."""


def load_leads(path: str | Path) -> List[Lead]:
    file_path = Path(path)
    if not file_path.exists():
        raise FatalError(f"Input file '{file_path}' was not found")
    try:
        return _load_leads(file_path)
    except UnsupportedFileTypeError as exc:
        raise FatalError(str(exc)) from exc
    except (OSError, ValueError) as exc:
        raise FatalError(f"Could not read leads from '{file_path}': {exc}") from exc


def load_results(path: str | Path) -> List[EnrichmentResult]:
    """Read previously written results (output or checkpoint) for resuming."""

    file_path = Path(path)
    if not file_path.exists():
        return []
    try:
        document = json.loads(file_path.read_text(encoding="utf-8"))
        records = extract_records(document)
    except (OSError, ValueError) as exc:
        raise FatalError(f"Could not read results from '{file_path}': {exc}") from exc
    return [EnrichmentResult.from_dict(record) for record in records]


def write_json_atomic(path: str | Path, payload: Any) -> None:
    """Write ``payload`` as JSON so readers only ever see a complete file."""

    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=file_path.parent,
        prefix=f".{file_path.name}.",
        suffix=".tmp",
        delete=False,
    ) as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False, default=str)
        temp_name = handle.name
    try:
        os.replace(temp_name, file_path)
    except OSError:
        os.unlink(temp_name)
        raise


def write_results(path: str | Path, results: Iterable[EnrichmentResult]) -> None:
    file_path = Path(path)
    result_list = list(results)
    suffix = file_path.suffix.lower()
    try:
        if suffix in _JSON_SUFFIXES:
            write_json_atomic(file_path, [result.to_dict() for result in result_list])
        elif suffix in _TABULAR_SUFFIXES:
            export_results(result_list, file_path)
        else:
            raise FatalError(f"Unsupported output format '{file_path.suffix}'. Use JSON, CSV or Excel")
    except OSError as exc:
        raise FatalError(f"Could not write results to '{file_path}': {exc}") from exc
    LOGGER.debug("Wrote %s results to %s", len(result_list), file_path)


__all__ = ["FatalError", "load_leads", "load_results", "write_json_atomic", "write_results"]
