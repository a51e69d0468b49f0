"""Export and summary utilities for enrichment results."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import EnrichmentResult

PathLike = Union[str, Path]

FLAT_COLUMNS = (
    "firstName",
    "lastName",
    "city",
    "state",
    "zipCode",
    "phone",
    "email",
    "lineType",
    "carrierName",
    "carrierType",
    "normalizedCarrier",
    "age",
    "dob",
    "linkedinUrl",
    "gatekeepPassed",
    "gatekeepReason",
    "dncStatus",
    "dncReason",
    "error",
)

_COMPLETION_FIELDS = {
    "phone": "phone",
    "email": "email",
    "age": "age",
    "zip": "zipCode",
    "line type": "lineType",
    "carrier": "carrierName",
}


def export_results(
    results: Sequence[EnrichmentResult],
    path: PathLike,
    *,
    include_raw: bool = False,
    sheet_name: str = "Results",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write enrichment results to a CSV or Excel file."""

    dataframe = results_to_dataframe(results, include_raw=include_raw)
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def results_to_dataframe(results: Sequence[EnrichmentResult], *, include_raw: bool = False) -> pd.DataFrame:
    """Convert enrichment results into a flat :class:`pandas.DataFrame`."""

    rows = [_result_to_row(result, include_raw=include_raw) for result in results]
    return pd.DataFrame(rows, columns=_columns(include_raw))


def _columns(include_raw: bool) -> List[str]:
    columns = list(FLAT_COLUMNS) + ["errors"]
    if include_raw:
        columns += ["skipTracingData", "telnyxLookupData", "ageLookupData"]
    return columns


def _result_to_row(result: EnrichmentResult, *, include_raw: bool) -> Dict[str, object]:
    record = result.to_dict()
    row: Dict[str, object] = {column: record.get(column, "") for column in FLAT_COLUMNS}
    row["gatekeepPassed"] = "" if result.gatekeep is None else result.gatekeep.proceed
    if result.dnc is not None:
        row["dncStatus"] = "Do Not Call" if result.dnc.is_do_not_call else "Safe"
        row["dncReason"] = result.dnc.reason or ""
    row["error"] = result.error or ""
    row["errors"] = _join_list(result.errors)
    if include_raw:
        for key in ("skipTracingData", "telnyxLookupData", "ageLookupData"):
            value = record.get(key)
            row[key] = json.dumps(value, ensure_ascii=False) if value is not None else ""
    return row


def summarize_results(results: Sequence[EnrichmentResult]) -> Dict[str, float]:
    """Percentage of results carrying each enriched field, plus the gatekeep pass rate."""

    if not results:
        return {f"% with {label}": 0.0 for label in _COMPLETION_FIELDS} | {"% gatekeep passed": 0.0}

    frame = pd.DataFrame([result.to_dict() for result in results])
    summary: Dict[str, float] = {}
    for label, column in _COMPLETION_FIELDS.items():
        filled = frame[column].fillna("").astype(str).str.strip() != ""
        summary[f"% with {label}"] = round(float(filled.mean()) * 100, 1)
    if "gatekeepPassed" in frame:
        passed = frame["gatekeepPassed"].fillna(False).astype(bool)
    else:
        passed = pd.Series([False] * len(frame))
    summary["% gatekeep passed"] = round(float(passed.mean()) * 100, 1)
    return summary


def _join_list(values: Iterable[Optional[str]]) -> str:
    cleaned: List[str] = []
    for value in values:
        if not value:
            continue
        text = str(value).strip()
        if text:
            cleaned.append(text)
    return "; ".join(cleaned)


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["FLAT_COLUMNS", "export_results", "results_to_dataframe", "summarize_results"]
