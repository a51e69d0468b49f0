"""Utilities for loading leads from JSON documents and spreadsheets."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import Lead
from .models import ArrayShape, DocumentShape, NestedShape

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Keys are compared after lower-casing and dropping everything but letters and digits.
_FIELD_SYNONYMS: Mapping[str, Sequence[str]] = {
    "name": ("name", "fullname", "contactname", "leadname"),
    "first_name": ("firstname", "first", "givenname"),
    "last_name": ("lastname", "last", "surname", "familyname"),
    "city": ("city", "locationcity"),
    "state": ("state", "stateabbr", "region", "province"),
    "phone": ("phone", "phonenumber", "telephone", "mobile", "mobilephone", "cell", "cellphone", "primaryphone"),
    "email": ("email", "emailaddress", "primaryemail", "workemail"),
    "zip_code": ("zipcode", "zip", "postalcode", "postcode"),
    "age": ("age",),
    "dob": ("dob", "dateofbirth", "birthdate", "birthday"),
    "linkedin_url": ("linkedinurl", "linkedin", "linkedinprofileurl", "navigationurl", "profileurl"),
}

_REGION_KEYS = ("georegion", "location")

# Candidate locations of the lead list inside a JSON document, most specific first.
_NESTED_PATHS: Sequence[tuple[str, ...]] = (
    ("processedResults",),
    ("rawResponse", "response", "data"),
    ("rawResponse", "data", "response", "data"),
    ("results",),
    ("rawResponse", "data"),
    ("rawResponse",),
    ("data",),
    ("leads",),
)

_JSON_SUFFIXES = {".json"}
_CSV_SUFFIXES = {".csv", ".tsv"}
_EXCEL_SUFFIXES = {".xls", ".xlsx", ".xlsm", ".xlsb"}

_KEY_CHARS = re.compile(r"[^a-z0-9]")


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


class UnrecognizedDocumentError(UnsupportedFileTypeError):
    """Raised when a JSON document holds no list of leads in any known place."""


def normalize_key(value: Any) -> str:
    return _KEY_CHARS.sub("", str(value).lower())


def detect_shape(document: Any) -> DocumentShape:
    """Work out once where the list of leads lives in ``document``."""

    if isinstance(document, list):
        return ArrayShape()
    if isinstance(document, Mapping):
        for path in _NESTED_PATHS:
            node: Any = document
            for key in path:
                node = node.get(key) if isinstance(node, Mapping) else None
                if node is None:
                    break
            if isinstance(node, list):
                return NestedShape(path)
    raise UnrecognizedDocumentError("JSON document does not contain a list of leads")


def extract_records(document: Any) -> List[Mapping[str, Any]]:
    shape = detect_shape(document)
    if isinstance(shape, NestedShape):
        LOGGER.debug("Reading leads from %s", shape.describe())
    return [record for record in shape.extract(document) if isinstance(record, Mapping)]


def load_leads(
    path: PathLike,
    *,
    column_mapping: Optional[Mapping[str, str]] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[Lead]:
    """Load leads from a JSON, CSV/TSV or Excel file.

    Parameters
    ----------
    path:
        Path to the input file.
    column_mapping:
        Optional mapping of :class:`Lead` field names to source column names,
        overriding the built-in synonyms.
    sheet_name:
        Sheet selector passed to :func:`pandas.read_excel`.
    loader_kwargs:
        Extra keyword arguments forwarded to the pandas reader.
    """

    records = read_records(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    mapping = dict(column_mapping or {})
    leads: List[Lead] = []
    seen: set[str] = set()
    duplicates = 0
    for record in records:
        if _record_is_empty(record):
            continue
        lead = record_to_lead(record, mapping)
        key = lead.key()
        if key in seen and key != "name:unknown":
            duplicates += 1
            continue
        seen.add(key)
        leads.append(lead)

    if duplicates:
        LOGGER.info("Dropped %s duplicate leads", duplicates)
    LOGGER.info("Loaded %s leads from %s", len(leads), path)
    return leads


def read_records(
    path: PathLike,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[Mapping[str, Any]]:
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()
    if suffix in _JSON_SUFFIXES:
        document = json.loads(path_obj.read_text(encoding="utf-8"))
        return extract_records(document)
    dataframe = _read_dataframe(path_obj, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    return [
        {column: _clean_text(value) for column, value in row.items()}
        for row in dataframe.to_dict(orient="records")
    ]


def _read_dataframe(
    path: Path,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in _CSV_SUFFIXES:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        loader_kwargs.setdefault("dtype", str)
        return pd.read_csv(path, **loader_kwargs)

    if suffix in _EXCEL_SUFFIXES:
        loader_kwargs.setdefault("dtype", str)
        engine = loader_kwargs.pop("engine", None) or "openpyxl"
        return pd.read_excel(path, sheet_name=sheet_name, engine=engine, **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path.suffix}")


def _record_is_empty(record: Mapping[str, Any]) -> bool:
    return all(_clean_text(value) is None for value in record.values() if not isinstance(value, (Mapping, list)))


def record_to_lead(record: Mapping[str, Any], mapping: Optional[Mapping[str, str]] = None) -> Lead:
    """Map one source record onto a :class:`Lead` through the field synonyms."""

    mapping = mapping or {}
    by_key: Dict[str, str] = {}
    for column in record:
        by_key.setdefault(normalize_key(column), column)

    used: set[str] = set()
    values: Dict[str, Optional[str]] = {}
    for field_name, synonyms in _FIELD_SYNONYMS.items():
        columns = [mapping[field_name]] if field_name in mapping else [by_key.get(s) for s in synonyms]
        values[field_name] = None
        for column in columns:
            if column is None or column not in record:
                continue
            text = _clean_text(record[column])
            if text is not None:
                values[field_name] = text
                used.add(column)
                break

    if not values["city"] or not values["state"]:
        region_column = next((by_key[key] for key in _REGION_KEYS if key in by_key), None)
        if region_column is not None:
            city, state = split_region(_clean_text(record[region_column]))
            values["city"] = values["city"] or city
            values["state"] = values["state"] or state
            used.add(region_column)

    metadata = {
        column: value
        for column, value in record.items()
        if column not in used and value is not None and (not isinstance(value, str) or value.strip())
    }
    return Lead(metadata=metadata, **values)


def split_region(region: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Split a ``"City, State, Country"`` location into city and state."""

    if not region:
        return None, None
    parts = [part.strip() for part in region.split(",") if part.strip()]
    if len(parts) >= 2:
        return parts[0], parts[1]
    return None, None


def _clean_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (Mapping, list)):
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "UnrecognizedDocumentError",
    "UnsupportedFileTypeError",
    "detect_shape",
    "extract_records",
    "load_leads",
    "read_records",
    "record_to_lead",
    "split_region",
]
