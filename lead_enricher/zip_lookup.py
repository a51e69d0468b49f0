"""Free, in-process city/state to ZIP code lookup."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)

STATE_ZIP_CENTROIDS: Mapping[str, str] = {
    "AL": "35201", "AK": "99501", "AZ": "85001", "AR": "72201",
    "CA": "90001", "CO": "80201", "CT": "06101", "DE": "19901",
    "FL": "33101", "GA": "30301", "HI": "96801", "ID": "83701",
    "IL": "60601", "IN": "46201", "IA": "50301", "KS": "66101",
    "KY": "40201", "LA": "70101", "ME": "04101", "MD": "21201",
    "MA": "02101", "MI": "48201", "MN": "55401", "MS": "39201",
    "MO": "63101", "MT": "59101", "NE": "68101", "NV": "89101",
    "NH": "03101", "NJ": "07001", "NM": "87101", "NY": "10001",
    "NC": "28201", "ND": "58101", "OH": "44101", "OK": "73101",
    "OR": "97201", "PA": "19101", "RI": "02901", "SC": "29201",
    "SD": "57101", "TN": "37201", "TX": "75201", "UT": "84101",
    "VT": "05401", "VA": "23201", "WA": "98101", "WV": "25301",
    "WI": "53201", "WY": "82001", "DC": "20001",
}

STATE_ABBREVIATIONS: Mapping[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY", "district of columbia": "DC", "washington dc": "DC",
}

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_city(city: str) -> str:
    return _WHITESPACE.sub(" ", _NON_ALNUM.sub("", (city or "").lower())).strip()


def normalize_state(state: str) -> str:
    """Return the USPS abbreviation for a state name or abbreviation."""

    normalized = normalize_city(state)
    if len(normalized) == 2:
        return normalized.upper()
    return STATE_ABBREVIATIONS.get(normalized, normalized.upper())


class ZipLookup:
    """Maps a city/state pair to a ZIP code without network access.

    Entries come from ``entries`` and from a JSON table file holding a list of
    ``{"city", "state", "zipcode"}`` objects. The file is read at most once.
    """

    def __init__(
        self,
        table_path: Optional[str | Path] = None,
        entries: Optional[Iterable[Mapping[str, str]]] = None,
        *,
        use_state_centroids: bool = True,
    ) -> None:
        self._table_path = Path(table_path) if table_path else None
        self._use_state_centroids = use_state_centroids
        self._seed: List[Mapping[str, str]] = list(entries or [])
        self._table: Optional[Dict[Tuple[str, str], str]] = None

    def _load(self) -> Dict[Tuple[str, str], str]:
        if self._table is not None:
            return self._table

        table: Dict[Tuple[str, str], str] = {}
        rows: List[Mapping[str, str]] = []
        if self._table_path is not None and self._table_path.exists():
            try:
                loaded = json.loads(self._table_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                LOGGER.warning("Could not read ZIP lookup table %s: %s", self._table_path, exc)
            else:
                if isinstance(loaded, list):
                    rows.extend(row for row in loaded if isinstance(row, Mapping))
        rows.extend(self._seed)

        for row in rows:
            city = normalize_city(str(row.get("city") or ""))
            state = normalize_state(str(row.get("state") or ""))
            zipcode = str(row.get("zipcode") or row.get("zip") or "").strip()
            if city and state and zipcode:
                table[(city, state)] = zipcode
        LOGGER.debug("Loaded %s ZIP lookup entries", len(table))
        self._table = table
        return table

    def lookup(self, city: Optional[str], state: Optional[str]) -> str:
        """Return the ZIP for ``city``/``state`` or an empty string."""

        if not city or not state:
            return ""
        state_abbr = normalize_state(state)
        match = self._load().get((normalize_city(city), state_abbr))
        if match:
            return match
        if self._use_state_centroids:
            return STATE_ZIP_CENTROIDS.get(state_abbr, "")
        return ""

    def add_entry(self, city: str, state: str, zipcode: str) -> None:
        """Record a mapping and persist it to the table file when one is configured."""

        table = self._load()
        table[(normalize_city(city), normalize_state(state))] = zipcode
        if self._table_path is None:
            return
        self._table_path.parent.mkdir(parents=True, exist_ok=True)
        rows = [{"city": key[0], "state": key[1], "zipcode": value} for key, value in table.items()]
        self._table_path.write_text(json.dumps(rows, indent=2), encoding="utf-8")


__all__ = ["STATE_ZIP_CENTROIDS", "ZipLookup", "normalize_city", "normalize_state"]
