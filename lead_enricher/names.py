"""Name cleaning and the free name/location resolution step."""
from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from .models import Lead, ResolvedIdentity
from .zip_lookup import ZipLookup

LOGGER = logging.getLogger(__name__)

NAME_SUFFIXES = frozenset(
    {
        "jr", "sr", "ii", "iii", "iv", "v", "vi",
        "phd", "md", "do", "dds", "dmd", "cpa", "mba", "mph", "jd", "rn", "np", "pa",
        "esq", "cfp", "pharmd", "psyd", "lcsw", "lmft", "clu", "chfc", "pmp",
    }
)

_NON_NAME_CHARS = re.compile(r"[^\w\s\-']")
_API_NON_NAME_CHARS = re.compile(r"[^\w\s\-'.,]")
_WHITESPACE = re.compile(r"\s+")
_MAX_CREDENTIAL_LETTERS = 5


def clean_name(value: Optional[str]) -> str:
    """Strip emoji, symbols and punctuation except hyphens and apostrophes."""

    if not value:
        return ""
    return _WHITESPACE.sub(" ", _NON_NAME_CHARS.sub("", value)).strip()


def clean_name_for_api(value: Optional[str]) -> str:
    """Lighter cleaning used for provider queries; keeps periods and commas."""

    if not value:
        return ""
    return _WHITESPACE.sub(" ", _API_NON_NAME_CHARS.sub("", value)).strip()


def _letters(token: str) -> str:
    return "".join(char for char in token if char.isalpha())


def _is_suffix(token: str) -> bool:
    return _letters(token).lower() in NAME_SUFFIXES


def _looks_like_credential(token: str) -> bool:
    letters = _letters(token)
    return bool(letters) and letters.isupper() and len(letters) <= _MAX_CREDENTIAL_LETTERS


def _is_candidate(token: str, *, strict: bool) -> bool:
    if len(_letters(token)) <= 1:
        return False
    if _is_suffix(token):
        return False
    if strict and _looks_like_credential(token):
        return False
    return True


def split_name(full_name: Optional[str]) -> Tuple[str, str]:
    """Split a display name into ``(first, last)``.

    >>> split_name("John A. Smith Jr.")
    ('John', 'Smith')
    >>> split_name("MARY JONES")
    ('MARY', 'JONES')
    """

    if not full_name:
        return "", ""
    head = full_name.split(",", 1)[0]
    tokens = clean_name(head).split()
    if not tokens:
        return "", ""

    first = tokens[0]
    rest = tokens[1:]
    if not rest:
        return first, ""

    for strict in (True, False):
        for token in reversed(rest):
            if _is_candidate(token, strict=strict):
                return first, token
    return first, rest[0]


def resolve(lead: Lead, zip_lookup: Optional[ZipLookup] = None) -> ResolvedIdentity:
    """Resolve first/last name and ZIP code for ``lead`` without paid calls."""

    split_first, split_last = split_name(lead.name)
    first = clean_name(lead.first_name) or split_first
    last = clean_name(lead.last_name) or split_last
    if first and not last and not lead.name and " " in first:
        first, last = split_name(first)

    zip_code = (lead.zip_code or "").strip()
    if not zip_code and zip_lookup is not None:
        zip_code = zip_lookup.lookup(lead.city, lead.state)
        if zip_code:
            LOGGER.debug("Resolved ZIP %s for %s, %s", zip_code, lead.city, lead.state)

    return ResolvedIdentity(first_name=first, last_name=last, zip_code=zip_code)


__all__ = ["NAME_SUFFIXES", "clean_name", "clean_name_for_api", "resolve", "split_name"]
