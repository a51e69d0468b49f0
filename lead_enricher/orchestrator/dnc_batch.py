"""Standalone DNC scrub over already enriched rows."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Protocol

from ..models import DNCResult
from ..providers.base import PHONE_ALIASES, first_value, mask_phone

LOGGER = logging.getLogger(__name__)

DNC_COLUMNS = ("dncStatus", "isDoNotCall", "canContact", "dncReason")
SCRUB_PHONE_ALIASES = tuple(PHONE_ALIASES) + ("Phone 1", "phone1", "Mobile Phone", "Cell Phone")


class DNCCheckProtocol(Protocol):
    async def check_dnc(self, phone: str, token: str) -> DNCResult:  # pragma: no cover - runtime protocol
        ...


@dataclass(slots=True)
class ScrubSummary:
    total: int = 0
    do_not_call: int = 0
    safe: int = 0
    unknown: int = 0


def _annotate(row: Mapping[str, Any], result: Optional[DNCResult], reason: str = "") -> Dict[str, Any]:
    annotated = {key: value for key, value in row.items() if key not in DNC_COLUMNS}
    if result is None:
        annotated.update(dncStatus="Unknown", isDoNotCall="Unknown", canContact="Unknown", dncReason=reason)
        return annotated
    annotated.update(
        dncStatus="Do Not Call" if result.is_do_not_call else "Safe",
        isDoNotCall="Yes" if result.is_do_not_call else "No",
        canContact="Yes" if result.can_contact else "No",
        dncReason=result.reason or "",
    )
    return annotated


async def scrub_rows(
    rows: Iterable[Mapping[str, Any]],
    checker: DNCCheckProtocol,
    token: str,
    *,
    delay_seconds: float = 0.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> tuple[List[Dict[str, Any]], ScrubSummary]:
    """Check every row's phone and return annotated copies plus counts."""

    scrubbed: List[Dict[str, Any]] = []
    summary = ScrubSummary()
    pending = list(rows)
    for index, row in enumerate(pending, start=1):
        summary.total += 1
        phone = first_value(row, SCRUB_PHONE_ALIASES)
        if not phone:
            LOGGER.info("[%s/%s] No phone number", index, len(pending))
            scrubbed.append(_annotate(row, None, "No phone number"))
            summary.unknown += 1
            continue

        if index > 1 and delay_seconds > 0:
            await sleep(delay_seconds)
        result = await checker.check_dnc(phone, token)
        scrubbed.append(_annotate(row, result))
        if result.is_do_not_call:
            summary.do_not_call += 1
            LOGGER.info("[%s/%s] %s: Do Not Call (%s)", index, len(pending), mask_phone(phone), result.reason)
        else:
            summary.safe += 1
            LOGGER.info("[%s/%s] %s: Safe", index, len(pending), mask_phone(phone))

    LOGGER.info(
        "DNC scrub finished: %s rows, %s do not call, %s safe, %s unknown",
        summary.total,
        summary.do_not_call,
        summary.safe,
        summary.unknown,
    )
    return scrubbed, summary


__all__ = ["DNC_COLUMNS", "ScrubSummary", "scrub_rows"]
