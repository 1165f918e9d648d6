"""Timestamp helpers for chat export headers.

Exports write timestamps as ``D/M/YY, H:MM:SS AM`` with a narrow no-break
space before the meridiem on newer clients, so every comparison goes through
``normalize_timestamp_string`` first.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional, Sequence

from core.models import Message

_SPACE_VARIANTS_RE = re.compile("[\u202f\u00a0]")

_TIMESTAMP_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{2,4}),\s*(\d{1,2}):(\d{2}):(\d{2})\s*(AM|PM)$",
    re.IGNORECASE,
)

# Two-digit years below this pivot belong to the 2000s, the rest to the 1900s.
CENTURY_PIVOT = 70


def normalize_timestamp_string(value: Any) -> str:
    """Replace no-break space variants with a plain space and trim."""

    if value is None:
        return ""
    return _SPACE_VARIANTS_RE.sub(" ", str(value)).strip()


def parse_to_instant(value: Any) -> Optional[datetime]:
    """Parse a day-first export timestamp into a naive datetime.

    Returns None for anything that does not match the export pattern or
    names an impossible calendar date.
    """

    match = _TIMESTAMP_RE.match(normalize_timestamp_string(value))
    if not match:
        return None

    day, month, year, hour, minute, second = (int(part) for part in match.groups()[:6])
    meridiem = match.group(7).upper()

    if year < 100:
        year += 2000 if year < CENTURY_PIVOT else 1900
    if meridiem == "AM" and hour == 12:
        hour = 0
    elif meridiem == "PM" and hour != 12:
        hour += 12

    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def calendar_date(timestamp: Any) -> str:
    """Return the date portion of a timestamp (``DD/MM/YY``), or ``""``."""

    normalized = normalize_timestamp_string(timestamp)
    date_part, sep, _ = normalized.partition(",")
    if not sep:
        return ""
    return date_part.strip()


def find_timestamp_index(
    messages: Sequence[Message],
    target: str,
    tolerance_seconds: float,
) -> int:
    """Locate a message by timestamp, returning its index or -1.

    An exact match on the normalized string wins. Otherwise the message whose
    instant is nearest to the target within ``tolerance_seconds`` is chosen,
    with ties going to the earliest message.
    """

    normalized_target = normalize_timestamp_string(target)
    for index, message in enumerate(messages):
        if normalize_timestamp_string(message.timestamp) == normalized_target:
            return index

    target_instant = parse_to_instant(normalized_target)
    if target_instant is None:
        return -1

    best_index = -1
    best_diff = float("inf")
    for index, message in enumerate(messages):
        instant = parse_to_instant(message.timestamp)
        if instant is None:
            continue
        diff = abs((instant - target_instant).total_seconds())
        if diff <= tolerance_seconds and diff < best_diff:
            best_index = index
            best_diff = diff
            if diff == 0:
                break
    return best_index
