"""Filtering and ordering of stored recommendations for display."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from core.models import Mention, StoredRecord
from core.timestamps import parse_to_instant

SORT_KEYS = ("mentions", "latest")

_EPOCH = datetime.min


def mention_count(record: StoredRecord) -> int:
    return len(record.mentioned_by)


def latest_mention(record: StoredRecord) -> Optional[Mention]:
    """The mention with the most recent parseable timestamp, if any."""

    best: Optional[Mention] = None
    best_instant = _EPOCH
    for mention in record.mentioned_by:
        instant = parse_to_instant(mention.timestamp)
        if instant is not None and (best is None or instant > best_instant):
            best = mention
            best_instant = instant
    return best


def _latest_instant(record: StoredRecord) -> datetime:
    latest = latest_mention(record)
    if latest is None:
        return _EPOCH
    return parse_to_instant(latest.timestamp) or _EPOCH


def filter_records(
    records: Iterable[StoredRecord],
    kind: Optional[str] = None,
    query: Optional[str] = None,
) -> List[StoredRecord]:
    """Keep records of a type whose title or any sender contains the query."""

    needle = (query or "").strip().lower()
    selected: List[StoredRecord] = []
    for record in records:
        if kind and record.type != kind:
            continue
        if needle:
            in_title = needle in record.title.lower()
            in_sender = any(needle in mention.sender.lower() for mention in record.mentioned_by)
            if not in_title and not in_sender:
                continue
        selected.append(record)
    return selected


def sort_records(records: Iterable[StoredRecord], sort_key: str = "mentions") -> List[StoredRecord]:
    """Order by mention count or recency, breaking ties by the other, then title."""

    if sort_key not in SORT_KEYS:
        raise ValueError(f"Unsupported sort key: {sort_key}")

    items = sorted(records, key=lambda record: record.title)
    if sort_key == "latest":
        return sorted(items, key=lambda r: (_latest_instant(r), mention_count(r)), reverse=True)
    return sorted(items, key=lambda r: (mention_count(r), _latest_instant(r)), reverse=True)
