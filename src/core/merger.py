"""Recommendation store merger.

Mentions are deduplicated by (sender, calendar date): the same person
recommending the same title several times on one day counts once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from core.models import EnrichedRecommendation, Mention, SavedItem, StoredRecord
from core.ports import RecordStorePort
from core.timestamps import calendar_date

LOGGER = logging.getLogger(__name__)


@dataclass
class GroupedRecommendation:
    """All mentions of one title within a batch."""

    title: str
    type: str
    link: Optional[str]
    image_url: Optional[str]
    mentions: List[Mention] = field(default_factory=list)


@dataclass(frozen=True)
class PlannedWrite:
    """A create (record_id is None) or an update of an existing record."""

    group: GroupedRecommendation
    mentions: tuple[Mention, ...]
    record_id: Optional[str] = None

    @property
    def is_create(self) -> bool:
        return self.record_id is None


def is_duplicate_mention(mentions: Iterable[Mention], mention: Mention) -> bool:
    date = calendar_date(mention.timestamp)
    return any(
        existing.sender == mention.sender and calendar_date(existing.timestamp) == date
        for existing in mentions
    )


def group_and_dedupe(items: Iterable[EnrichedRecommendation]) -> Dict[str, GroupedRecommendation]:
    """Group by exact title; the first item of a title fixes its type and media."""

    grouped: Dict[str, GroupedRecommendation] = {}
    for item in items:
        group = grouped.get(item.title)
        if group is None:
            group = GroupedRecommendation(
                title=item.title,
                type=item.type,
                link=item.link,
                image_url=item.image_url,
            )
            grouped[item.title] = group
        if not is_duplicate_mention(group.mentions, item.mentioned_by):
            group.mentions.append(item.mentioned_by)
    return grouped


def merge_mentions(existing: Sequence[Mention], new_mentions: Iterable[Mention]) -> List[Mention]:
    merged = list(existing)
    for mention in new_mentions:
        if not is_duplicate_mention(merged, mention):
            merged.append(mention)
    return merged


def plan_writes(
    grouped: Dict[str, GroupedRecommendation],
    existing: Dict[str, StoredRecord],
) -> List[PlannedWrite]:
    """Decide the minimal set of creates and updates."""

    writes: List[PlannedWrite] = []
    for title, group in grouped.items():
        record = existing.get(title)
        if record is None:
            writes.append(PlannedWrite(group=group, mentions=tuple(group.mentions)))
            continue
        merged = merge_mentions(record.mentioned_by, group.mentions)
        # Unchanged merges are skipped to save a write.
        if len(merged) > len(record.mentioned_by):
            writes.append(PlannedWrite(group=group, mentions=tuple(merged), record_id=record.id))
    return writes


class RecommendationMerger:
    """Merges enriched recommendations into the record store."""

    def __init__(self, store: RecordStorePort) -> None:
        self._store = store

    def fetch_existing(self, titles: Sequence[str]) -> Dict[str, StoredRecord]:
        """Load stored records by title in one query.

        Fails open: a read error is treated as "nothing stored yet", which may
        create a duplicate record but never loses a mention.
        """

        if not titles:
            return {}
        try:
            records = self._store.find_by_titles(titles)
        except Exception:
            LOGGER.exception("Failed fetching existing records for %s titles", len(titles))
            return {}
        return {record.title: record for record in records}

    def merge(self, items: Iterable[EnrichedRecommendation]) -> List[SavedItem]:
        """Persist a batch; returns only the writes that succeeded."""

        grouped = group_and_dedupe(items)
        if not grouped:
            return []
        existing = self.fetch_existing(list(grouped))
        saved: List[SavedItem] = []
        for write in plan_writes(grouped, existing):
            group = write.group
            try:
                if write.is_create:
                    record_id = self._store.create_record(
                        group.title,
                        group.type,
                        write.mentions,
                        group.link,
                        group.image_url,
                    )
                else:
                    record_id = write.record_id
                    self._store.update_mentions(record_id, write.mentions)
            except Exception:
                LOGGER.exception("Write failed for %r", group.title)
                continue
            saved.append(
                SavedItem(id=record_id, title=group.title, type=group.type, mentions=tuple(group.mentions))
            )
        return saved
