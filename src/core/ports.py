"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the verification and extraction
collaborators, metadata lookups, and storage so that the core can be reused
with different backends.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from core.models import (
    ExtractionResult,
    Mention,
    Message,
    RecommendationCandidate,
    StoredRecord,
    TokenUsage,
    VerificationResult,
)


class VerificationPort(Protocol):
    """Server-side identity check for an anchor digest."""

    async def verify(self, digest: str) -> VerificationResult:
        ...


class ExtractionPort(Protocol):
    """Server-side extraction, enrichment, and persistence of one batch."""

    async def extract(self, batch: Sequence[Message]) -> ExtractionResult:
        ...


class RecommendationExtractorPort(Protocol):
    """Turns a batch of messages into raw recommendation candidates."""

    async def extract(
        self, batch: Sequence[Message]
    ) -> tuple[list[RecommendationCandidate], Optional[TokenUsage]]:
        ...


class LinkMetadataPort(Protocol):
    """Resolves a URL to its page title and preview image."""

    async def fetch(self, url: str) -> tuple[Optional[str], Optional[str]]:
        ...


class TitleSearchPort(Protocol):
    """Looks up a canonical title and poster for a movie or show."""

    async def search(self, title: str, kind: str) -> Optional[tuple[str, Optional[str]]]:
        ...


class RecordStorePort(Protocol):
    """Storage operations required by the recommendation merger."""

    def find_by_titles(self, titles: Iterable[str]) -> list[StoredRecord]:
        ...

    def create_record(
        self,
        title: str,
        kind: str,
        mentioned_by: Sequence[Mention],
        link: Optional[str],
        image_url: Optional[str],
    ) -> str:
        ...

    def update_mentions(self, record_id: str, mentioned_by: Sequence[Mention]) -> None:
        ...


class CheckpointPort(Protocol):
    """Single persisted progress timestamp."""

    def get_checkpoint(self) -> str:
        ...

    def set_checkpoint(self, timestamp: str) -> None:
        ...
