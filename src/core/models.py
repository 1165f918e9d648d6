"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Message:
    """One parsed chat message; text may span several lines."""

    timestamp: str
    sender: str
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"timestamp": self.timestamp, "sender": self.sender, "text": self.text}


@dataclass(frozen=True)
class Mention:
    """Who mentioned a recommendation and when."""

    sender: str
    timestamp: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Mention":
        return cls(
            sender=str(raw.get("sender") or "").strip(),
            timestamp=str(raw.get("timestamp") or "").strip(),
        )

    def to_dict(self) -> dict[str, str]:
        return {"sender": self.sender, "timestamp": self.timestamp}


@dataclass(frozen=True)
class RecommendationCandidate:
    """Untrusted extraction output for a single mention."""

    title: str
    type: str
    sender: str
    timestamp: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RecommendationCandidate":
        return cls(
            title=str(raw.get("title") or "").strip(),
            type=str(raw.get("type") or "").strip(),
            sender=str(raw.get("sender") or "").strip(),
            timestamp=str(raw.get("timestamp") or "").strip(),
        )


@dataclass(frozen=True)
class EnrichedRecommendation:
    """A candidate with a canonical title and optional link/image."""

    title: str
    type: str
    mentioned_by: Mention
    link: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class StoredRecord:
    """Persisted recommendation keyed by its exact title."""

    id: str
    title: str
    type: str
    mentioned_by: Tuple[Mention, ...]
    link: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0


@dataclass(frozen=True)
class VerificationResult:
    """Response of the identity verification collaborator."""

    ok: bool
    progress_timestamp: str = ""


@dataclass(frozen=True)
class SavedItem:
    """A recommendation that was created or updated in the store."""

    id: str
    title: str
    type: str
    mentions: Tuple[Mention, ...]


@dataclass(frozen=True)
class ExtractionResult:
    """Response of the extraction collaborator for one batch."""

    ok: bool
    progress_timestamp: str = ""
    usage: Optional[TokenUsage] = None
    items: Tuple[SavedItem, ...] = field(default_factory=tuple)
