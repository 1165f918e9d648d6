"""Resume point resolution for incremental ingestion."""

from __future__ import annotations

from typing import Dict, List, Sequence

from core.errors import ResumeError
from core.filters import is_skippable
from core.models import Message
from core.timestamps import find_timestamp_index, normalize_timestamp_string


def resolve_resume_index(
    messages: Sequence[Message],
    checkpoint: str,
    tolerance_seconds: float,
) -> int:
    """Return the index of the first message after the checkpoint.

    An empty checkpoint means nothing has been processed yet. A checkpoint
    that matches no message, even fuzzily, cannot be repaired automatically.
    """

    if not normalize_timestamp_string(checkpoint):
        return 0

    index = find_timestamp_index(messages, checkpoint, tolerance_seconds)
    if index < 0:
        raise ResumeError("Incompatible chat export. Please contact the developer.")
    return index + 1


def anonymize(messages: Sequence[Message], sender_map: Dict[str, str]) -> List[Message]:
    return [
        Message(
            timestamp=message.timestamp,
            sender=sender_map.get(message.sender, message.sender),
            text=message.text,
        )
        for message in messages
    ]


def eligible_messages(messages: Sequence[Message], resume_index: int) -> List[Message]:
    """Messages from the resume point on that carry human-authored content."""

    return [message for message in messages[resume_index:] if not is_skippable(message.text)]
