"""Identity verification against known anchor messages.

A genuine export contains one message at each configured anchor timestamp.
The bodies of those messages, joined in anchor order, hash to a digest that
only the server knows, so the transcript can be fingerprinted without the
server ever receiving chat content.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from core.chat_parser import parse_chat
from core.config import Anchor
from core.errors import TransientError, WrongFileError
from core.models import Message
from core.ports import VerificationPort
from core.timestamps import find_timestamp_index

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedTranscript:
    """Outcome of a successful identity check."""

    messages: List[Message]
    digest: str
    sender_map: Dict[str, str]
    progress_timestamp: str


def resolve_anchors(
    messages: Sequence[Message],
    anchors: Sequence[Anchor],
    tolerance_seconds: float,
) -> Optional[List[Message]]:
    """Return the message for every anchor in order, or None if any is missing."""

    resolved: List[Message] = []
    for anchor in anchors:
        index = find_timestamp_index(messages, anchor.timestamp, tolerance_seconds)
        if index < 0:
            LOGGER.info("Anchor %s not found in transcript", anchor.timestamp)
            return None
        resolved.append(messages[index])
    return resolved


def compute_anchor_digest(anchor_messages: Sequence[Message]) -> str:
    """SHA-256 over the anchor bodies joined by newlines, as lowercase hex."""

    payload = "\n".join(message.text for message in anchor_messages)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_sender_map(
    anchor_messages: Sequence[Message],
    anchors: Sequence[Anchor],
) -> Dict[str, str]:
    """Map each anchor's sender to the label configured at the same position."""

    sender_map: Dict[str, str] = {}
    for message, anchor in zip(anchor_messages, anchors):
        if message.sender:
            sender_map[message.sender] = anchor.label
    return sender_map


def digest_transcript(
    text: str,
    anchors: Sequence[Anchor],
    tolerance_seconds: float,
) -> tuple[List[Message], List[Message], str]:
    """Parse a transcript and hash its anchors.

    Returns (all messages, anchor messages, digest); raises WrongFileError if
    an anchor cannot be resolved.
    """

    messages = parse_chat(text)
    anchor_messages = resolve_anchors(messages, anchors, tolerance_seconds)
    if anchor_messages is None:
        raise WrongFileError("This is the wrong file. Please upload the correct one.")
    return messages, anchor_messages, compute_anchor_digest(anchor_messages)


async def verify_transcript(
    text: str,
    anchors: Sequence[Anchor],
    tolerance_seconds: float,
    verifier: VerificationPort,
) -> VerifiedTranscript:
    """Confirm the transcript is the expected export and fetch the checkpoint."""

    messages, anchor_messages, digest = digest_transcript(text, anchors, tolerance_seconds)

    try:
        result = await verifier.verify(digest)
    except Exception as exc:
        raise TransientError("Sorry there was a server error. Please try again.") from exc

    if not result.ok:
        raise WrongFileError("Chat export didn't match the expected group.")

    return VerifiedTranscript(
        messages=messages,
        digest=digest,
        sender_map=build_sender_map(anchor_messages, anchors),
        progress_timestamp=result.progress_timestamp or "",
    )
