"""Message filter for system notices and omitted media."""

from __future__ import annotations

import re
from typing import Optional

SYSTEM_NOTICES = (
    "messages and calls are end-to-end encrypted",
    "created this group",
    "changed the subject",
    "changed this group's icon",
    "deleted this message",
    "you deleted this message",
    "missed voice call",
    "missed video call",
)

MEDIA_OMITTED_RE = re.compile(
    r"^[\u200e\u200f]?(image|video|gif|sticker|audio|document) omitted",
    re.IGNORECASE,
)


def is_skippable(text: Optional[str]) -> bool:
    """Return True if a message body carries no human-authored content."""

    if not text:
        return True
    lowered = str(text).lower()
    if any(notice in lowered for notice in SYSTEM_NOTICES):
        return True
    return bool(MEDIA_OMITTED_RE.match(str(text)))
