"""Chat export parser (core domain).

Each message starts with a ``[date, time] rest`` header line; every following
non-blank line up to the next header belongs to the same message body.
"""

from __future__ import annotations

import re
from typing import List, Optional

from core.models import Message

LINE_BREAK_RE = re.compile(r"\r?\n")

HEADER_RE = re.compile(
    r"^\[(\d{1,2}/\d{1,2}/\d{2,4}),\s+(\d{1,2}:\d{2}:\d{2})[\u202f\u00a0 ]?(AM|PM)\]\s+(.*)$",
    re.IGNORECASE,
)

SENDER_SEPARATOR = ": "


def _split_sender(rest: str) -> tuple[str, str]:
    sender, sep, body = rest.partition(SENDER_SEPARATOR)
    if not sep:
        # System notices carry no sender.
        return "", rest.strip()
    return sender.strip(), body.strip()


def parse_chat(text: Optional[str]) -> List[Message]:
    """Split raw transcript text into ordered messages."""

    messages: List[Message] = []
    timestamp = ""
    sender = ""
    body_lines: Optional[List[str]] = None

    def flush() -> None:
        if body_lines is not None:
            messages.append(Message(timestamp=timestamp, sender=sender, text="\n".join(body_lines)))

    for raw_line in LINE_BREAK_RE.split(text or ""):
        match = HEADER_RE.match(raw_line)
        if match:
            flush()
            date_part, time_part, meridiem, rest = match.groups()
            timestamp = f"{date_part}, {time_part} {meridiem.upper()}"
            sender, body = _split_sender(rest)
            body_lines = [body]
            continue

        # Lines before the first header have nowhere to go.
        if body_lines is None:
            continue
        line = raw_line.strip()
        if line:
            body_lines.append(line)

    flush()
    return messages
