from __future__ import annotations

import asyncio
import hashlib

import pytest

from core.chat_parser import parse_chat
from core.config import Anchor
from core.errors import TransientError, WrongFileError
from core.models import Message, VerificationResult
from core.verifier import (
    build_sender_map,
    compute_anchor_digest,
    resolve_anchors,
    verify_transcript,
)

ANCHORS = (
    Anchor("02/12/23, 7:27:49 AM", "A"),
    Anchor("18/12/23, 2:24:03 PM", "D"),
)

TRANSCRIPT = "\n".join(
    [
        "[01/12/23, 9:00:00 AM] Messages and calls are end-to-end encrypted.",
        "[02/12/23, 7:27:49 AM] Alice: read Dune",
        "it is long",
        "[10/12/23, 8:00:00 AM] Bob: filler",
        "[18/12/23, 2:24:03 PM] Dev: watch Dark",
    ]
)

EXPECTED_DIGEST = hashlib.sha256("read Dune\nit is long\nwatch Dark".encode("utf-8")).hexdigest()


class FakeVerifier:
    def __init__(self, ok: bool = True, progress: str = "", error: Exception | None = None) -> None:
        self.ok = ok
        self.progress = progress
        self.error = error
        self.digests: list[str] = []

    async def verify(self, digest: str) -> VerificationResult:
        self.digests.append(digest)
        if self.error:
            raise self.error
        return VerificationResult(ok=self.ok, progress_timestamp=self.progress)


def test_resolve_anchors_exact() -> None:
    resolved = resolve_anchors(parse_chat(TRANSCRIPT), ANCHORS, 2)
    assert [m.sender for m in resolved] == ["Alice", "Dev"]


def test_resolve_anchors_within_tolerance() -> None:
    shifted = TRANSCRIPT.replace("7:27:49 AM", "7:27:51 AM")
    resolved = resolve_anchors(parse_chat(shifted), ANCHORS, 2)
    assert resolved is not None
    assert resolved[0].text == "read Dune\nit is long"


def test_resolve_anchors_missing_returns_none() -> None:
    shifted = TRANSCRIPT.replace("7:27:49 AM", "7:27:52 AM")
    assert resolve_anchors(parse_chat(shifted), ANCHORS, 2) is None


def test_digest_is_deterministic_hex() -> None:
    anchors = resolve_anchors(parse_chat(TRANSCRIPT), ANCHORS, 2)
    digest = compute_anchor_digest(anchors)
    assert digest == EXPECTED_DIGEST
    assert digest == compute_anchor_digest(resolve_anchors(parse_chat(TRANSCRIPT), ANCHORS, 2))
    assert digest == digest.lower()


def test_sender_map_skips_empty_senders() -> None:
    anchor_messages = [
        Message("02/12/23, 7:27:49 AM", "Alice", "x"),
        Message("18/12/23, 2:24:03 PM", "", "system"),
    ]
    assert build_sender_map(anchor_messages, ANCHORS) == {"Alice": "A"}


def test_verify_transcript_success() -> None:
    verifier = FakeVerifier(progress="10/12/23, 8:00:00 AM")
    verified = asyncio.run(verify_transcript(TRANSCRIPT, ANCHORS, 2, verifier))

    assert verifier.digests == [EXPECTED_DIGEST]
    assert verified.sender_map == {"Alice": "A", "Dev": "D"}
    assert verified.progress_timestamp == "10/12/23, 8:00:00 AM"
    assert len(verified.messages) == 4


def test_verify_transcript_missing_anchor_is_wrong_file() -> None:
    verifier = FakeVerifier()
    broken = TRANSCRIPT.replace("[18/12/23, 2:24:03 PM]", "[19/12/23, 2:24:03 PM]")
    with pytest.raises(WrongFileError):
        asyncio.run(verify_transcript(broken, ANCHORS, 2, verifier))
    assert verifier.digests == []


def test_verify_transcript_rejected_digest_is_wrong_file() -> None:
    with pytest.raises(WrongFileError):
        asyncio.run(verify_transcript(TRANSCRIPT, ANCHORS, 2, FakeVerifier(ok=False)))


def test_verify_transcript_transport_error_is_transient() -> None:
    verifier = FakeVerifier(error=ConnectionError("down"))
    with pytest.raises(TransientError):
        asyncio.run(verify_transcript(TRANSCRIPT, ANCHORS, 2, verifier))
