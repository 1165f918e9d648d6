from __future__ import annotations

import pytest

from core.filters import SYSTEM_NOTICES, is_skippable


@pytest.mark.parametrize("notice", SYSTEM_NOTICES)
def test_system_notices_are_skippable(notice: str) -> None:
    assert is_skippable(notice)
    assert is_skippable(notice.upper())
    assert is_skippable(f"Alice {notice} just now")


@pytest.mark.parametrize("kind", ["image", "video", "gif", "sticker", "audio", "document"])
def test_media_omitted_is_skippable(kind: str) -> None:
    assert is_skippable(f"\u200e{kind} omitted")
    assert is_skippable(f"{kind.upper()} OMITTED")


@pytest.mark.parametrize("text", ["", None])
def test_empty_text_is_skippable(text) -> None:
    assert is_skippable(text)


@pytest.mark.parametrize(
    "text",
    [
        "You have to watch The Social Network",
        "the image omitted from the poster was better",
        "called you back",
    ],
)
def test_ordinary_sentences_are_kept(text: str) -> None:
    assert not is_skippable(text)
