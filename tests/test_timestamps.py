from __future__ import annotations

from datetime import datetime

import pytest

from core.models import Message
from core.timestamps import (
    calendar_date,
    find_timestamp_index,
    normalize_timestamp_string,
    parse_to_instant,
)


def _messages(*timestamps: str) -> list[Message]:
    return [Message(timestamp=ts, sender="s", text=f"m{i}") for i, ts in enumerate(timestamps)]


def test_normalize_replaces_no_break_spaces() -> None:
    assert normalize_timestamp_string("  02/12/23, 7:27:49\u202fAM ") == "02/12/23, 7:27:49 AM"
    assert normalize_timestamp_string("02/12/23,\u00a07:27:49 AM") == "02/12/23, 7:27:49 AM"


@pytest.mark.parametrize("value", ["", "  x\u202fy  ", "02/12/23, 7:27:49\u00a0PM", None, 42])
def test_normalize_is_idempotent(value) -> None:
    once = normalize_timestamp_string(value)
    assert normalize_timestamp_string(once) == once


def test_normalize_coerces_non_strings() -> None:
    assert normalize_timestamp_string(None) == ""
    assert normalize_timestamp_string(123) == "123"


def test_parse_day_first() -> None:
    assert parse_to_instant("02/12/23, 7:27:49 AM") == datetime(2023, 12, 2, 7, 27, 49)
    assert parse_to_instant("2/1/2024, 7:05:09 pm") == datetime(2024, 1, 2, 19, 5, 9)


def test_parse_meridiem_edges() -> None:
    assert parse_to_instant("01/01/24, 12:00:00 AM").hour == 0
    assert parse_to_instant("01/01/24, 12:30:00 PM").hour == 12
    assert parse_to_instant("01/01/24, 1:00:00 PM").hour == 13


def test_parse_two_digit_year_pivot() -> None:
    assert parse_to_instant("01/01/69, 1:00:00 AM").year == 2069
    assert parse_to_instant("01/01/70, 1:00:00 AM").year == 1970


def test_parse_accepts_narrow_no_break_space() -> None:
    assert parse_to_instant("18/08/24, 10:57:29\u202fAM") == datetime(2024, 8, 18, 10, 57, 29)


@pytest.mark.parametrize(
    "value",
    ["", "not a timestamp", "31/02/23, 1:00:00 AM", "02/12/23 7:27:49 AM", "02/12/23, 7:27 AM", None],
)
def test_parse_returns_none_on_mismatch(value) -> None:
    assert parse_to_instant(value) is None


def test_calendar_date() -> None:
    assert calendar_date("02/12/23, 7:27:49 AM") == "02/12/23"
    assert calendar_date("2/1/24, 7:27:49 AM") == "2/1/24"
    assert calendar_date("garbage") == ""


def test_find_prefers_exact_match() -> None:
    messages = _messages("01/01/24, 10:00:00 AM", "01/01/24, 10:00:01 AM")
    assert find_timestamp_index(messages, "01/01/24, 10:00:01\u202fAM", 5) == 1


def test_find_nearest_within_tolerance() -> None:
    messages = _messages("01/01/24, 10:00:00 AM", "01/01/24, 10:00:05 AM", "01/01/24, 10:00:09 AM")
    assert find_timestamp_index(messages, "01/01/24, 10:00:08 AM", 2) == 2


def test_find_tie_goes_to_first_message() -> None:
    messages = _messages("01/01/24, 10:00:00 AM", "01/01/24, 10:00:02 AM")
    assert find_timestamp_index(messages, "01/01/24, 10:00:01 AM", 2) == 0


def test_find_tolerance_boundary() -> None:
    messages = _messages("01/01/24, 10:00:02 AM")
    assert find_timestamp_index(messages, "01/01/24, 10:00:00 AM", 2) == 0
    assert find_timestamp_index(messages, "01/01/24, 10:00:00 AM", 1.5) == -1


def test_find_unparseable_target() -> None:
    messages = _messages("01/01/24, 10:00:00 AM")
    assert find_timestamp_index(messages, "yesterday", 2) == -1
