"""Tests for timecode parsing and rendering."""

import pytest

from services.transcripts.timecode import format_timecode, parse_timecode


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("0:00:12.50", 12.5),
        ("1:02:03.25", 3723.25),
        ("00:01:02,500", 62.5),
        ("02:03.5", 123.5),
        ("02:03,75", 123.75),
        ("  0:00:01  ", 1.0),
    ],
)
def test_parse_timecode_accepts_both_layouts_and_separators(text, expected):
    assert parse_timecode(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["", None, "abc", "12", "1:2:3:4", "1.2.3"])
def test_parse_timecode_returns_zero_for_unrecognized_input(text):
    assert parse_timecode(text) == 0.0


def test_format_timecode_renders_hours_minutes_seconds():
    assert format_timecode(0) == "0:00:00.00"
    assert format_timecode(12.5) == "0:00:12.50"
    assert format_timecode(3723.25) == "1:02:03.25"


def test_format_timecode_unknown_for_missing_value():
    assert format_timecode(None) == "unknown"


def test_format_timecode_carries_rounding_into_next_field():
    assert format_timecode(59.999) == "0:01:00.00"
    assert format_timecode(3599.996) == "1:00:00.00"


@pytest.mark.parametrize("text", ["0:00:12.50", "12:34.56", "01:02:03,04", "10:00:00.10"])
def test_decode_encode_decode_is_stable(text):
    first = format_timecode(parse_timecode(text))
    second = format_timecode(parse_timecode(first))
    assert first == second
    assert parse_timecode(first) == pytest.approx(parse_timecode(text), abs=0.005)
