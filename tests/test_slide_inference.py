"""Tests for slide capture-time inference and intake."""

import pytest

from services.slides import build_slide_records, infer_time_from_filename
from services.transcripts import UnsupportedFormatError
from shared.enums import SlideStatus
from shared.models import InvalidSlideTransition, SourceFile


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("slide_00_10_05.png", 605.0),
        ("capture-1-02-03.jpg", 3723.0),
        ("frame_12-30.png", 750.0),
        ("shot 00:00:00.png", 0.0),
        ("deck_02_15_slide_9_9.png", 135.0),
    ],
)
def test_infer_time_from_filename(filename, expected):
    assert infer_time_from_filename(filename) == expected


def test_no_pattern_is_absent_not_zero():
    assert infer_time_from_filename("noinfo.png") is None
    assert infer_time_from_filename("slide7.png") is None


def test_first_match_wins():
    # The triple wins over the later pair.
    assert infer_time_from_filename("0_1_2-then-5_6.png") == 62.0


def test_build_slide_records_sorts_by_filename(slide_factory):
    records = build_slide_records([slide_factory("b.png"), slide_factory("a_00_01.png"), slide_factory("c.jpg")])

    assert [record.filename for record in records] == ["a_00_01.png", "b.png", "c.jpg"]
    assert records[0].inferred_time == 1.0
    assert records[1].inferred_time is None
    assert all(record.status is SlideStatus.PENDING for record in records)
    assert all(record.analysis is None for record in records)
    assert len({record.id for record in records}) == 3


def test_build_slide_records_rejects_non_images():
    with pytest.raises(UnsupportedFormatError):
        build_slide_records([SourceFile(filename="notes.txt", content=b"hello", mime_type="text/plain")])


def test_slide_status_is_one_way(slide_factory):
    record = build_slide_records([slide_factory("only.png")])[0]

    with pytest.raises(InvalidSlideTransition):
        record.advance(SlideStatus.DONE)

    record.advance(SlideStatus.PROCESSING)
    record.advance(SlideStatus.DONE, "A chart")
    assert record.analysis == "A chart"

    with pytest.raises(InvalidSlideTransition):
        record.advance(SlideStatus.PROCESSING)
