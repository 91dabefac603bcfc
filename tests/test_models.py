"""Tests for shared pipeline models."""

import base64

import pytest
from pydantic import ValidationError

from shared.enums import PipelineStage
from shared.models import PipelineState, SourceFile, SourcePayload, TranscriptLine


def test_transcript_line_is_immutable():
    line = TranscriptLine(start=1, end=2, speaker="Host", text="Hi")

    with pytest.raises(ValidationError):
        line.text = "changed"


def test_transcript_line_requires_text_and_non_negative_start():
    with pytest.raises(ValidationError):
        TranscriptLine(start=0, end=0, text="  ")
    with pytest.raises(ValidationError):
        TranscriptLine(start=-1, end=0, text="x")

    assert TranscriptLine(start=0, end=0, speaker=" ", text="x").speaker == "Unknown"
    assert TranscriptLine(start=0, end=0, speaker=None, text="x").speaker == "Unknown"


@pytest.mark.parametrize("bad", [float("inf"), float("nan")])
def test_transcript_line_rejects_non_finite_times(bad):
    with pytest.raises(ValidationError):
        TranscriptLine(start=bad, end=1, text="x")
    with pytest.raises(ValidationError):
        TranscriptLine(start=0, end=bad, text="x")


def test_pipeline_state_progress():
    assert PipelineState().progress == 0.0
    assert PipelineState(stage=PipelineStage.ANALYZING, total_units=3, completed_units=2).progress == pytest.approx(2 / 3)


def test_source_payload_round_trip():
    payload = SourcePayload(filename="a.png", content_base64=base64.b64encode(b"abc").decode("ascii"))

    source = payload.to_source_file()

    assert source.content == b"abc"
    assert source.media_type == "image/png"
    assert source.content_base64 == payload.content_base64


@pytest.mark.asyncio
async def test_source_file_from_path(tmp_path):
    path = tmp_path / "talk.vtt"
    path.write_bytes(b"WEBVTT\n")

    source = await SourceFile.from_path(path)

    assert source.filename == "talk.vtt"
    assert source.extension == ".vtt"
    assert source.text() == "WEBVTT\n"
