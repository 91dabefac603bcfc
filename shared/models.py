"""
Shared data models for transcripts, slides, pipeline state and alignment results.
"""

from __future__ import annotations

import asyncio
import base64
import mimetypes
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .enums import SLIDE_TRANSITIONS, InputMode, PipelineStage, SlideStatus


class InvalidSlideTransition(ValueError):
    """Raised when a slide status would move backwards or skip a step."""


class SourceFile(BaseModel):
    """An uploaded file held fully in memory."""

    filename: str
    content: bytes = Field(default=b"", repr=False)
    mime_type: str | None = None

    @classmethod
    async def from_path(cls, path: str | Path) -> SourceFile:
        """Read a file from disk without blocking the event loop."""
        file_path = Path(path)
        content = await asyncio.to_thread(file_path.read_bytes)
        return cls(filename=file_path.name, content=content, mime_type=mimetypes.guess_type(file_path.name)[0])

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @property
    def media_type(self) -> str:
        return self.mime_type or mimetypes.guess_type(self.filename)[0] or "application/octet-stream"

    @property
    def content_base64(self) -> str:
        return base64.b64encode(self.content).decode("ascii")

    def text(self) -> str:
        """Decode the content as UTF-8, dropping a byte-order mark."""
        return self.content.decode("utf-8-sig", errors="replace")


class SourcePayload(BaseModel):
    """JSON transport form of a file (base64 content)."""

    filename: str = Field(..., min_length=1)
    content_base64: str = Field(..., description="Base64 encoded file content")
    mime_type: str | None = None

    def to_source_file(self) -> SourceFile:
        return SourceFile(
            filename=self.filename,
            content=base64.b64decode(self.content_base64, validate=True),
            mime_type=self.mime_type,
        )


class TranscriptLine(BaseModel):
    """Canonical transcript line shared by every transcript source."""

    model_config = ConfigDict(frozen=True)

    start: float = Field(..., ge=0.0, allow_inf_nan=False, description="Start time in seconds")
    end: float = Field(..., ge=0.0, allow_inf_nan=False, description="End time in seconds")
    speaker: str = Field(default="Unknown")
    text: str

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("transcript text must not be empty")
        return value

    @field_validator("speaker", mode="before")
    @classmethod
    def _speaker_default(cls, value: Any) -> Any:
        if value is None:
            return "Unknown"
        if isinstance(value, str):
            return value.strip() or "Unknown"
        return value


class SlideRecord(BaseModel):
    """A slide image and its per-run analysis state."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    # Not serialized; snapshots leave the process without image bytes.
    image: SourceFile | None = Field(default=None, exclude=True, repr=False)
    filename: str
    inferred_time: float | None = Field(None, description="Capture offset in seconds, None when unknown")
    analysis: str | None = None
    status: SlideStatus = SlideStatus.PENDING

    def advance(self, status: SlideStatus, analysis: str | None = None) -> None:
        """Move the slide to ``status``, enforcing the one-way progression."""
        if status not in SLIDE_TRANSITIONS[self.status]:
            raise InvalidSlideTransition(
                f"Slide {self.filename}: cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        if analysis is not None:
            self.analysis = analysis


class PipelineState(BaseModel):
    stage: PipelineStage = PipelineStage.IDLE
    total_units: int = Field(default=0, ge=0)
    completed_units: int = Field(default=0, ge=0)
    message: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress(self) -> float:
        if not self.total_units:
            return 0.0
        return min(1.0, self.completed_units / self.total_units)


class Topic(BaseModel):
    id: str
    title: str
    description: str = ""
    keywords: list[str] = Field(default_factory=list)


class AlignedSegment(BaseModel):
    timestamp: str = Field(..., description="Rendered timecode copied from the transcript")
    text: str


class TimelineEntry(BaseModel):
    slide: str = Field(..., description="Slide filename; may repeat when a slide is revisited")
    speaker_note: str = ""
    aligned_segments: list[AlignedSegment] = Field(default_factory=list)
    broll: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)


class AlignmentResult(BaseModel):
    topics: list[Topic]
    timeline: list[TimelineEntry]

    def entries_for(self, filename: str) -> list[TimelineEntry]:
        """All timeline entries for one slide, in narration order."""
        return [entry for entry in self.timeline if entry.slide == filename]


class AlignmentRequest(BaseModel):
    """Serialized inputs for the alignment engine."""

    model_config = ConfigDict(frozen=True)

    transcript_text: str
    slides_text: str
    transcript_truncated: bool = False
    line_count: int = 0
    slide_count: int = 0


class PipelineSnapshot(BaseModel):
    """Read-only copy of a run handed to observers."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    mode: InputMode | None = None
    state: PipelineState
    slides: list[SlideRecord] = Field(default_factory=list)
    transcript_line_count: int = 0
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    result: AlignmentResult | None = None


class RunCreateRequest(BaseModel):
    """Request body for starting an alignment run over HTTP."""

    mode: InputMode
    transcript: SourcePayload | None = None
    audio: SourcePayload | None = None
    slides: list[SourcePayload] = Field(default_factory=list)


class RunCreateResponse(BaseModel):
    run_id: str
    stage: PipelineStage
    total_slides: int
    message: str

