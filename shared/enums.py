"""
Enums and constants used across the application.
"""

from enum import Enum


class InputMode(str, Enum):
    """Source of the narration transcript for a run."""

    AUDIO_FILE = "AUDIO_FILE"
    ASS = "ASS"
    SRT = "SRT"
    VTT = "VTT"
    TEXT = "TEXT"

    @property
    def requires_parsing(self) -> bool:
        return self is not InputMode.AUDIO_FILE


class SlideStatus(str, Enum):
    """Per-slide progress through the analysis stage."""

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


class PipelineStage(str, Enum):
    """Stages of an alignment run."""

    IDLE = "idle"
    PARSING = "parsing"
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    REQUESTING_ALIGNMENT = "requesting_alignment"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {PipelineStage.COMPLETE, PipelineStage.FAILED}


# Allowed one-way moves for a slide within a single run.
SLIDE_TRANSITIONS: dict[SlideStatus, set[SlideStatus]] = {
    SlideStatus.PENDING: {SlideStatus.PROCESSING},
    SlideStatus.PROCESSING: {SlideStatus.DONE, SlideStatus.ERROR},
    SlideStatus.DONE: set(),
    SlideStatus.ERROR: set(),
}

TRANSCRIPT_EXTENSIONS: dict[InputMode, tuple[str, ...]] = {
    InputMode.ASS: (".ass",),
    InputMode.SRT: (".srt",),
    InputMode.VTT: (".vtt",),
    InputMode.TEXT: (".txt", ".md"),
}

AUDIO_EXTENSIONS: tuple[str, ...] = (".mp3", ".wav", ".m4a", ".ogg", ".flac", ".aac", ".webm")

IMAGE_EXTENSIONS: tuple[str, ...] = (".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp")
