"""Base classes for the external vision/audio/reasoning engine."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shared.models import SourceFile

SLIDE_DESCRIPTION_PROMPT = (
    "Describe this presentation slide in detail. Transcribe all visible text exactly as it appears. "
    "Identify any charts, diagrams, or images."
)

TRANSCRIPTION_PROMPT = (
    "You are an expert transcriber. Transcribe the following audio file accurately. "
    "Identify different speakers if possible.\n\n"
    "Output strictly in JSON format as a list of objects:\n"
    '[{"start": number (seconds), "end": number (seconds), "speaker": "string", "text": "string"}]\n'
    "Do not wrap in markdown code blocks. Just the raw JSON."
)


class EngineUnavailableError(RuntimeError):
    """The engine could not be reached or refused our credentials."""


class AlignmentEngine(ABC):
    """Capabilities the pipeline needs from the external engine.

    Every method returns raw text; interpreting it is the caller's job.
    Transport and authentication failures must surface as
    :class:`EngineUnavailableError` so the pipeline can tell them apart from a
    single bad slide.
    """

    name: str = "engine"

    @abstractmethod
    async def describe_slide(self, image: SourceFile) -> str:
        """Return a free-text description (OCR and layout) of one slide image."""

    @abstractmethod
    async def transcribe_audio(self, audio: SourceFile) -> str:
        """Return a JSON array of ``{start, end, speaker, text}`` objects."""

    @abstractmethod
    async def align(self, prompt: str) -> str:
        """Return the topics/timeline JSON for a rendered alignment prompt."""
