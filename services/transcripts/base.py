"""Base classes and helpers for transcript format parsers."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from shared.models import SourceFile, TranscriptLine
from shared.utils import setup_logging

logger = setup_logging("transcript-parser")

UNKNOWN_SPEAKER = "Unknown"

_MARKUP_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


class UnsupportedFormatError(ValueError):
    """Raised when no parser handles the requested input."""


TranscriptSource = SourceFile | str | Path


class TranscriptParser(ABC):
    """Convert one timed-text file into canonical transcript lines.

    Malformed cues are skipped; only a failed file read propagates.
    """

    format_name: str = ""
    extensions: tuple[str, ...] = ()

    def can_read(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.extensions

    async def parse(self, source: TranscriptSource) -> list[TranscriptLine]:
        """Read ``source`` and return its lines in file order."""
        text = await read_source_text(source)
        lines = self.parse_text(text)
        logger.info("Parsed %d %s lines from %s", len(lines), self.format_name, _source_name(source))
        return lines

    @abstractmethod
    def parse_text(self, text: str) -> list[TranscriptLine]:
        """Decode already-read file content."""


async def read_source_text(source: TranscriptSource) -> str:
    if isinstance(source, SourceFile):
        return source.text()
    loaded = await SourceFile.from_path(source)
    return loaded.text()


def _source_name(source: TranscriptSource) -> str:
    return source.filename if isinstance(source, SourceFile) else Path(source).name


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_blocks(text: str) -> list[list[str]]:
    """Split text into blank-line separated blocks of stripped lines."""
    blocks: list[list[str]] = []
    current: list[str] = []

    for line in normalize_newlines(text).split("\n"):
        if not line.strip():
            if current:
                blocks.append(current)
                current = []
            continue
        current.append(line.strip())

    if current:
        blocks.append(current)

    return blocks


def split_cue(block: list[str]) -> tuple[str, str, str] | None:
    """Return ``(start, end, body)`` for a block holding a ``-->`` timing line.

    Lines before the timing line (cue index or identifier) are ignored; lines
    after it are joined with a space.
    """
    for index, line in enumerate(block):
        if "-->" not in line:
            continue
        start, _, end = line.partition("-->")
        if not start.strip() or not end.strip():
            return None
        body = " ".join(part for part in block[index + 1 :] if part)
        return start.strip(), end.strip(), body
    return None


def strip_markup(text: str) -> str:
    return _MARKUP_RE.sub("", text)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def build_line(start: float, end: float, speaker: str | None, text: str) -> TranscriptLine | None:
    """Create a line, or ``None`` when the cue has no usable text."""
    cleaned = collapse_whitespace(text)
    if not cleaned:
        return None
    try:
        return TranscriptLine(start=start, end=end, speaker=speaker or UNKNOWN_SPEAKER, text=cleaned)
    except ValidationError as exc:
        logger.debug("Dropping invalid transcript cue %r: %s", cleaned[:80], exc)
        return None
