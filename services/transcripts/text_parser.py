"""Plain-text (.txt / .md) transcript parser."""

from __future__ import annotations

from shared.models import TranscriptLine

from .base import UNKNOWN_SPEAKER, TranscriptParser, build_line, split_blocks


class PlainTextTranscriptParser(TranscriptParser):
    """One untimed line per paragraph.

    Every line starts and ends at 0; alignment relies on the words alone.
    """

    format_name = "TEXT"
    extensions = (".txt", ".md")

    def parse_text(self, text: str) -> list[TranscriptLine]:
        lines: list[TranscriptLine] = []
        for paragraph in split_blocks(text):
            line = build_line(0.0, 0.0, UNKNOWN_SPEAKER, " ".join(paragraph))
            if line is not None:
                lines.append(line)
        return lines
