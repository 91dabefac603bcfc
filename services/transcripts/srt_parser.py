"""SubRip (.srt) transcript parser."""

from __future__ import annotations

from shared.models import TranscriptLine

from .base import UNKNOWN_SPEAKER, TranscriptParser, build_line, logger, split_blocks, split_cue, strip_markup
from .timecode import parse_timecode


class SrtTranscriptParser(TranscriptParser):
    """Parse numbered SRT cues. SRT has no speaker field."""

    format_name = "SRT"
    extensions = (".srt",)

    def parse_text(self, text: str) -> list[TranscriptLine]:
        lines: list[TranscriptLine] = []

        for block in split_blocks(text):
            cue = split_cue(block)
            if cue is None:
                logger.debug("Skipping SRT block without timing: %r", block[0][:80])
                continue

            start, end, body = cue
            line = build_line(parse_timecode(start), parse_timecode(end), UNKNOWN_SPEAKER, strip_markup(body))
            if line is not None:
                lines.append(line)

        return lines
