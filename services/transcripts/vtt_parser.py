"""WebVTT (.vtt) transcript parser."""

from __future__ import annotations

import re

from shared.models import TranscriptLine

from .base import UNKNOWN_SPEAKER, TranscriptParser, build_line, logger, split_blocks, split_cue, strip_markup
from .timecode import parse_timecode

HEADER_MARKERS = ("WEBVTT", "NOTE", "STYLE", "REGION")

# <v Jane> or <v.loud Jane>; the voice tag is removed by markup stripping.
_VOICE_SPAN_RE = re.compile(r"^<v(?:\.[^\s>]+)*\s+([^>]+)>(.*)$", re.DOTALL)
_LABEL_RE = re.compile(r"^([^:<>]{1,40}):\s+(.+)$", re.DOTALL)


def extract_speaker(body: str) -> tuple[str, str]:
    """Split a cue body into ``(speaker, text)`` with markup removed."""
    voice = _VOICE_SPAN_RE.match(body.strip())
    if voice:
        return voice.group(1).strip(), strip_markup(voice.group(2)).strip()

    text = strip_markup(body).strip()
    label = _LABEL_RE.match(text)
    if label:
        return label.group(1).strip(), label.group(2).strip()

    return UNKNOWN_SPEAKER, text


class VttTranscriptParser(TranscriptParser):
    """Parse WebVTT cues, skipping header, note, style and region blocks."""

    format_name = "VTT"
    extensions = (".vtt",)

    def parse_text(self, text: str) -> list[TranscriptLine]:
        lines: list[TranscriptLine] = []

        for block in split_blocks(text):
            if block[0].startswith(HEADER_MARKERS):
                continue

            cue = split_cue(block)
            if cue is None:
                logger.debug("Skipping VTT block without timing: %r", block[0][:80])
                continue

            start, end, body = cue
            # Cue settings (align:start position:10%) follow the end timestamp.
            end = end.split()[0]
            speaker, spoken = extract_speaker(body)

            line = build_line(parse_timecode(start), parse_timecode(end), speaker, spoken)
            if line is not None:
                lines.append(line)

        return lines
