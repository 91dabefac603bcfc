"""Advanced SubStation Alpha (.ass) transcript parser."""

from __future__ import annotations

import re
from dataclasses import dataclass

from shared.models import TranscriptLine

from .base import TranscriptParser, build_line, logger, normalize_newlines
from .timecode import parse_timecode

# Brace-delimited override blocks such as {\i1} or {\pos(10,20)}.
_OVERRIDE_TAG_RE = re.compile(r"\{[^}]*\}")
_LINE_BREAK_RE = re.compile(r"\\[Nnh]")

# Classic v4+ Dialogue layout used when a file never declares a Format line:
# Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
CLASSIC_START = 1
CLASSIC_END = 2
CLASSIC_SPEAKER = 4
CLASSIC_TEXT = 9
CLASSIC_MIN_PARTS = 9

FALLBACK_SPEAKER_INDEX = 4


@dataclass(frozen=True)
class EventFormat:
    """Column layout declared by an ``[Events]`` Format line."""

    columns: dict[str, int]
    field_count: int

    @classmethod
    def from_declaration(cls, declaration: str) -> EventFormat:
        names = [name.strip().lower() for name in declaration.split(",")]
        columns: dict[str, int] = {}
        for index, name in enumerate(names):
            # First declaration wins for duplicated names.
            columns.setdefault(name, index)
        return cls(columns=columns, field_count=len(names))

    @property
    def speaker_index(self) -> int:
        for key in ("name", "actor"):
            if key in self.columns:
                return self.columns[key]
        return FALLBACK_SPEAKER_INDEX


def clean_ass_text(text: str) -> str:
    return _LINE_BREAK_RE.sub(" ", _OVERRIDE_TAG_RE.sub("", text)).strip()


def decode_dialogue(payload: str, event_format: EventFormat | None) -> TranscriptLine | None:
    """Decode the part of a ``Dialogue:`` line after the prefix."""
    parts = payload.split(",")

    if event_format is None:
        if len(parts) < CLASSIC_MIN_PARTS:
            return None
        return build_line(
            parse_timecode(parts[CLASSIC_START]),
            parse_timecode(parts[CLASSIC_END]),
            parts[CLASSIC_SPEAKER].strip(),
            clean_ass_text(",".join(parts[CLASSIC_TEXT:])),
        )

    # Text is the trailing field and may itself contain commas.
    last = event_format.field_count - 1
    if len(parts) > event_format.field_count:
        parts = parts[:last] + [",".join(parts[last:])]

    start_index = event_format.columns.get("start")
    end_index = event_format.columns.get("end")
    text_index = event_format.columns.get("text")
    if start_index is None or end_index is None or text_index is None:
        return None
    if max(start_index, end_index, text_index) >= len(parts):
        return None

    speaker_index = event_format.speaker_index
    speaker = parts[speaker_index].strip() if speaker_index < len(parts) else ""

    return build_line(
        parse_timecode(parts[start_index]),
        parse_timecode(parts[end_index]),
        speaker,
        clean_ass_text(parts[text_index]),
    )


class AssTranscriptParser(TranscriptParser):
    """Parse Dialogue events from the ``[Events]`` section of an ASS file."""

    format_name = "ASS"
    extensions = (".ass",)

    def parse_text(self, text: str) -> list[TranscriptLine]:
        lines: list[TranscriptLine] = []
        in_events = False
        event_format: EventFormat | None = None

        for line_number, raw_line in enumerate(normalize_newlines(text).split("\n"), start=1):
            stripped = raw_line.strip()
            if not stripped or stripped.startswith(";"):
                continue

            lowered = stripped.lower()
            if lowered.startswith("[") and lowered.endswith("]"):
                in_events = lowered == "[events]"
                continue
            if not in_events:
                continue

            if lowered.startswith("format:"):
                event_format = EventFormat.from_declaration(stripped[len("format:") :])
                continue

            if lowered.startswith("dialogue:"):
                line = decode_dialogue(stripped[len("dialogue:") :].lstrip(), event_format)
                if line is None:
                    logger.debug("Skipping malformed ASS dialogue on line %d", line_number)
                    continue
                lines.append(line)

        return lines
