"""Lookup of transcript parsers by input mode or file name."""

from __future__ import annotations

from pathlib import Path

from shared.enums import AUDIO_EXTENSIONS, TRANSCRIPT_EXTENSIONS, InputMode

from .ass_parser import AssTranscriptParser
from .base import TranscriptParser, UnsupportedFormatError
from .srt_parser import SrtTranscriptParser
from .text_parser import PlainTextTranscriptParser
from .vtt_parser import VttTranscriptParser

_PARSERS: dict[InputMode, TranscriptParser] = {
    InputMode.ASS: AssTranscriptParser(),
    InputMode.SRT: SrtTranscriptParser(),
    InputMode.VTT: VttTranscriptParser(),
    InputMode.TEXT: PlainTextTranscriptParser(),
}

ACCEPTED_EXTENSIONS: dict[InputMode, tuple[str, ...]] = {
    **TRANSCRIPT_EXTENSIONS,
    InputMode.AUDIO_FILE: AUDIO_EXTENSIONS,
}


def get_transcript_parser(mode: InputMode | str) -> TranscriptParser:
    """Return the parser for a file-based input mode."""
    try:
        return _PARSERS[InputMode(mode)]
    except (KeyError, ValueError) as exc:
        raise UnsupportedFormatError(f"No transcript parser for input mode: {mode}") from exc


def detect_input_mode(filename: str) -> InputMode:
    suffix = Path(filename).suffix.lower()
    for mode, extensions in ACCEPTED_EXTENSIONS.items():
        if suffix in extensions:
            return mode
    raise UnsupportedFormatError(f"Unsupported transcript file type: {filename}")


def get_parser_for_filename(filename: str) -> TranscriptParser:
    for parser in _PARSERS.values():
        if parser.can_read(filename):
            return parser
    raise UnsupportedFormatError(f"Unsupported transcript file type: {filename}")
