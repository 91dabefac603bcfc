"""Transcript parsing: timecodes and the per-format parsers."""

from .ass_parser import AssTranscriptParser
from .base import TranscriptParser, UnsupportedFormatError
from .registry import ACCEPTED_EXTENSIONS, detect_input_mode, get_parser_for_filename, get_transcript_parser
from .srt_parser import SrtTranscriptParser
from .text_parser import PlainTextTranscriptParser
from .timecode import format_timecode, parse_timecode
from .vtt_parser import VttTranscriptParser

__all__ = [
    "ACCEPTED_EXTENSIONS",
    "AssTranscriptParser",
    "PlainTextTranscriptParser",
    "SrtTranscriptParser",
    "TranscriptParser",
    "UnsupportedFormatError",
    "VttTranscriptParser",
    "detect_input_mode",
    "format_timecode",
    "get_parser_for_filename",
    "get_transcript_parser",
    "parse_timecode",
]
