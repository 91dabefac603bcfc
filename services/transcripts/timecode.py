"""Conversion between timecode strings and seconds."""

from __future__ import annotations

import re

from shared.utils import setup_logging

logger = setup_logging("timecode")

UNKNOWN_TIMECODE = "unknown"

# H:MM:SS(.fff) or MM:SS(.fff); the decimal separator is normalized first.
_TIMECODE_RE = re.compile(r"^(?:(\d+):)?(\d+):(\d+(?:\.\d*)?)$")


def parse_timecode(text: str | None) -> float:
    """Parse ``H:MM:SS.fff`` / ``MM:SS.fff`` (``.`` or ``,`` decimals) into seconds.

    Unrecognized input yields ``0.0`` so one bad timestamp never aborts a file.
    """
    if not text:
        return 0.0

    normalized = text.strip().replace(",", ".")
    match = _TIMECODE_RE.match(normalized)
    if not match:
        logger.debug("Unrecognized timecode %r, using 0", text)
        return 0.0

    hours, minutes, seconds = match.groups()
    return int(hours or 0) * 3600 + int(minutes) * 60 + float(seconds)


def format_timecode(seconds: float | None) -> str:
    """Render seconds as ``H:MM:SS.ff``; ``None`` renders as ``"unknown"``."""
    if seconds is None:
        return UNKNOWN_TIMECODE

    # Round once to hundredths so 59.999 carries into the minute.
    centiseconds = round(max(float(seconds), 0.0) * 100)
    hours, remainder = divmod(centiseconds, 360_000)
    minutes, remainder = divmod(remainder, 6_000)
    return f"{hours}:{minutes:02d}:{remainder / 100:05.2f}"
