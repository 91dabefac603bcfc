"""Slide intake: capture-time inference and record construction."""

from __future__ import annotations

import re
from collections.abc import Iterable

from shared.enums import IMAGE_EXTENSIONS
from shared.models import SlideRecord, SourceFile
from shared.utils import setup_logging

from services.transcripts.base import UnsupportedFormatError

logger = setup_logging("slide-intake")

_HMS_RE = re.compile(r"(\d+)[-_:](\d+)[-_:](\d+)")
_MS_RE = re.compile(r"(\d+)[-_:](\d+)")


def infer_time_from_filename(filename: str) -> float | None:
    """Guess a capture offset in seconds from digits in a file name.

    ``slide_00_10_05.png`` reads as hours/minutes/seconds (605.0) and
    ``shot-12-30.png`` as minutes/seconds (750.0). Returns ``None`` when no
    pattern matches; ``0.0`` is a real capture time.
    """
    match = _HMS_RE.search(filename)
    if match:
        hours, minutes, seconds = (int(group) for group in match.groups())
        return float(hours * 3600 + minutes * 60 + seconds)

    match = _MS_RE.search(filename)
    if match:
        minutes, seconds = (int(group) for group in match.groups())
        return float(minutes * 60 + seconds)

    return None


def is_slide_image(source: SourceFile) -> bool:
    if source.extension in IMAGE_EXTENSIONS:
        return True
    return bool(source.mime_type and source.mime_type.startswith("image/"))


def build_slide_records(files: Iterable[SourceFile]) -> list[SlideRecord]:
    """Create pending slide records ordered by file name."""
    records: list[SlideRecord] = []
    for source in files:
        if not is_slide_image(source):
            raise UnsupportedFormatError(f"Not a slide image: {source.filename}")
        records.append(
            SlideRecord(
                image=source,
                filename=source.filename,
                inferred_time=infer_time_from_filename(source.filename),
            )
        )

    records.sort(key=lambda record: record.filename)
    logger.debug("Prepared %d slide records", len(records))
    return records
