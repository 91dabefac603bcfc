"""Stub engine with deterministic offline results."""

from __future__ import annotations

import json
import re

from shared.models import SourceFile

from .base import AlignmentEngine

_SLIDE_HEADER_RE = re.compile(r"^Filename: (?P<filename>.+?) \| Timestamp: (?P<timestamp>\S+)$", re.MULTILINE)
_TRANSCRIPT_LINE_RE = re.compile(r"^(?P<start>\S+) --> \S+ \| [^|]* \| (?P<text>.+)$", re.MULTILINE)


class StubAlignmentEngine(AlignmentEngine):
    """Generate predictable engine output without external services."""

    name = "stub"

    async def describe_slide(self, image: SourceFile) -> str:
        return f"Slide image {image.filename} ({image.media_type}, {len(image.content)} bytes)."

    async def transcribe_audio(self, audio: SourceFile) -> str:
        return "[]"

    async def align(self, prompt: str) -> str:
        slides = _SLIDE_HEADER_RE.findall(prompt)
        segments = _TRANSCRIPT_LINE_RE.findall(prompt)

        timeline = []
        for index, (filename, timestamp) in enumerate(slides):
            aligned = [{"timestamp": start, "text": text} for start, text in segments[index : index + 1]]
            timeline.append(
                {
                    "slide": filename,
                    "speaker_note": f"Slide {index + 1} ({filename}) at {timestamp}.",
                    "aligned_segments": aligned,
                    "broll": [],
                    "topics": ["t1"],
                }
            )

        payload = {
            "topics": [
                {
                    "id": "t1",
                    "title": "Presentation overview",
                    "description": f"{len(slides)} slides, {len(segments)} transcript lines",
                    "keywords": [],
                }
            ],
            "timeline": timeline,
        }
        return json.dumps(payload)
