"""Request/response contract with the alignment engine.

Outbound: the transcript and slide set are serialized to text and embedded in a
task prompt. Inbound: the engine's raw text is decoded into canonical
transcript lines (transcription) or an :class:`AlignmentResult` (alignment).
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from shared.models import AlignmentRequest, AlignmentResult, SlideRecord, TranscriptLine
from shared.utils import setup_logging

from services.transcripts.timecode import format_timecode

logger = setup_logging("alignment-contract")

DEFAULT_TRANSCRIPT_CHAR_BUDGET = 80_000
TRUNCATION_MARKER = "\n...[TRUNCATED]"
NO_ANALYSIS = "No analysis available."

_CODE_FENCE_RE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?```$", re.DOTALL)

ALIGNMENT_PROMPT_TEMPLATE = """\
You are an expert assistant for producing speaker notes and aligning transcripts to slides.

INPUTS:
TRANSCRIPT (timestamp | speaker | text):
{transcript}

SLIDES INFO (filename, inferred time, visual analysis):
{slides}

TASKS:
1) Extract 3-10 key topics.
2) Build a chronological timeline of the narration. Each entry names the slide on screen and contains:
   - aligned_segments: 2-5 transcript excerpts that relate to the slide, each with its original timestamp.
   - speaker_note: a short summary (1-2 sentences) of the context for this slide.
   - broll: 2-3 visual asset suggestions.
   - topics: ids of the topics covered.
   A slide may appear more than once when the speaker returns to it.
3) Ensure every slide is accounted for.{truncation_note}

OUTPUT JSON FORMAT:
{{
  "topics": [{{"id": "t1", "title": "...", "description": "...", "keywords": ["..."]}}],
  "timeline": [
    {{
      "slide": "slide_01.png",
      "speaker_note": "...",
      "aligned_segments": [{{"timestamp": "0:00:12.50", "text": "..."}}],
      "broll": ["..."],
      "topics": ["t1"]
    }}
  ]
}}
Return JSON only.
"""

TRUNCATION_NOTE = "\n4) The transcript was truncated; align the remaining slides from their visual analysis."


class AlignmentResponseError(ValueError):
    """The alignment engine returned something other than the timeline JSON."""


def serialize_transcript(
    lines: Sequence[TranscriptLine],
    budget: int = DEFAULT_TRANSCRIPT_CHAR_BUDGET,
) -> tuple[str, bool]:
    """Render one ``start --> end | speaker | text`` row per line.

    Returns the text and whether it was cut to ``budget`` characters.
    """
    text = "\n".join(
        f"{format_timecode(line.start)} --> {format_timecode(line.end)} | {line.speaker} | {line.text}"
        for line in lines
    )
    if len(text) > budget:
        return text[:budget] + TRUNCATION_MARKER, True
    return text, False


def serialize_slides(slides: Sequence[SlideRecord]) -> str:
    blocks = [
        f"Filename: {slide.filename} | Timestamp: {format_timecode(slide.inferred_time)}\n"
        f"Visual Analysis & OCR:\n{slide.analysis or NO_ANALYSIS}\n---"
        for slide in slides
    ]
    return "\n\n".join(blocks)


def build_alignment_request(
    lines: Sequence[TranscriptLine],
    slides: Sequence[SlideRecord],
    budget: int = DEFAULT_TRANSCRIPT_CHAR_BUDGET,
) -> AlignmentRequest:
    transcript_text, truncated = serialize_transcript(lines, budget)
    if truncated:
        logger.warning("Transcript exceeds %d characters and was truncated", budget)
    return AlignmentRequest(
        transcript_text=transcript_text,
        slides_text=serialize_slides(slides),
        transcript_truncated=truncated,
        line_count=len(lines),
        slide_count=len(slides),
    )


def render_alignment_prompt(request: AlignmentRequest) -> str:
    return ALIGNMENT_PROMPT_TEMPLATE.format(
        transcript=request.transcript_text,
        slides=request.slides_text,
        truncation_note=TRUNCATION_NOTE if request.transcript_truncated else "",
    )


def strip_code_fences(raw: str) -> str:
    text = raw.strip()
    match = _CODE_FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def parse_transcription_response(raw: str | None) -> list[TranscriptLine]:
    """Decode a transcription reply; anything but a JSON array gives ``[]``."""
    if not raw:
        return []

    try:
        payload: Any = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as exc:
        logger.warning("Transcription response was not valid JSON: %s", exc)
        return []

    if not isinstance(payload, list):
        logger.warning("Transcription response was %s, expected a list", type(payload).__name__)
        return []

    lines: list[TranscriptLine] = []
    for index, entry in enumerate(payload):
        try:
            lines.append(TranscriptLine.model_validate(entry))
        except ValidationError as exc:
            logger.debug("Skipping transcription entry %d: %s", index, exc)
    return lines


def parse_alignment_response(raw: str | None) -> AlignmentResult:
    if not raw or not raw.strip():
        raise AlignmentResponseError("Alignment engine returned an empty response")

    try:
        return AlignmentResult.model_validate_json(strip_code_fences(raw))
    except ValidationError as exc:
        raise AlignmentResponseError(f"Alignment response does not match the timeline schema: {exc}") from exc
