"""Pipeline orchestrator: transcript acquisition, slide analysis, alignment."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from uuid import uuid4

from shared.enums import InputMode, PipelineStage, SlideStatus
from shared.models import (
    AlignmentResult,
    PipelineSnapshot,
    PipelineState,
    SlideRecord,
    SourceFile,
    TranscriptLine,
)
from shared.utils import Cache, config, generate_bytes_hash, setup_logging

from services.engine.base import AlignmentEngine, EngineUnavailableError
from services.slides.inference import build_slide_records
from services.transcripts.base import UnsupportedFormatError
from services.transcripts.registry import get_transcript_parser

from .contract import (
    AlignmentResponseError,
    build_alignment_request,
    parse_alignment_response,
    parse_transcription_response,
    render_alignment_prompt,
)

logger = setup_logging("alignment-orchestrator")

SLIDE_ERROR_PLACEHOLDER = "Error: slide analysis unavailable."
EMPTY_TRANSCRIPT_WARNING = "Transcript is empty; alignment will rely on slide content only."
TRUNCATED_TRANSCRIPT_WARNING = "Transcript was truncated to fit the alignment request."

ProgressCallback = Callable[[PipelineSnapshot], Awaitable[None]]
FileInput = SourceFile | str | Path


class PipelineStateError(RuntimeError):
    """A run was started or reset from a stage that does not allow it."""


@dataclass
class RunContext:
    """Mutable state of a single run, owned by the orchestrator."""

    run_id: str
    mode: InputMode | None = None
    state: PipelineState = field(default_factory=PipelineState)
    slides: list[SlideRecord] = field(default_factory=list)
    transcript: list[TranscriptLine] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    result: AlignmentResult | None = None

    def snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            run_id=self.run_id,
            mode=self.mode,
            state=self.state.model_copy(deep=True),
            slides=[slide.model_copy(update={"image": None}) for slide in self.slides],
            transcript_line_count=len(self.transcript),
            warnings=list(self.warnings),
            error=self.error,
            result=self.result.model_copy(deep=True) if self.result else None,
        )


class PipelineOrchestrator:
    """Run one alignment at a time against an :class:`AlignmentEngine`.

    A run moves ``idle -> parsing|transcribing -> analyzing ->
    requesting_alignment -> complete``, or to ``failed`` from any of those.
    Terminal runs stay put until :meth:`reset`.
    """

    def __init__(
        self,
        engine: AlignmentEngine,
        *,
        batch_size: int | None = None,
        transcript_char_budget: int | None = None,
        progress_callback: ProgressCallback | None = None,
        analysis_cache: Cache | None = None,
        run_id: str | None = None,
    ) -> None:
        self.engine = engine
        self.batch_size = max(1, int(batch_size or config.get_pipeline_value("pipelines.slide_analysis.batch_size", 3)))
        self.transcript_char_budget = int(transcript_char_budget or config.get("transcript_char_budget", 80_000))
        self.progress_callback = progress_callback
        self.analysis_cache = analysis_cache
        self.cache_ttl = int(config.get("slide_analysis_cache_ttl", 3600))
        self.run_id = run_id or uuid4().hex
        self._context = RunContext(run_id=self.run_id)
        self._lock = asyncio.Lock()

    @property
    def stage(self) -> PipelineStage:
        return self._context.state.stage

    @property
    def result(self) -> AlignmentResult | None:
        return self._context.result

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def snapshot(self) -> PipelineSnapshot:
        return self._context.snapshot()

    def reset(self) -> None:
        """Discard every trace of the previous run and return to ``idle``."""
        if self._lock.locked():
            raise PipelineStateError("Cannot reset while a run is in progress")
        self._context = RunContext(run_id=self.run_id)
        logger.info("Run %s reset to idle", self.run_id)

    async def run(
        self,
        mode: InputMode | str,
        *,
        transcript_file: FileInput | None = None,
        audio_file: FileInput | None = None,
        slides: Sequence[SourceFile] | None = None,
    ) -> PipelineSnapshot:
        """Execute a full run and return its final snapshot.

        Failures end the run in ``failed`` rather than raising; only starting a
        run from a non-idle stage raises :class:`PipelineStateError`.
        """
        if self._lock.locked():
            raise PipelineStateError(f"Run {self.run_id} is already in progress")

        async with self._lock:
            if self._context.state.stage is not PipelineStage.IDLE:
                raise PipelineStateError(
                    f"Run {self.run_id} is {self._context.state.stage.value}; reset before starting again"
                )

            context = RunContext(run_id=self.run_id)
            self._context = context
            try:
                return await self._execute(context, mode, transcript_file, audio_file, slides)
            finally:
                # Terminal runs keep their analyses, never the uploaded image bytes.
                for slide in context.slides:
                    slide.image = None

    async def _execute(
        self,
        context: RunContext,
        mode: InputMode | str,
        transcript_file: FileInput | None,
        audio_file: FileInput | None,
        slides: Sequence[SourceFile] | None,
    ) -> PipelineSnapshot:
        try:
            context.mode = InputMode(mode)
        except ValueError:
            return await self._fail(context, f"Cannot start run: unknown input mode {mode!r}")

        try:
            context.slides = build_slide_records(slides or [])
        except UnsupportedFormatError as exc:
            return await self._fail(context, str(exc))

        missing = self._missing_input(context, transcript_file, audio_file)
        if missing:
            return await self._fail(context, f"Cannot start run: missing {missing}")

        logger.info("Starting run %s (%s, %d slides)", self.run_id, context.mode.value, len(context.slides))
        try:
            context = await self._acquire_transcript(context, transcript_file, audio_file)
            context = await self._analyze_slides(context)
            context = await self._request_alignment(context)
        except AlignmentResponseError as exc:
            return await self._fail(context, f"Alignment stage failed: {exc}")
        except Exception as exc:
            stage = context.state.stage.value
            logger.error("Run %s failed during %s: %s", self.run_id, stage, exc)
            return await self._fail(context, f"Run failed during {stage}: {exc}")

        context.state.stage = PipelineStage.COMPLETE
        context.state.message = f"Alignment complete: {len(context.result.timeline)} timeline entries"
        logger.info("Run %s complete", self.run_id)
        await self._publish(context)
        return context.snapshot()

    @staticmethod
    def _missing_input(
        context: RunContext, transcript_file: FileInput | None, audio_file: FileInput | None
    ) -> str | None:
        if not context.slides:
            return "slide images (at least one is required)"
        if not context.mode.requires_parsing:
            return None if audio_file is not None else "audio file"
        return None if transcript_file is not None else f"{context.mode.value} transcript file"

    async def _acquire_transcript(
        self, context: RunContext, transcript_file: FileInput | None, audio_file: FileInput | None
    ) -> RunContext:
        if not context.mode.requires_parsing:
            audio = audio_file if isinstance(audio_file, SourceFile) else await SourceFile.from_path(audio_file)
            await self._set_stage(context, PipelineStage.TRANSCRIBING, f"Transcribing {audio.filename}")
            raw = await self.engine.transcribe_audio(audio)
            context.transcript = parse_transcription_response(raw)
        else:
            parser = get_transcript_parser(context.mode)
            await self._set_stage(context, PipelineStage.PARSING, f"Parsing {parser.format_name} transcript")
            context.transcript = await parser.parse(transcript_file)

        if not context.transcript:
            logger.warning("Run %s: %s", self.run_id, EMPTY_TRANSCRIPT_WARNING)
            context.warnings.append(EMPTY_TRANSCRIPT_WARNING)
            context.state.message = EMPTY_TRANSCRIPT_WARNING
            await self._publish(context)
        return context

    async def _analyze_slides(self, context: RunContext) -> RunContext:
        total = len(context.slides)
        await self._set_stage(context, PipelineStage.ANALYZING, f"Analyzing {total} slides", total_units=total)

        for offset in range(0, total, self.batch_size):
            batch = context.slides[offset : offset + self.batch_size]
            outcomes = await asyncio.gather(*(self._analyze_slide(context, slide) for slide in batch))
            # The whole batch has settled; only now may an outage end the run.
            for outcome in outcomes:
                if outcome is not None:
                    raise outcome

        return context

    async def _analyze_slide(self, context: RunContext, slide: SlideRecord) -> EngineUnavailableError | None:
        """Analyze one slide; every failure is recorded on the slide itself."""
        slide.advance(SlideStatus.PROCESSING)
        await self._publish(context)

        outage: EngineUnavailableError | None = None
        analysis = ""
        try:
            analysis = (await self._describe(slide)).strip()
        except EngineUnavailableError as exc:
            logger.error("Engine unavailable while analyzing %s: %s", slide.filename, exc)
            outage = exc
        except Exception as exc:
            logger.warning("Analysis failed for slide %s: %s", slide.filename, exc)
        else:
            if not analysis:
                logger.warning("Empty analysis for slide %s", slide.filename)

        if analysis:
            slide.advance(SlideStatus.DONE, analysis)
        else:
            slide.advance(SlideStatus.ERROR, SLIDE_ERROR_PLACEHOLDER)

        context.state.completed_units += 1
        context.state.message = f"Analyzed {context.state.completed_units}/{context.state.total_units} slides"
        await self._publish(context)
        return outage

    async def _describe(self, slide: SlideRecord) -> str:
        if slide.image is None:
            raise ValueError(f"Slide {slide.filename} has no image content")
        if self.analysis_cache is None:
            return await self.engine.describe_slide(slide.image) or ""

        cache_key = f"slide-analysis:{generate_bytes_hash(slide.image.content)}"
        cached = self.analysis_cache.get(cache_key)
        if cached:
            logger.debug("Using cached analysis for %s", slide.filename)
            return cached

        analysis = await self.engine.describe_slide(slide.image) or ""
        if analysis.strip():
            self.analysis_cache.set(cache_key, analysis, ttl=self.cache_ttl)
        return analysis

    async def _request_alignment(self, context: RunContext) -> RunContext:
        await self._set_stage(context, PipelineStage.REQUESTING_ALIGNMENT, "Requesting alignment")

        request = build_alignment_request(context.transcript, context.slides, self.transcript_char_budget)
        if request.transcript_truncated:
            context.warnings.append(TRUNCATED_TRANSCRIPT_WARNING)

        raw = await self.engine.align(render_alignment_prompt(request))
        context.result = parse_alignment_response(raw)
        return context

    async def _set_stage(
        self, context: RunContext, stage: PipelineStage, message: str, total_units: int | None = None
    ) -> None:
        context.state.stage = stage
        context.state.message = message
        if total_units is not None:
            context.state.total_units = total_units
        logger.info("Run %s: %s", self.run_id, message)
        await self._publish(context)

    async def _fail(self, context: RunContext, message: str) -> PipelineSnapshot:
        context.state.stage = PipelineStage.FAILED
        context.state.message = message
        context.error = message
        logger.error("Run %s failed: %s", self.run_id, message)
        await self._publish(context)
        return context.snapshot()

    async def _publish(self, context: RunContext) -> None:
        if self.progress_callback is None:
            return
        try:
            await self.progress_callback(context.snapshot())
        except Exception as exc:
            logger.warning("Progress callback failed for run %s: %s", self.run_id, exc)
