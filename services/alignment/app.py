"""Alignment service API endpoints."""

from __future__ import annotations

import binascii

from fastapi import BackgroundTasks, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from services.alignment.orchestrator import PipelineOrchestrator, PipelineStateError
from services.engine import get_alignment_engine
from services.websocket_progress import websocket_manager
from shared.enums import PipelineStage
from shared.models import PipelineSnapshot, RunCreateRequest, RunCreateResponse, SourceFile, SourcePayload
from shared.response_models import APIResponse
from shared.utils import Cache, config, setup_logging

logger = setup_logging("alignment-service")

app = FastAPI(
    title="Alignment Service",
    description="Align narration transcripts with presentation slides",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Orchestrators by run id, oldest first; terminal runs are evicted past max_retained_runs.
runs: dict[str, PipelineOrchestrator] = {}
analysis_cache = Cache()


def _decode(payload: SourcePayload | None, field_name: str) -> SourceFile | None:
    if payload is None:
        return None
    try:
        return payload.to_source_file()
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid base64 content for {field_name}: {payload.filename}") from exc


def _get_run(run_id: str) -> PipelineOrchestrator:
    orchestrator = runs.get(run_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return orchestrator


def _evict_finished_runs(capacity: int) -> None:
    """Drop the oldest terminal runs until ``capacity`` slots are free."""
    limit = max(1, int(config.get("max_retained_runs", 100)))
    finished = [
        run_id
        for run_id, orchestrator in runs.items()
        if orchestrator.stage.is_terminal and not orchestrator.is_running
    ]
    while finished and len(runs) + capacity > limit:
        run_id = finished.pop(0)
        del runs[run_id]
        logger.info("Evicted finished run %s", run_id)


def _schedule_run(
    orchestrator: PipelineOrchestrator, request: RunCreateRequest, background_tasks: BackgroundTasks
) -> RunCreateResponse:
    transcript = _decode(request.transcript, "transcript")
    audio = _decode(request.audio, "audio")
    slides = [_decode(payload, "slide") for payload in request.slides]

    background_tasks.add_task(
        orchestrator.run,
        request.mode,
        transcript_file=transcript,
        audio_file=audio,
        slides=slides,
    )
    logger.info("Accepted run %s with %d slides", orchestrator.run_id, len(slides))

    return RunCreateResponse(
        run_id=orchestrator.run_id,
        stage=orchestrator.stage,
        total_slides=len(slides),
        message="Run accepted. Use the run ID to track progress.",
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for the alignment service."""
    return APIResponse(
        message="Alignment Service is healthy",
        data={
            "engine_provider": config.get("engine_provider", "stub"),
            "active_runs": sum(1 for orchestrator in runs.values() if orchestrator.is_running),
            "retained_runs": len(runs),
        },
    )


@app.post("/runs", response_model=RunCreateResponse)
async def create_run(request: RunCreateRequest, background_tasks: BackgroundTasks) -> RunCreateResponse:
    """Start an alignment run in the background and return its id.

    Progress is pushed to ``/ws/progress/{run_id}``; the final state is
    available from ``GET /runs/{run_id}``.
    """
    try:
        engine = get_alignment_engine()
    except ValueError as exc:
        logger.error("Alignment engine is not configured: %s", exc)
        raise HTTPException(status_code=503, detail=f"Alignment engine unavailable: {exc}") from exc

    use_cache = config.get_pipeline_value("pipelines.slide_analysis.use_cache", True)
    orchestrator = PipelineOrchestrator(
        engine,
        progress_callback=websocket_manager.publish_snapshot,
        analysis_cache=analysis_cache if use_cache else None,
    )
    response = _schedule_run(orchestrator, request, background_tasks)

    _evict_finished_runs(capacity=1)
    runs[orchestrator.run_id] = orchestrator
    return response


@app.post("/runs/{run_id}/start", response_model=RunCreateResponse)
async def restart_run(run_id: str, request: RunCreateRequest, background_tasks: BackgroundTasks) -> RunCreateResponse:
    """Start a new run on an id that was reset to ``idle``."""
    orchestrator = _get_run(run_id)
    if orchestrator.is_running or orchestrator.stage is not PipelineStage.IDLE:
        raise HTTPException(
            status_code=409,
            detail=f"Run {run_id} is {orchestrator.stage.value}; reset it before starting again",
        )
    return _schedule_run(orchestrator, request, background_tasks)


@app.get("/runs/{run_id}", response_model=PipelineSnapshot)
async def get_run(run_id: str) -> PipelineSnapshot:
    return _get_run(run_id).snapshot()


@app.post("/runs/{run_id}/reset", response_model=PipelineSnapshot)
async def reset_run(run_id: str) -> PipelineSnapshot:
    orchestrator = _get_run(run_id)
    try:
        orchestrator.reset()
    except PipelineStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return orchestrator.snapshot()


@app.websocket("/ws/progress/{run_id}")
async def websocket_progress_endpoint(websocket: WebSocket, run_id: str):
    """WebSocket endpoint streaming snapshots of one run."""
    client_id = websocket.query_params.get("client_id")
    assigned_client_id = await websocket_manager.connect(websocket, client_id)
    await websocket_manager.subscribe(assigned_client_id, run_id)
    await websocket.send_json({"event": "subscribed", "client_id": assigned_client_id, "run_id": run_id})

    orchestrator = runs.get(run_id)
    if orchestrator is not None:
        await websocket.send_json(orchestrator.snapshot().model_dump(mode="json"))

    try:
        while True:
            message = await websocket.receive_json()
            action = message.get("action")

            if action == "ping":
                await websocket.send_json({"event": "pong"})
            elif action == "snapshot":
                current = runs.get(run_id)
                if current is None:
                    await websocket.send_json({"event": "error", "message": f"Run {run_id} not found"})
                else:
                    await websocket.send_json(current.snapshot().model_dump(mode="json"))
            else:
                await websocket.send_json({"event": "error", "message": f"Unknown action: {action}"})
    except WebSocketDisconnect:
        await websocket_manager.disconnect(assigned_client_id)
    except Exception:
        await websocket_manager.disconnect(assigned_client_id)
        raise
