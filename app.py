"""
SlideAlign - Unified Application Entry Point
Mounts the alignment service under a single FastAPI application
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute, APIWebSocketRoute

from services.alignment import app as alignment_module
from shared.utils import config, setup_logging

logger = setup_logging("slidealign")

alignment_app = alignment_module.app

API_PREFIX = "/api/v1/alignment"

app = FastAPI(
    title="SlideAlign API",
    description="""
    Align narration transcripts (subtitle files or audio) with presentation slides.

    Runs are submitted over HTTP; progress is streamed over WebSocket.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Health",
            "description": "Service health and status endpoints",
        },
        {
            "name": "Alignment",
            "description": "Transcript/slide alignment runs - mounted at /api/v1/alignment",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include Alignment routes with prefix
for route in alignment_app.routes:
    if isinstance(route, APIRoute):
        app.add_api_route(
            path=f"{API_PREFIX}{route.path}",
            endpoint=route.endpoint,
            methods=route.methods,
            name=f"alignment_{route.name}",
            response_model=route.response_model,
            tags=["Alignment"],
        )
    elif isinstance(route, APIWebSocketRoute):
        # Progress sockets stay at the root so clients need no API prefix.
        app.add_api_websocket_route(route.path, route.endpoint, name=f"alignment_{route.name}")


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with service information and API navigation"""
    return {
        "service": "SlideAlign API",
        "version": "1.0.0",
        "services": {
            "alignment": {
                "base_url": API_PREFIX,
                "health": f"{API_PREFIX}/health",
                "progress": "/ws/progress/{run_id}",
            },
        },
    }


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "healthy", "engine_provider": config.get("engine_provider", "stub")}
