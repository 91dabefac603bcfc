import asyncio
import os
import sys
from pathlib import Path
from typing import Generator

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from services.alignment.app import analysis_cache, runs
from services.websocket_progress import websocket_manager
from shared.models import SourceFile
from shared.utils import config as service_config

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


def make_slide(filename: str, content: bytes | None = None) -> SourceFile:
    return SourceFile(filename=filename, content=content or PNG_BYTES + filename.encode(), mime_type="image/png")


@pytest.fixture
def slide_factory():
    return make_slide


@pytest.fixture(autouse=True)
def test_environment() -> Generator:
    """Reset shared singletons and pin configuration per-test."""
    os.environ.pop("PIPELINE_FLAG_PIPELINES_SLIDE_ANALYSIS_BATCH_SIZE", None)
    service_config.set("engine_provider", "stub")
    service_config.set_pipeline_config({"pipelines": {"slide_analysis": {"batch_size": 3, "use_cache": False}}})

    runs.clear()
    analysis_cache.clear()

    # Reset WebSocket manager between tests to avoid leakage
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(websocket_manager.reset())
    finally:
        loop.close()

    try:
        yield
    finally:
        runs.clear()
        service_config.reload()
