"""Engine driver registry."""

from __future__ import annotations

from shared.utils import config as service_config
from shared.utils import setup_logging

from .base import AlignmentEngine, EngineUnavailableError
from .stub import StubAlignmentEngine

logger = setup_logging("engine-registry")


def get_alignment_engine(name: str | None = None) -> AlignmentEngine:
    """Build the engine named ``name`` (or ``engine_provider`` from config)."""
    from .openai import OpenAIAlignmentEngine  # lazy import

    engines: dict[str, type[AlignmentEngine]] = {
        "stub": StubAlignmentEngine,
        "openai": OpenAIAlignmentEngine,
    }

    provider_name = (name or service_config.get("engine_provider") or "stub").lower()
    engine_cls = engines.get(provider_name)
    if engine_cls is None:
        logger.warning("Unknown engine provider '%s', falling back to stub", provider_name)
        engine_cls = StubAlignmentEngine
    return engine_cls()


__all__ = [
    "AlignmentEngine",
    "EngineUnavailableError",
    "StubAlignmentEngine",
    "get_alignment_engine",
]
