"""Tests for the engine drivers and registry."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from services.alignment.contract import build_alignment_request, parse_alignment_response, render_alignment_prompt
from services.engine import EngineUnavailableError, StubAlignmentEngine, get_alignment_engine
from services.engine.openai import OpenAIAlignmentEngine
from services.slides import build_slide_records
from shared.models import SourceFile, TranscriptLine
from shared.utils import config as service_config


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _mock_client(**create_kwargs) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(**create_kwargs)
    return client


@pytest.mark.asyncio
async def test_stub_engine_is_deterministic(slide_factory):
    engine = StubAlignmentEngine()
    image = slide_factory("a.png")

    first = await engine.describe_slide(image)
    second = await engine.describe_slide(image)

    assert first == second
    assert "a.png" in first
    assert json.loads(await engine.transcribe_audio(SourceFile(filename="talk.mp3"))) == []


@pytest.mark.asyncio
async def test_stub_engine_builds_one_timeline_entry_per_slide(slide_factory):
    slides = build_slide_records([slide_factory("b_00_30.png"), slide_factory("a.png")])
    lines = [TranscriptLine(start=0, end=1, speaker="Host", text="Hello")]
    prompt = render_alignment_prompt(build_alignment_request(lines, slides))

    result = parse_alignment_response(await StubAlignmentEngine().align(prompt))

    assert [entry.slide for entry in result.timeline] == ["a.png", "b_00_30.png"]
    assert result.timeline[0].aligned_segments[0].text == "Hello"
    assert result.topics[0].id == "t1"


def test_get_alignment_engine_falls_back_to_stub():
    assert isinstance(get_alignment_engine("stub"), StubAlignmentEngine)
    assert isinstance(get_alignment_engine("does-not-exist"), StubAlignmentEngine)


def test_get_alignment_engine_uses_config():
    service_config.set("engine_provider", "openai")
    with patch("services.engine.openai.create_openai_client", return_value=_mock_client()):
        engine = get_alignment_engine()
    assert isinstance(engine, OpenAIAlignmentEngine)


@pytest.mark.asyncio
async def test_openai_engine_sends_image_as_data_url(slide_factory):
    client = _mock_client(return_value=_completion("  A bar chart  "))
    engine = OpenAIAlignmentEngine(client=client)

    analysis = await engine.describe_slide(slide_factory("chart.png"))

    assert analysis == "  A bar chart  "
    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == engine.vision_model
    image_part = kwargs["messages"][0]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_openai_engine_alignment_requests_json():
    client = _mock_client(return_value=_completion('{"topics": [], "timeline": []}'))
    engine = OpenAIAlignmentEngine(client=client)

    raw = await engine.align("prompt")

    assert json.loads(raw) == {"topics": [], "timeline": []}
    assert client.chat.completions.create.await_args.kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_openai_engine_transcribe_rejects_unsupported_audio():
    engine = OpenAIAlignmentEngine(client=_mock_client())

    with pytest.raises(ValueError):
        await engine.transcribe_audio(SourceFile(filename="talk.flac", content=b"fLaC"))


@pytest.mark.asyncio
async def test_openai_engine_maps_connection_errors():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client = _mock_client(side_effect=openai.APIConnectionError(request=request))
    engine = OpenAIAlignmentEngine(client=client)

    with pytest.raises(EngineUnavailableError):
        await engine.align("prompt")


@pytest.mark.asyncio
async def test_openai_engine_maps_auth_errors():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(401, request=request)
    client = _mock_client(side_effect=openai.AuthenticationError("bad key", response=response, body=None))
    engine = OpenAIAlignmentEngine(client=client)

    with pytest.raises(EngineUnavailableError):
        await engine.describe_slide(SourceFile(filename="a.png", content=b"x"))


@pytest.mark.asyncio
async def test_openai_engine_other_api_errors_are_not_outages():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(400, request=request)
    client = _mock_client(side_effect=openai.BadRequestError("bad image", response=response, body=None))
    engine = OpenAIAlignmentEngine(client=client)

    with pytest.raises(RuntimeError) as excinfo:
        await engine.describe_slide(SourceFile(filename="a.png", content=b"x"))
    assert not isinstance(excinfo.value, EngineUnavailableError)


def test_openai_engine_azure_routes_by_deployment():
    service_config.set("use_azure_openai", True)
    service_config.set("azure_openai_deployment", "slides-deployment")

    with patch("services.engine.openai.create_azure_openai_client", return_value=_mock_client()) as factory:
        engine = OpenAIAlignmentEngine()

    factory.assert_called_once()
    assert engine.alignment_model == "slides-deployment"
    assert engine.vision_model == "slides-deployment"
