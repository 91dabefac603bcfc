"""OpenAI engine driver with Azure OpenAI routing support."""

from __future__ import annotations

from typing import Any

import openai
from openai import AsyncOpenAI

from shared.models import SourceFile
from shared.openai_client import create_azure_openai_client, create_openai_client, get_azure_deployment_name
from shared.utils import config as service_config
from shared.utils import setup_logging

from .base import SLIDE_DESCRIPTION_PROMPT, TRANSCRIPTION_PROMPT, AlignmentEngine, EngineUnavailableError

logger = setup_logging("openai-engine")

# Failures that mean the engine itself is unusable, not just one request.
UNAVAILABLE_ERRORS = (openai.APIConnectionError, openai.AuthenticationError, openai.PermissionDeniedError)

AUDIO_FORMATS = {".mp3": "mp3", ".wav": "wav"}


class OpenAIAlignmentEngine(AlignmentEngine):
    """Chat-completions engine: vision for slides, audio input, JSON alignment."""

    name = "openai"

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        self.use_azure: bool = service_config.get("use_azure_openai", False)
        self.vision_model: str = service_config.get("vision_model", "gpt-4o-mini")
        self.transcription_model: str = service_config.get("transcription_model", "gpt-4o-audio-preview")
        self.alignment_model: str = service_config.get("alignment_model", "gpt-4o")

        if client is not None:
            self.client = client
        elif self.use_azure:
            self.client = create_azure_openai_client()
        else:
            self.client = create_openai_client()

        if self.use_azure:
            # Azure routes by deployment name; one deployment serves every call.
            deployment = get_azure_deployment_name()
            self.vision_model = self.transcription_model = self.alignment_model = deployment

    async def describe_slide(self, image: SourceFile) -> str:
        data_url = f"data:{image.media_type};base64,{image.content_base64}"
        return await self._complete(
            self.vision_model,
            [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": SLIDE_DESCRIPTION_PROMPT},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }
            ],
        )

    async def transcribe_audio(self, audio: SourceFile) -> str:
        audio_format = AUDIO_FORMATS.get(audio.extension)
        if audio_format is None:
            raise ValueError(f"Audio format not supported for transcription: {audio.filename}")

        return await self._complete(
            self.transcription_model,
            [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": TRANSCRIPTION_PROMPT},
                        {"type": "input_audio", "input_audio": {"data": audio.content_base64, "format": audio_format}},
                    ],
                }
            ],
            modalities=["text"],
        )

    async def align(self, prompt: str) -> str:
        return await self._complete(
            self.alignment_model,
            [{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
        )

    async def _complete(self, model: str, messages: list[dict[str, Any]], **options: Any) -> str:
        try:
            response = await self.client.chat.completions.create(model=model, messages=messages, **options)
        except UNAVAILABLE_ERRORS as exc:
            logger.error("OpenAI engine unavailable: %s", exc)
            raise EngineUnavailableError(f"OpenAI request failed: {exc}") from exc
        except openai.OpenAIError as exc:
            raise RuntimeError(f"OpenAI request failed: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
