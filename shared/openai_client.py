"""Builder for creating Azure OpenAI and OpenAI clients.

Engine drivers call these factories instead of constructing clients themselves
so credentials and base URLs are resolved in one place.
"""

from __future__ import annotations

import os

from openai import AsyncOpenAI

from shared.config import config


def create_azure_openai_client(
    api_key: str | None = None,
    azure_endpoint: str | None = None,
    timeout: float | None = None,
) -> AsyncOpenAI:
    """
    Create an Azure OpenAI client using the v1 API pattern.

    Args:
        api_key: Azure OpenAI API key (auto-detected if None)
        azure_endpoint: Azure OpenAI endpoint URL (auto-detected if None)
        timeout: Request timeout in seconds (config default if None)

    Returns:
        Configured AsyncOpenAI client

    Raises:
        ValueError: If credentials are not configured
    """
    api_key = api_key or config.get("azure_openai_key") or os.getenv("AZURE_OPENAI_KEY")
    azure_endpoint = (
        azure_endpoint or config.get("azure_openai_endpoint") or os.getenv("AZURE_OPENAI_ENDPOINT")
    )

    if not api_key or not azure_endpoint:
        raise ValueError(
            "Azure OpenAI credentials not configured. "
            "Set AZURE_OPENAI_KEY and AZURE_OPENAI_ENDPOINT environment variables."
        )

    base_url = f"{azure_endpoint.rstrip('/')}/openai/v1/"
    return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout or config.get("engine_timeout", 120.0))


def create_openai_client(api_key: str | None = None, timeout: float | None = None) -> AsyncOpenAI:
    """
    Create a direct OpenAI client.

    Args:
        api_key: OpenAI API key (auto-detected if None)
        timeout: Request timeout in seconds (config default if None)

    Returns:
        Configured AsyncOpenAI client

    Raises:
        ValueError: If API key is not configured
    """
    api_key = api_key or config.get("openai_api_key") or os.getenv("OPENAI_API_KEY")

    if not api_key:
        raise ValueError("OpenAI API key not configured. Set OPENAI_API_KEY environment variable.")

    return AsyncOpenAI(api_key=api_key, timeout=timeout or config.get("engine_timeout", 120.0))


def get_azure_deployment_name(deployment: str | None = None) -> str:
    """
    Get Azure OpenAI deployment name from config or parameter.

    Args:
        deployment: Explicit deployment name (overrides config)

    Returns:
        Azure deployment name
    """
    return (
        deployment
        or config.get("azure_openai_deployment")
        or os.getenv("AZURE_OPENAI_DEPLOYMENT")
        or "gpt-4o"
    )
