"""Shared model and credential configuration for the inference client."""

import os

import logfire
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

DEFAULT_MODEL = os.environ.get("PRIORITY_MODEL", "gpt-oss:20b")
DEFAULT_URL = os.environ.get("INFERENCE_URL", "http://localhost:11434") + "/v1"

# Configure logfire if token is set
if os.environ.get("LOGFIRE_TOKEN"):
    logfire.configure(
        scrubbing=False,
        send_to_logfire="if-token-present",
    )
    logfire.instrument_pydantic_ai()


def get_api_key() -> str | None:
    """Inference credential from INFERENCE_API_KEY, or None when unset."""
    return os.environ.get("INFERENCE_API_KEY") or None


def get_model(
    model_name: str | None = None,
    base_url: str | None = None,
    api_key: str | None = None,
) -> OpenAIChatModel:
    """Get configured model for the scoring agent.

    Args:
        model_name: Model identifier. Env: PRIORITY_MODEL. Default: gpt-oss:20b
        base_url: OpenAI-compatible API URL. Env: INFERENCE_URL.
            Default: localhost:11434
        api_key: Credential. Env: INFERENCE_API_KEY.

    Returns:
        Configured OpenAIChatModel for use with pydantic-ai agents.
    """
    return OpenAIChatModel(
        model_name=model_name or DEFAULT_MODEL,
        provider=OpenAIProvider(
            base_url=base_url or DEFAULT_URL,
            api_key=api_key or get_api_key() or "unset",
        ),
    )
