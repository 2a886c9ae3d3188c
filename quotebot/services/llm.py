"""Chat model construction for the supported LLM providers.

``vertex`` (default) talks to Gemini on Vertex AI, authenticated either
with the service account from ``SA_JSON`` or application default
credentials.  ``anthropic`` talks to Claude with an API key.
"""

from __future__ import annotations

import logging

from google.oauth2 import service_account
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_google_vertexai import ChatVertexAI, HarmBlockThreshold, HarmCategory

from quotebot.config import Settings
from quotebot.errors import ConfigError

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

TEMPERATURE = 0.2  # Low temperature for consistent, factual replies
MAX_OUTPUT_TOKENS = 1024

_SAFETY_CATEGORIES = (
    HarmCategory.HARM_CATEGORY_HARASSMENT,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def _safety_settings(threshold_name: str) -> dict:
    """Apply one block threshold to every harm category."""
    try:
        threshold = HarmBlockThreshold[threshold_name]
    except KeyError as exc:
        raise ConfigError(f"Unknown VERTEX_SAFETY_THRESHOLD: {threshold_name}") from exc
    return {category: threshold for category in _SAFETY_CATEGORIES}


def _build_vertex_model(settings: Settings) -> ChatVertexAI:
    kwargs = {}
    if settings.vertex_credentials:
        kwargs["credentials"] = service_account.Credentials.from_service_account_info(
            settings.vertex_credentials, scopes=[CLOUD_PLATFORM_SCOPE],
        )
    if settings.vertex_api_endpoint:
        kwargs["api_endpoint"] = settings.vertex_api_endpoint

    return ChatVertexAI(
        model=settings.vertex_model,
        project=settings.vertex_project,
        location=settings.vertex_location,
        temperature=TEMPERATURE,
        max_output_tokens=MAX_OUTPUT_TOKENS,
        safety_settings=_safety_settings(settings.vertex_safety_threshold),
        **kwargs,
    )


def _build_anthropic_model(settings: Settings) -> ChatAnthropic:
    return ChatAnthropic(
        model=settings.anthropic_model,
        api_key=settings.anthropic_api_key,
        temperature=TEMPERATURE,
        max_tokens=MAX_OUTPUT_TOKENS,
    )


def build_chat_model(settings: Settings) -> BaseChatModel:
    """Return the chat model for ``settings.llm_provider`` (no tools bound)."""
    if settings.llm_provider == "anthropic":
        model = _build_anthropic_model(settings)
        name = settings.anthropic_model
    else:
        model = _build_vertex_model(settings)
        name = f"{settings.vertex_model} ({settings.vertex_project}/{settings.vertex_location})"
    logger.info("Using %s model %s", settings.llm_provider, name)
    return model
