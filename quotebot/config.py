"""Centralized configuration for the container quote bot.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/quotebot/<VARIABLE_NAME>``.

Settings are loaded once at start-up into an immutable :class:`Settings`
instance which is then handed to every component constructor.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

from quotebot.errors import ConfigError

logger = logging.getLogger(__name__)

SSM_PREFIX = "/quotebot"

LLM_PROVIDERS = ("vertex", "anthropic")
REPLY_MODES = ("template", "model")

DEFAULT_GRAPH_API_URL = "https://graph.facebook.com/v20.0"
DEFAULT_QUOTE_LOGIN_PATH = "/client/v1/User/login/website"
DEFAULT_QUOTE_CREATE_PATH = "/client/v1/Quote/create"


# ── Secret resolution ────────────────────────────────────────────────

def _on_aws() -> bool:
    return bool(os.getenv("AWS_EXECUTION_ENV"))


def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"{SSM_PREFIX}/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _get_env(name: str, default: str | None = None) -> str | None:
    """Return a config value from env-var or SSM, else *default*."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _on_aws():
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    return default


def _require_env(*names: str) -> str:
    """Return the first configured value among *names*, or raise."""
    for name in names:
        value = _get_env(name)
        if value:
            return value

    shown = " or ".join(names)
    raise ConfigError(
        f"Missing required configuration: {shown}. "
        f"Set it in .env (local) or SSM Parameter Store {SSM_PREFIX}/{names[0]} (AWS)."
    )


def _choice(name: str, value: str, allowed: tuple[str, ...]) -> str:
    value = value.strip().lower()
    if value not in allowed:
        raise ConfigError(f"{name} must be one of {', '.join(allowed)}; got {value!r}")
    return value


def decode_service_account(blob: str) -> dict[str, Any]:
    """Parse a service-account credential given as raw or base64-encoded JSON."""
    text = blob.strip()
    if not text.startswith("{"):
        try:
            text = base64.b64decode(text, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ConfigError("SA_JSON is neither JSON nor base64-encoded JSON") from exc
    try:
        info = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"SA_JSON is not valid JSON: {exc.msg}") from exc
    if not isinstance(info, dict):
        raise ConfigError("SA_JSON must decode to a JSON object")
    return info


# ── Settings ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, validated once at start-up."""

    # Messaging platform
    verify_token: str
    page_access_token: str
    quote_api_url: str
    app_secret: str | None = None
    graph_api_url: str = DEFAULT_GRAPH_API_URL

    # Quoting service
    quote_login_path: str = DEFAULT_QUOTE_LOGIN_PATH
    quote_create_path: str = DEFAULT_QUOTE_CREATE_PATH

    # LLM
    llm_provider: str = "vertex"
    vertex_project: str | None = None
    vertex_location: str = "us-central1"
    vertex_model: str = "gemini-1.5-pro"
    vertex_api_endpoint: str | None = None
    vertex_credentials: dict[str, Any] | None = None
    vertex_safety_threshold: str = "BLOCK_ONLY_HIGH"
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-sonnet-4-5"
    reply_mode: str = "template"

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = 3000

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the environment, raising ``ConfigError`` on gaps."""
        load_dotenv()

        provider = _choice("LLM_PROVIDER", _get_env("LLM_PROVIDER", "vertex"), LLM_PROVIDERS)
        reply_mode = _choice(
            "QUOTE_REPLY_MODE", _get_env("QUOTE_REPLY_MODE", "template"), REPLY_MODES,
        )

        vertex_project = None
        anthropic_api_key = None
        if provider == "vertex":
            vertex_project = _require_env("VERTEX_PROJECT", "GCP_PROJECT_ID")
        else:
            anthropic_api_key = _require_env("ANTHROPIC_API_KEY")

        sa_json = _get_env("SA_JSON")
        credentials = decode_service_account(sa_json) if sa_json else None
        if provider == "vertex" and credentials is None and not os.getenv(
            "GOOGLE_APPLICATION_CREDENTIALS"
        ):
            logger.warning(
                "SA_JSON not set and GOOGLE_APPLICATION_CREDENTIALS missing; "
                "falling back to application default credentials."
            )

        port = _get_env("PORT", "3000")
        try:
            server_port = int(port)
        except ValueError as exc:
            raise ConfigError(f"PORT must be an integer; got {port!r}") from exc

        return cls(
            verify_token=_require_env("VERIFY_TOKEN"),
            page_access_token=_require_env("PAGE_ACCESS_TOKEN"),
            quote_api_url=_require_env("USEDCONEX_API").rstrip("/"),
            app_secret=_get_env("APP_SECRET"),
            graph_api_url=_get_env("GRAPH_API_URL", DEFAULT_GRAPH_API_URL).rstrip("/"),
            quote_login_path=_get_env("QUOTE_LOGIN_PATH", DEFAULT_QUOTE_LOGIN_PATH),
            quote_create_path=_get_env("QUOTE_CREATE_PATH", DEFAULT_QUOTE_CREATE_PATH),
            llm_provider=provider,
            vertex_project=vertex_project,
            vertex_location=_get_env("VERTEX_LOCATION") or _get_env("GCP_LOCATION", "us-central1"),
            vertex_model=_get_env("VERTEX_MODEL", "gemini-1.5-pro"),
            vertex_api_endpoint=_get_env("VERTEX_API_ENDPOINT"),
            vertex_credentials=credentials,
            vertex_safety_threshold=_get_env("VERTEX_SAFETY_THRESHOLD", "BLOCK_ONLY_HIGH").upper(),
            anthropic_api_key=anthropic_api_key,
            anthropic_model=_get_env("ANTHROPIC_MODEL", "claude-sonnet-4-5"),
            reply_mode=reply_mode,
            server_host=_get_env("SERVER_HOST", "0.0.0.0"),
            server_port=server_port,
        )


def get_settings() -> Settings:
    """Load settings, logging the failure before re-raising it."""
    try:
        return Settings.from_env()
    except ConfigError:
        logger.critical("Refusing to start: configuration is incomplete")
        raise
