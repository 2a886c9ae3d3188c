"""FastAPI server for the container quote bot.

Run with:
    uvicorn quotebot.server:app --host 0.0.0.0 --port 3000
or:
    python -m quotebot.server
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response

from quotebot.agent import create_quote_agent
from quotebot.api.routes import router
from quotebot.config import get_settings

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: load settings and build the agent once.

    A ``ConfigError`` raised here aborts start-up, so the server never
    accepts traffic with incomplete configuration.
    """
    settings = get_settings()
    application.state.settings = settings
    logger.info("Building quote agent (provider=%s)…", settings.llm_provider)
    application.state.agent = create_quote_agent(settings)
    logger.info("Agent ready.")
    yield
    await application.state.agent.aclose()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Container Quote Bot",
    description="Messenger webhook that answers container delivery price questions.",
    version="1.0.0",
    lifespan=lifespan,
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "Container Quote Bot",
        "version": "1.0.0",
        "webhook": "/webhook",
        "health": "/health",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    settings = get_settings()
    logger.info("Starting quote bot on %s:%d", settings.server_host, settings.server_port)
    uvicorn.run(app, host=settings.server_host, port=settings.server_port)
