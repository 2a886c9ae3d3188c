"""FastAPI route definitions for the messaging webhook."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request, Response
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError

from quotebot.agent import QuoteAgent
from quotebot.api.schemas import HealthResponse, MessagingEvent, WebhookAck, WebhookDelivery
from quotebot.api.security import SIGNATURE_HEADER, tokens_match, verify_signature
from quotebot.config import Settings
from quotebot.errors import SignatureError

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(
            status_code=503,
            detail="The service is still starting up. Please try again in a moment.",
        )
    return settings


def _get_agent(request: Request) -> QuoteAgent:
    """Retrieve the agent built during the FastAPI lifespan (see ``server.py``)."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return agent


def _should_handle(event: MessagingEvent) -> bool:
    if event.is_echo:
        # Our own outbound messages come back as echoes.
        return False
    if not event.sender_id or not event.text:
        logger.debug("Skipping event without sender or text")
        return False
    return True


async def process_events(agent: QuoteAgent, events: list[MessagingEvent], request_id: str) -> None:
    """Handle events one after another; a failure never stops its siblings."""
    for event in events:
        try:
            await agent.handle(event.sender_id, event.text)
        except Exception:
            logger.exception("[%s] Error handling event from %s", request_id, event.sender_id)


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.get("/webhook")
async def verify_webhook(
    request: Request,
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
):
    """Subscription handshake: echo the challenge iff the token matches."""
    settings = _get_settings(request)
    if hub_mode == "subscribe" and tokens_match(hub_verify_token, settings.verify_token):
        logger.info("Webhook verified")
        return PlainTextResponse(hub_challenge or "")

    logger.warning(
        "Failed webhook verification (mode=%s, token_present=%s)",
        hub_mode, bool(hub_verify_token),
    )
    return Response(status_code=403)


@router.post("/webhook", response_model=WebhookAck)
async def receive_webhook(request: Request, background_tasks: BackgroundTasks):
    """Accept a delivery and acknowledge it straight away.

    Events are answered in a background task after the ``200`` has been
    sent, so a slow model or quoting API never triggers platform retries.
    """
    settings = _get_settings(request)
    request_id = getattr(request.state, "request_id", "?")
    body = await request.body()

    if settings.app_secret:
        try:
            verify_signature(body, request.headers.get(SIGNATURE_HEADER), settings.app_secret)
        except SignatureError as exc:
            logger.warning("[%s] Rejected webhook delivery: %s", request_id, exc)
            raise HTTPException(status_code=403, detail="Invalid signature") from exc

    agent = _get_agent(request)

    try:
        delivery = WebhookDelivery.model_validate_json(body)
    except PydanticValidationError as exc:
        logger.warning(
            "[%s] Ignoring malformed webhook body (%d errors)", request_id, exc.error_count(),
        )
        return WebhookAck(status="IGNORED")

    events = [event for event in delivery.events() if _should_handle(event)]
    logger.info("[%s] Accepted %d event(s)", request_id, len(events))
    if events:
        background_tasks.add_task(process_events, agent, events, request_id)
    return WebhookAck()
