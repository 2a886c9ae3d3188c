"""Outbound replies through the Messenger Send API.

``send`` is fire-and-forget for its callers: transient failures (429, 5xx,
timeouts) are retried with a linearly growing backoff, and anything still
failing afterwards is logged and reported as ``False``.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from quotebot.config import Settings

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_ATTEMPTS = 3  # first try + 2 retries
BACKOFF_STEP_SECONDS = 0.3
REQUEST_TIMEOUT_SECONDS = 15.0

# The platform rejects texts over 2000 characters.
MAX_MESSAGE_CHARS = 1900


def _is_transient(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class MessengerClient:
    """Sends plain-text messages to a page-scoped user id."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        self._access_token = settings.page_access_token
        self._client = client or httpx.AsyncClient(
            base_url=settings.graph_api_url,
            headers={"Content-Type": "application/json"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(self, recipient_id: str, text: str) -> bool:
        """Deliver *text* to *recipient_id*.  Returns ``True`` on success."""
        payload = {
            "recipient": {"id": recipient_id},
            "messaging_type": "RESPONSE",
            "message": {"text": str(text)[:MAX_MESSAGE_CHARS]},
        }

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                response = await self._client.post(
                    "/me/messages",
                    json=payload,
                    params={"access_token": self._access_token},
                )
            except httpx.TransportError as exc:
                logger.warning(
                    "Send API attempt %d/%d failed (%s)",
                    attempt, MAX_ATTEMPTS, type(exc).__name__,
                )
            else:
                if response.status_code < 400:
                    logger.debug("Reply delivered to %s", recipient_id)
                    return True
                if not _is_transient(response.status_code):
                    logger.error(
                        "Send API rejected message to %s: status=%d body=%s",
                        recipient_id, response.status_code, response.text[:500],
                    )
                    return False
                logger.warning(
                    "Send API attempt %d/%d got status %d",
                    attempt, MAX_ATTEMPTS, response.status_code,
                )

            if attempt < MAX_ATTEMPTS:
                await asyncio.sleep(BACKOFF_STEP_SECONDS * attempt)

        logger.error(
            "Giving up on message to %s after %d attempts", recipient_id, MAX_ATTEMPTS,
        )
        return False


class ConsoleMessenger:
    """Prints replies instead of sending them (used by the dev CLI)."""

    def __init__(self, prefix: str = "Bot"):
        self._prefix = prefix

    async def aclose(self) -> None:
        pass

    async def send(self, recipient_id: str, text: str) -> bool:
        print(f"\n{self._prefix}: {str(text)[:MAX_MESSAGE_CHARS]}\n")
        return True
