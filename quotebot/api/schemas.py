"""Pydantic schemas for the webhook endpoints.

Only the fields the bot reads are modelled; everything else the platform
sends is ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class _PlatformModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Participant(_PlatformModel):
    id: str | None = None


class Message(_PlatformModel):
    mid: str | None = None
    text: str | None = None
    is_echo: bool = False


class Postback(_PlatformModel):
    payload: str | None = None
    title: str | None = None


class MessagingEvent(_PlatformModel):
    """One inbound event: a sender plus free text or a postback."""

    sender: Participant | None = None
    recipient: Participant | None = None
    timestamp: int | None = None
    message: Message | None = None
    postback: Postback | None = None

    @property
    def sender_id(self) -> str | None:
        return self.sender.id if self.sender else None

    @property
    def is_echo(self) -> bool:
        return bool(self.message and self.message.is_echo)

    @property
    def text(self) -> str | None:
        """Message text, else the postback payload, else its title."""
        if self.message and self.message.text:
            return self.message.text
        if self.postback:
            return self.postback.payload or self.postback.title
        return None


class Entry(_PlatformModel):
    id: str | None = None
    time: int | None = None
    # Events stay raw so one malformed event cannot reject the whole delivery.
    messaging: list[Any] = Field(default_factory=list)


class WebhookDelivery(_PlatformModel):
    """Body of ``POST /webhook``: one or more batches of messaging events."""

    object: str | None = None
    entry: list[Entry] = Field(default_factory=list)

    def events(self) -> Iterator[MessagingEvent]:
        """Validate each event on its own, skipping the malformed ones."""
        for entry in self.entry:
            for raw in entry.messaging:
                try:
                    yield MessagingEvent.model_validate(raw)
                except PydanticValidationError as exc:
                    logger.warning(
                        "Skipping malformed messaging event (%d errors)", exc.error_count(),
                    )


class WebhookAck(BaseModel):
    """Acknowledgement returned to the platform."""

    status: str = "EVENT_RECEIVED"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "container-quote-bot"
