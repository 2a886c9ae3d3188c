"""Error taxonomy shared by every component of the quote bot.

Only ``ConfigError`` is fatal (raised during start-up).  ``SignatureError``
becomes a ``403`` for the webhook caller.  Everything else is caught per
event by the orchestrator and turned into a friendly reply.
"""

from __future__ import annotations


class QuoteBotError(Exception):
    """Base class for all errors raised by the quote bot."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ConfigError(QuoteBotError):
    """Required configuration is missing or malformed."""


class AuthError(QuoteBotError):
    """Login against the quoting service failed."""


class QuoteUnavailable(QuoteBotError):
    """The quoting service returned no usable pricing data."""


class TransportError(QuoteBotError):
    """Network failure or timeout talking to an external service."""


class ValidationError(QuoteBotError):
    """Tool arguments proposed by the model are malformed."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class SignatureError(QuoteBotError):
    """The webhook payload failed the HMAC authenticity check."""
