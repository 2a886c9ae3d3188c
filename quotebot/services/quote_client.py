"""Async HTTP client for the UsedConex container quoting API.

Every quote is a two-step exchange:

1. ``POST {login_path}`` with an empty JSON body returns a bearer token.
2. ``POST {create_path}`` with the token creates a quote for a single
   line item and returns the pricing record(s).

A fresh token is fetched for every quote.  Nothing is retried here: the
caller decides what a failure means for the user.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

import httpx

from quotebot.config import Settings
from quotebot.errors import AuthError, QuoteUnavailable, TransportError

logger = logging.getLogger(__name__)

# ── Timeouts ────────────────────────────────────────────────────────
LOGIN_TIMEOUT_SECONDS = 15.0
QUOTE_TIMEOUT_SECONDS = 20.0

# ── Defaults used when nobody asked for anything specific ───────────
DEFAULT_SIZE = "20ft"
DEFAULT_CONDITION = "cargo-worthy"
DEFAULT_QUANTITY = 1


@dataclass(frozen=True)
class QuoteResult:
    """A usable quote: ``total`` is always finite and positive."""

    postal_code: str
    base_price: float
    transport_price: float
    total: float
    size: str = DEFAULT_SIZE
    condition: str = DEFAULT_CONDITION
    quantity: int = DEFAULT_QUANTITY
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def as_tool_payload(self) -> dict[str, Any]:
        """Compact representation handed back to the model as a tool result."""
        return {
            "zipcode": self.postal_code,
            "size": self.size,
            "condition": self.condition,
            "quantity": self.quantity,
            "basePrice": self.base_price,
            "transport": self.transport_price,
            "totalPrice": f"{self.total:.2f}",
            "currency": "USD",
        }


# ── Response normalization ──────────────────────────────────────────


def normalize_quote(body: Any) -> dict[str, Any] | None:
    """Return the single pricing record inside *body*, or ``None``.

    The service wraps its payload in ``{"data": ...}`` where ``data`` is
    sometimes the record itself and sometimes a list of records.
    """
    data = body.get("data", body) if isinstance(body, dict) else body
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict) and data:
        return data
    return None


def _as_number(value: Any) -> float:
    """Coerce a price field to float; missing or junk values count as zero."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def compute_total(record: dict[str, Any]) -> tuple[float, float, float]:
    """Return ``(base, transport, total)`` for a pricing record.

    Raises:
        QuoteUnavailable: if the total is not a finite positive number.
    """
    base = _as_number(record.get("totalPrice"))
    transport = _as_number(record.get("totalTransport"))
    total = round(base + transport, 2)
    if not math.isfinite(total) or total <= 0:
        raise QuoteUnavailable(f"Quote has no usable price (total={total!r})")
    return base, transport, total


# ── Client ──────────────────────────────────────────────────────────


class QuoteClient:
    """Thin async wrapper around the quoting API."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        self._login_path = settings.quote_login_path
        self._create_path = settings.quote_create_path
        self._client = client or httpx.AsyncClient(
            base_url=settings.quote_api_url,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Internal helpers ─────────────────────────────────────────────

    async def _login(self) -> str:
        """Fetch a bearer token.  The login endpoint takes no credentials."""
        try:
            response = await self._client.post(
                self._login_path, json={}, timeout=LOGIN_TIMEOUT_SECONDS,
            )
        except httpx.TransportError as exc:
            raise TransportError(f"Quote login request failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            logger.error(
                "Quote login failed: status=%d body=%s",
                response.status_code, response.text[:500],
            )
            raise AuthError(
                f"Quote login failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json().get("data") or {}
        except (ValueError, AttributeError):
            data = {}
        token = (data.get("Token") or data.get("token")) if isinstance(data, dict) else None
        if not token:
            raise AuthError("No token returned from quote login", status_code=response.status_code)
        return token

    # ── Public API ───────────────────────────────────────────────────

    async def request_quote(
        self,
        postal_code: str,
        size: str = DEFAULT_SIZE,
        condition: str = DEFAULT_CONDITION,
        quantity: int = DEFAULT_QUANTITY,
    ) -> QuoteResult:
        """Create a delivery quote for *quantity* containers to *postal_code*.

        Raises:
            AuthError: the login step failed; no quote call was made.
            QuoteUnavailable: the quote call failed or had no usable price.
            TransportError: a request timed out or could not connect.
        """
        token = await self._login()

        payload = {
            "zipcode": postal_code,
            "isDelivery": True,
            "items": [{"size": size, "condition": condition, "quantity": quantity}],
        }
        try:
            response = await self._client.post(
                self._create_path,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
                timeout=QUOTE_TIMEOUT_SECONDS,
            )
        except httpx.TransportError as exc:
            raise TransportError(f"Quote request failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            logger.error(
                "Quote API failed: status=%d body=%s",
                response.status_code, response.text[:500],
            )
            raise QuoteUnavailable(
                f"Quote API failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise QuoteUnavailable("Quote API returned a non-JSON body") from exc

        record = normalize_quote(body)
        if record is None:
            raise QuoteUnavailable("No quote returned")

        base, transport, total = compute_total(record)
        logger.info(
            "Quote for %s: %d x %s %s = %.2f", postal_code, quantity, size, condition, total,
        )
        return QuoteResult(
            postal_code=postal_code,
            base_price=base,
            transport_price=transport,
            total=total,
            size=size,
            condition=condition,
            quantity=quantity,
            raw=record,
        )
