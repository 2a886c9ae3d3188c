"""System prompt and user-facing reply templates."""

from __future__ import annotations

from quotebot.errors import ValidationError
from quotebot.services.quote_client import QuoteResult

SYSTEM_PROMPT = """You are the friendly sales assistant of **UsedConex**, a seller of new and used shipping containers delivered anywhere in the United States.

## What you can do
- Answer questions about containers (sizes, conditions, delivery) briefly and accurately.
- Give delivered prices with the `get_container_quote` tool.

## Quote Flow
1. When the customer asks about price, cost or a quote, you need their 5-digit ZIP code.
2. If the ZIP code is missing, ask for it. Do NOT guess one.
3. Once you have it, call `get_container_quote`. Use size 20ft, condition cargo-worthy and
   quantity 1 unless the customer asked for something else.
4. Report the total price from the tool result with two decimals and mention the ZIP code.

## Rules
- **NEVER** make up prices. Only share prices returned by the tool.
- Keep replies short: this is a chat on a phone.
- Stay on topic. If asked about unrelated things, politely steer back to containers.
"""

# ── Canned replies ───────────────────────────────────────────────────

APOLOGY_REPLY = "Sorry, I'm having trouble processing your request. Please try again in a few minutes."

NO_ANSWER_REPLY = (
    "Sorry, I couldn't generate a response right now. "
    "If you'd like a container price, just send me your 5-digit ZIP code."
)

BUDGET_EXHAUSTED_REPLY = (
    "Sorry, I couldn't finish that request. "
    "Please send your 5-digit ZIP code and I'll look up a price for you."
)

ZIP_CLARIFICATION_REPLY = (
    "I need a valid 5-digit US ZIP code to look up a price (for example 90210). "
    "Could you double-check it?"
)

OPTIONS_CLARIFICATION_REPLY = (
    "I couldn't understand that order. We quote 20ft, 40ft and 40ft high-cube "
    "containers in new, cargo-worthy or wind-and-water-tight condition, "
    "up to 50 at a time. Which would you like?"
)


def clarification_for(error: ValidationError) -> str:
    """Pick the clarification message for a rejected tool call."""
    if error.field in (None, "zipcode"):
        return ZIP_CLARIFICATION_REPLY
    return OPTIONS_CLARIFICATION_REPLY


def format_quote_reply(quote: QuoteResult) -> str:
    """Deterministic reply for a successful quote."""
    plural = "s" if quote.quantity != 1 else ""
    return (
        f"Price for ZIP {quote.postal_code}: ${quote.total:.2f} "
        f"({quote.quantity} x {quote.size} {quote.condition} container{plural}, delivered)."
    )
