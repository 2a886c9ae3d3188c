"""LangChain tool for container delivery quotes.

The model sees the ``get_container_quote`` schema below and may ask for
it to be called.  Arguments are validated by :func:`parse_quote_args`
before the tool ever touches the quoting API.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from quotebot.errors import ValidationError
from quotebot.intent import is_valid_postal_code
from quotebot.services.quote_client import (
    DEFAULT_CONDITION,
    DEFAULT_QUANTITY,
    DEFAULT_SIZE,
    QuoteClient,
    QuoteResult,
)

logger = logging.getLogger(__name__)

QUOTE_TOOL_NAME = "get_container_quote"
MAX_QUANTITY = 50

ContainerSize = Literal["20ft", "40ft", "40ft-hc"]
ContainerCondition = Literal["new", "cargo-worthy", "wind-and-water-tight"]


class QuoteToolArgs(BaseModel):
    """Arguments of the ``get_container_quote`` tool."""

    zipcode: str = Field(
        ...,
        description='5-digit US ZIP code of the delivery address, e.g. "90210".',
    )
    size: ContainerSize = Field(
        DEFAULT_SIZE,
        description="Container size. Use 20ft unless the customer asks for another size.",
    )
    condition: ContainerCondition = Field(
        DEFAULT_CONDITION,
        description="Container condition. Use cargo-worthy unless the customer asks otherwise.",
    )
    quantity: int = Field(
        DEFAULT_QUANTITY,
        ge=1,
        le=MAX_QUANTITY,
        description="Number of containers to deliver.",
    )


def parse_quote_args(raw: Any) -> QuoteToolArgs:
    """Validate model-supplied arguments for the quote tool.

    Raises:
        ValidationError: with ``field`` set to the offending argument.
    """
    if not isinstance(raw, dict):
        raise ValidationError("Tool arguments must be an object")

    zipcode = raw.get("zipcode")
    zipcode = str(zipcode).strip() if zipcode is not None else ""
    if not is_valid_postal_code(zipcode):
        raise ValidationError(f"Invalid ZIP code: {zipcode!r}", field="zipcode")

    try:
        return QuoteToolArgs.model_validate({**raw, "zipcode": zipcode})
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        raise ValidationError(f"Invalid {field}: {first['msg']}", field=field) from exc


def build_quote_tool(client: QuoteClient) -> BaseTool:
    """Bind the quote tool to *client*.

    Invoked with a plain dict the tool returns the :class:`QuoteResult`
    itself; quoting errors propagate unchanged.
    """

    @tool(QUOTE_TOOL_NAME, args_schema=QuoteToolArgs)
    async def get_container_quote(
        zipcode: str,
        size: str = DEFAULT_SIZE,
        condition: str = DEFAULT_CONDITION,
        quantity: int = DEFAULT_QUANTITY,
    ) -> QuoteResult:
        """Get the delivered price of shipping containers to a US ZIP code.

        Call this whenever the customer asks for a price or quote and a
        5-digit ZIP code is known.
        """
        return await client.request_quote(zipcode, size, condition, quantity)

    return get_container_quote
