"""Tests for the quote tool schema and argument validation."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from quotebot.errors import QuoteUnavailable, ValidationError
from quotebot.prompts import (
    OPTIONS_CLARIFICATION_REPLY,
    ZIP_CLARIFICATION_REPLY,
    clarification_for,
    format_quote_reply,
)
from quotebot.services.quote_client import QuoteResult
from quotebot.tools.quote import QUOTE_TOOL_NAME, build_quote_tool, parse_quote_args


class TestParseQuoteArgs:
    def test_applies_defaults(self):
        args = parse_quote_args({"zipcode": "90210"})
        assert args.model_dump() == {
            "zipcode": "90210",
            "size": "20ft",
            "condition": "cargo-worthy",
            "quantity": 1,
        }

    def test_accepts_explicit_options(self):
        args = parse_quote_args(
            {"zipcode": "10001", "size": "40ft-hc", "condition": "new", "quantity": 3.0},
        )
        assert (args.size, args.condition, args.quantity) == ("40ft-hc", "new", 3)

    def test_strips_surrounding_whitespace(self):
        assert parse_quote_args({"zipcode": " 90210 "}).zipcode == "90210"

    @pytest.mark.parametrize(
        "args",
        [
            {},
            {"zipcode": ""},
            {"zipcode": "9021"},
            {"zipcode": "902101"},
            {"zipcode": "90210-1234"},
            {"zipcode": "abcde"},
            {"zipcode": None},
        ],
    )
    def test_rejects_bad_zipcode(self, args):
        with pytest.raises(ValidationError) as exc_info:
            parse_quote_args(args)
        assert exc_info.value.field == "zipcode"

    @pytest.mark.parametrize(
        "extra, field",
        [
            ({"size": "10ft"}, "size"),
            ({"condition": "rusty"}, "condition"),
            ({"quantity": 0}, "quantity"),
            ({"quantity": 500}, "quantity"),
        ],
    )
    def test_rejects_bad_options(self, extra, field):
        with pytest.raises(ValidationError) as exc_info:
            parse_quote_args({"zipcode": "90210", **extra})
        assert exc_info.value.field == field

    def test_rejects_non_object(self):
        with pytest.raises(ValidationError):
            parse_quote_args(["90210"])


class TestBuildQuoteTool:
    def test_tool_schema(self):
        tool = build_quote_tool(MagicMock())
        assert tool.name == QUOTE_TOOL_NAME
        assert set(tool.args) == {"zipcode", "size", "condition", "quantity"}
        assert "ZIP code" in tool.description

    def test_invokes_client(self):
        client = MagicMock()
        expected = QuoteResult(postal_code="90210", base_price=1500, transport_price=300, total=1800)
        client.request_quote = AsyncMock(return_value=expected)
        tool = build_quote_tool(client)

        result = asyncio.run(tool.ainvoke(parse_quote_args({"zipcode": "90210"}).model_dump()))

        assert result is expected
        client.request_quote.assert_awaited_once_with("90210", "20ft", "cargo-worthy", 1)

    def test_propagates_quote_errors(self):
        client = MagicMock()
        client.request_quote = AsyncMock(side_effect=QuoteUnavailable("No quote returned"))
        tool = build_quote_tool(client)

        with pytest.raises(QuoteUnavailable):
            asyncio.run(tool.ainvoke({"zipcode": "90210"}))


class TestReplies:
    def test_format_quote_reply(self):
        quote = QuoteResult(postal_code="90210", base_price=1500, transport_price=300, total=1800)
        reply = format_quote_reply(quote)
        assert "90210" in reply
        assert "$1800.00" in reply

    def test_clarification_for_zipcode(self):
        assert clarification_for(ValidationError("bad", field="zipcode")) == ZIP_CLARIFICATION_REPLY

    def test_clarification_for_options(self):
        assert clarification_for(ValidationError("bad", field="size")) == OPTIONS_CLARIFICATION_REPLY
