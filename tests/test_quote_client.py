"""Tests for the QuoteClient service."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from quotebot.errors import AuthError, QuoteUnavailable, TransportError
from quotebot.services.quote_client import (
    QuoteClient,
    QuoteResult,
    compute_total,
    normalize_quote,
)

LOGIN_OK = {"data": {"Token": "tok-123"}}


# ── Tests: response normalization ────────────────────────────────────


class TestNormalizeQuote:
    def test_unwraps_list(self):
        body = {"data": [{"totalPrice": 1500}, {"totalPrice": 9}]}
        assert normalize_quote(body) == {"totalPrice": 1500}

    def test_unwraps_bare_object(self):
        body = {"data": {"totalPrice": 1500, "totalTransport": 300}}
        assert normalize_quote(body) == {"totalPrice": 1500, "totalTransport": 300}

    @pytest.mark.parametrize("body", [{"data": []}, {"data": None}, {"data": {}}, [], None, "oops"])
    def test_returns_none_without_record(self, body):
        assert normalize_quote(body) is None


class TestComputeTotal:
    def test_sums_base_and_transport(self):
        assert compute_total({"totalPrice": 1500, "totalTransport": 300}) == (1500.0, 300.0, 1800.0)

    def test_rounds_to_cents(self):
        _, _, total = compute_total({"totalPrice": 0.1, "totalTransport": 0.2})
        assert total == 0.3

    def test_accepts_numeric_strings(self):
        _, _, total = compute_total({"totalPrice": "1499.5", "totalTransport": "0.5"})
        assert f"{total:.2f}" == "1500.00"

    @pytest.mark.parametrize(
        "record, expected",
        [
            ({"totalPrice": 1500}, 1500.0),
            ({"totalTransport": 250}, 250.0),
            ({"totalPrice": "n/a", "totalTransport": 99.5}, 99.5),
            ({"totalPrice": None, "totalTransport": 10}, 10.0),
        ],
    )
    def test_missing_or_junk_fields_count_as_zero(self, record, expected):
        assert compute_total(record)[2] == expected

    @pytest.mark.parametrize(
        "record",
        [{}, {"totalPrice": 0, "totalTransport": 0}, {"totalPrice": -5}, {"totalPrice": "nan"}],
    )
    def test_unusable_total_raises(self, record):
        with pytest.raises(QuoteUnavailable):
            compute_total(record)


# ── Tests: request_quote ─────────────────────────────────────────────


class TestRequestQuote:
    def test_logs_in_then_quotes(self, settings, mock_response):
        client = QuoteClient(settings)
        responses = [
            mock_response(LOGIN_OK),
            mock_response({"data": [{"totalPrice": 1500, "totalTransport": 300}]}),
        ]

        with patch.object(client._client, "post", new=AsyncMock(side_effect=responses)) as mock_post:
            quote = asyncio.run(client.request_quote("90210"))

        assert isinstance(quote, QuoteResult)
        assert quote.total == 1800.0
        assert quote.postal_code == "90210"

        login_call, quote_call = mock_post.call_args_list
        assert login_call.args[0] == settings.quote_login_path
        assert login_call.kwargs["json"] == {}
        assert quote_call.args[0] == settings.quote_create_path
        assert quote_call.kwargs["headers"] == {"Authorization": "Bearer tok-123"}
        assert quote_call.kwargs["json"] == {
            "zipcode": "90210",
            "isDelivery": True,
            "items": [{"size": "20ft", "condition": "cargo-worthy", "quantity": 1}],
        }

    def test_passes_custom_line_item(self, settings, mock_response):
        client = QuoteClient(settings)
        responses = [
            mock_response(LOGIN_OK),
            mock_response({"data": {"totalPrice": 5000, "totalTransport": 800}}),
        ]

        with patch.object(client._client, "post", new=AsyncMock(side_effect=responses)) as mock_post:
            quote = asyncio.run(client.request_quote("10001", "40ft", "new", 2))

        assert quote.total == 5800.0
        assert (quote.size, quote.condition, quote.quantity) == ("40ft", "new", 2)
        items = mock_post.call_args_list[1].kwargs["json"]["items"]
        assert items == [{"size": "40ft", "condition": "new", "quantity": 2}]

    def test_fetches_fresh_token_per_quote(self, settings, mock_response):
        client = QuoteClient(settings)
        quote_body = {"data": [{"totalPrice": 100, "totalTransport": 1}]}
        responses = [
            mock_response(LOGIN_OK), mock_response(quote_body),
            mock_response(LOGIN_OK), mock_response(quote_body),
        ]

        with patch.object(client._client, "post", new=AsyncMock(side_effect=responses)) as mock_post:
            asyncio.run(client.request_quote("90210"))
            asyncio.run(client.request_quote("90210"))

        assert mock_post.call_count == 4

    def test_login_error_skips_quote_call(self, settings, mock_response):
        client = QuoteClient(settings)

        with patch.object(
            client._client, "post", new=AsyncMock(return_value=mock_response({"message": "no"}, 401)),
        ) as mock_post:
            with pytest.raises(AuthError) as exc_info:
                asyncio.run(client.request_quote("90210"))

        assert exc_info.value.status_code == 401
        assert mock_post.call_count == 1

    def test_login_without_token_is_auth_error(self, settings, mock_response):
        client = QuoteClient(settings)

        with patch.object(
            client._client, "post", new=AsyncMock(return_value=mock_response({"data": {}})),
        ) as mock_post:
            with pytest.raises(AuthError):
                asyncio.run(client.request_quote("90210"))

        assert mock_post.call_count == 1

    def test_quote_http_error_is_unavailable(self, settings, mock_response):
        client = QuoteClient(settings)
        responses = [mock_response(LOGIN_OK), mock_response({"message": "boom"}, 500)]

        with patch.object(client._client, "post", new=AsyncMock(side_effect=responses)):
            with pytest.raises(QuoteUnavailable) as exc_info:
                asyncio.run(client.request_quote("90210"))

        assert exc_info.value.status_code == 500

    def test_empty_quote_is_unavailable(self, settings, mock_response):
        client = QuoteClient(settings)
        responses = [mock_response(LOGIN_OK), mock_response({"data": []})]

        with patch.object(client._client, "post", new=AsyncMock(side_effect=responses)):
            with pytest.raises(QuoteUnavailable, match="No quote"):
                asyncio.run(client.request_quote("90210"))

    def test_timeout_is_transport_error(self, settings, mock_response):
        client = QuoteClient(settings)
        responses = [mock_response(LOGIN_OK), httpx.ReadTimeout("slow")]

        with patch.object(client._client, "post", new=AsyncMock(side_effect=responses)):
            with pytest.raises(TransportError):
                asyncio.run(client.request_quote("90210"))

    def test_login_connect_error_is_transport_error(self, settings):
        client = QuoteClient(settings)

        with patch.object(
            client._client, "post", new=AsyncMock(side_effect=httpx.ConnectError("refused")),
        ):
            with pytest.raises(TransportError):
                asyncio.run(client.request_quote("90210"))
