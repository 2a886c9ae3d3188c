"""Shared test fixtures for the quote bot test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest

from quotebot.config import Settings


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts."""
    os.environ.setdefault("VERIFY_TOKEN", "test-verify-token")
    os.environ.setdefault("PAGE_ACCESS_TOKEN", "test-page-token")
    os.environ.setdefault("USEDCONEX_API", "https://quotes.example.test")
    os.environ.setdefault("VERTEX_PROJECT", "test-project")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        verify_token="test-verify-token",
        page_access_token="test-page-token",
        quote_api_url="https://quotes.example.test",
        vertex_project="test-project",
    )


@pytest.fixture
def mock_response():
    """Factory fixture for creating mock HTTP responses."""

    def _make(data, status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        mock.json.return_value = data
        mock.text = str(data)
        return mock

    return _make
