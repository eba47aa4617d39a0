"""Fixtures for testing ytls."""

import logging
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from aiohttp import ClientResponse

from ytls.config import LiveStreamConfig


@pytest.fixture(name="caplog")
def caplog_fixture(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """Set log level to debug for tests using the caplog fixture."""
    caplog.set_level(logging.DEBUG)
    return caplog


@pytest.fixture
def slow_config() -> LiveStreamConfig:
    """Return a config whose refresh interval never fires during a test."""
    return LiveStreamConfig(base_interval=3600)


def make_response(
    status: int = 200, body: bytes = b"", headers: dict[str, str] | None = None
) -> AsyncMock:
    """Return a mocked aiohttp response that acts as an async context manager."""
    response = AsyncMock(spec=ClientResponse)
    response.status = status
    response.headers = headers or {}
    response.read.return_value = body

    request_ctx = AsyncMock()
    request_ctx.__aenter__.return_value = response
    request_ctx.__aexit__.return_value = False
    return request_ctx


@pytest.fixture
def response_factory() -> Callable[..., AsyncMock]:
    """Return the factory for mocked aiohttp responses."""
    return make_response


@pytest.fixture
def http_session() -> Mock:
    """Return a mock aiohttp session, set session.get to a MagicMock in the test."""
    session = Mock()
    session.closed = False
    session.close = AsyncMock()
    session.get = MagicMock()
    return session


def playlist(*items: str, tags: Any = ("#EXTM3U", "#EXT-X-VERSION:3")) -> bytes:
    """Build a simple playlist document with an #EXTINF tag before every item."""
    lines = list(tags)
    for item in items:
        lines.append("#EXTINF:5.0,")
        lines.append(item)
    return ("\n".join(lines) + "\n").encode()
