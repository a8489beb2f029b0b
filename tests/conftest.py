"""
Shared fixtures: fake aiohttp responses and sessions.

``session.request(...)`` is used as an async context manager by the
transport layer, so the fake session returns a context object whose
``__aenter__`` yields the fake response and whose ``__aexit__`` can be
asserted on to check the response was released.
"""
from typing import Any, List, Optional
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from ollama_mcp.config import Config, MCPConfig, OllamaConfig

from helpers import FakeContent


@pytest.fixture
def make_response():
    """Factory for a fake response with a JSON body or a chunked stream."""

    def _make(
        status: int = 200,
        body: Any = None,
        chunks: Optional[List[bytes]] = None,
        text: str = "",
    ) -> Mock:
        response = Mock()
        response.status = status
        response.json = AsyncMock(return_value=body)
        response.text = AsyncMock(return_value=text)
        response.content = FakeContent(chunks or [])
        return response

    return _make


@pytest.fixture
def make_session():
    """Factory for a fake session whose ``request`` yields ``response``.

    The returned session exposes ``request_context`` so tests can assert on
    ``__aexit__``.
    """

    def _make(response: Any = None, error: Optional[BaseException] = None) -> Mock:
        context = MagicMock()
        if error is not None:
            context.__aenter__ = AsyncMock(side_effect=error)
        else:
            context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)

        session = Mock()
        session.request = Mock(return_value=context)
        session.close = AsyncMock()
        session.request_context = context
        return session

    return _make


@pytest.fixture
def ollama_config():
    """Ollama configuration for testing."""
    return OllamaConfig(base_url="http://ollama.test:11434", model="test-model")


@pytest.fixture
def mcp_config():
    """Envelope configuration for testing."""
    return MCPConfig(base_url="http://mcp.test:3000", api_key="test-key")


@pytest.fixture
def config(ollama_config, mcp_config):
    """Full configuration for testing."""
    return Config(ollama=ollama_config, mcp=mcp_config)
