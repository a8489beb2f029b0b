"""
Tests for the HTTP transport primitive.
"""
import asyncio

import aiohttp
import pytest

from ollama_mcp.exceptions import NetworkError, TransportError
from ollama_mcp.transport import open_stream, request_json


@pytest.mark.asyncio
async def test_request_json_returns_decoded_body(make_response, make_session):
    session = make_session(make_response(body={"models": []}))

    data = await request_json(session, "GET", "http://x/api/tags", headers={"Accept": "application/json"})

    assert data == {"models": []}
    session.request.assert_called_once_with(
        "GET", "http://x/api/tags", headers={"Accept": "application/json"}, json=None
    )
    session.request_context.__aexit__.assert_called_once()


@pytest.mark.asyncio
async def test_non_2xx_raises_transport_error(make_response, make_session):
    session = make_session(make_response(status=404, text="not found"))

    with pytest.raises(TransportError) as exc_info:
        await request_json(session, "POST", "http://x/api/generate", payload={"prompt": "hi"})

    assert exc_info.value.status == 404
    assert exc_info.value.message == "HTTP error! status: 404"
    assert exc_info.value.context["body"] == "not found"


@pytest.mark.asyncio
async def test_invalid_json_body_raises_transport_error(make_response, make_session):
    response = make_response()
    response.json.side_effect = ValueError("Expecting value")
    session = make_session(response)

    with pytest.raises(TransportError) as exc_info:
        await request_json(session, "GET", "http://x/api/tags")

    assert exc_info.value.status == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    aiohttp.ClientConnectionError("connection refused"),
    asyncio.TimeoutError(),
])
async def test_io_failures_raise_network_error(make_session, error):
    session = make_session(error=error)

    with pytest.raises(NetworkError) as exc_info:
        await request_json(session, "GET", "http://x/api/tags")

    assert exc_info.value.cause is error
    assert exc_info.value.url == "http://x/api/tags"


@pytest.mark.asyncio
async def test_open_stream_releases_response_on_error(make_response, make_session):
    session = make_session(make_response())

    with pytest.raises(RuntimeError):
        async with open_stream(session, "http://x/api/pull", {"name": "m"}):
            raise RuntimeError("consumer failed")

    session.request_context.__aexit__.assert_called_once()


@pytest.mark.asyncio
async def test_open_stream_checks_status(make_response, make_session):
    session = make_session(make_response(status=500))

    with pytest.raises(TransportError):
        async with open_stream(session, "http://x/api/generate", {"prompt": "hi"}):
            pytest.fail("body should not be handed out for a failed status")
