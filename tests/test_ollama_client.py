"""
Tests for the Ollama client.
"""
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from ollama_mcp.cancellation import CancellationToken
from ollama_mcp.config import OllamaConfig, PullCompletionPolicy
from ollama_mcp.exceptions import (
    GenerationError, ModelListError, NetworkError, OperationCancelledError,
    PullError, TransportError
)
from ollama_mcp.ollama.client import OllamaClient
from ollama_mcp.ollama.models import (
    ChatMessage, ChatRequest, ChatRole, GenerateRequest, ModelDescriptor
)

from helpers import ndjson

MODELS = {
    "models": [
        {"name": "llama3:latest", "size": 4661224676, "modified_at": "2024-05-01T10:00:00Z",
         "details": {"family": "llama"}},
        {"name": "tinyllama:latest", "size": 637700138, "modified_at": "2024-04-01T10:00:00Z"},
    ]
}


@pytest.fixture
def client(ollama_config):
    return OllamaClient(ollama_config)


class TestHealthCheck:
    """health_check never raises."""

    @pytest.mark.asyncio
    async def test_healthy_when_models_present(self, ollama_config, make_response, make_session):
        session = make_session(make_response(body={"models": []}))
        client = OllamaClient(ollama_config, session=session)

        assert await client.health_check() is True
        args, kwargs = session.request.call_args
        assert args == ("GET", "http://ollama.test:11434/api/tags")
        assert kwargs["headers"] == {"Accept": "application/json"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        NetworkError("connection refused"),
        TransportError("HTTP error! status: 500", status=500),
    ])
    async def test_unhealthy_on_transport_failures(self, client, error):
        with patch("ollama_mcp.ollama.client.request_json", AsyncMock(side_effect=error)):
            assert await client.health_check() is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"models": None}, ["not", "an", "object"]])
    async def test_unhealthy_without_model_collection(self, ollama_config, make_response, make_session, body):
        client = OllamaClient(ollama_config, session=make_session(make_response(body=body)))

        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_unhealthy_when_connection_fails(self, ollama_config, make_session):
        session = make_session(error=aiohttp.ClientConnectionError("refused"))
        client = OllamaClient(ollama_config, session=session)

        assert await client.health_check() is False


class TestModels:
    """Model listing and lookup."""

    @pytest.mark.asyncio
    async def test_list_models(self, ollama_config, make_response, make_session):
        client = OllamaClient(ollama_config, session=make_session(make_response(body=MODELS)))

        models = await client.list_models()

        assert [m.name for m in models] == ["llama3:latest", "tinyllama:latest"]
        assert models[0].details.family == "llama"
        assert models[1].details.family == ""

    @pytest.mark.asyncio
    async def test_list_models_empty_when_field_absent(self, ollama_config, make_response, make_session):
        client = OllamaClient(ollama_config, session=make_session(make_response(body={})))

        assert await client.list_models() == []

    @pytest.mark.asyncio
    async def test_list_models_wraps_transport_error(self, ollama_config, make_response, make_session):
        client = OllamaClient(ollama_config, session=make_session(make_response(status=503)))

        with pytest.raises(ModelListError) as exc_info:
            await client.list_models()

        assert exc_info.value.status == 503
        assert isinstance(exc_info.value.cause, TransportError)

    @pytest.mark.asyncio
    async def test_get_model_finds_exact_name(self, ollama_config, make_response, make_session):
        client = OllamaClient(ollama_config, session=make_session(make_response(body=MODELS)))

        model = await client.get_model("tinyllama:latest")

        assert isinstance(model, ModelDescriptor)
        assert model.size == 637700138

    @pytest.mark.asyncio
    async def test_get_model_missing(self, ollama_config, make_response, make_session):
        client = OllamaClient(ollama_config, session=make_session(make_response(body=MODELS)))

        assert await client.get_model("tinyllama") is None

    @pytest.mark.asyncio
    async def test_get_model_absorbs_listing_failure(self, client):
        with patch.object(client, "list_models", AsyncMock(side_effect=ModelListError("boom"))):
            assert await client.get_model("llama3:latest") is None


class TestGenerate:
    """Non-streaming generate and chat."""

    @pytest.mark.asyncio
    async def test_generate_posts_non_streaming_payload(self, ollama_config, make_response, make_session):
        body = {"model": "test-model", "response": "hello", "done": True, "total_duration": 10}
        session = make_session(make_response(body=body))
        client = OllamaClient(ollama_config, session=session)

        result = await client.generate(GenerateRequest(prompt="hi"))

        assert result.response == "hello"
        assert result.total_duration == 10
        _, kwargs = session.request.call_args
        assert kwargs["json"] == {"prompt": "hi", "model": "test-model", "stream": False}

    @pytest.mark.asyncio
    async def test_chat_flattens_message_content(self, ollama_config, make_response, make_session):
        body = {"model": "test-model", "message": {"role": "assistant", "content": "hey"},
                "eval_count": 3}
        client = OllamaClient(ollama_config, session=make_session(make_response(body=body)))

        result = await client.chat(ChatRequest(messages=[ChatMessage(role=ChatRole.USER, content="hi")]))

        assert result.response == "hey"
        assert result.eval_count == 3
        assert result.done is True

    @pytest.mark.asyncio
    async def test_generate_wraps_failures(self, ollama_config, make_session):
        session = make_session(error=aiohttp.ClientConnectionError("refused"))
        client = OllamaClient(ollama_config, session=session)

        with pytest.raises(GenerationError) as exc_info:
            await client.generate(GenerateRequest(prompt="hi"))

        assert isinstance(exc_info.value.cause, NetworkError)


class TestStreaming:
    """Streamed generate and chat."""

    @pytest.mark.asyncio
    async def test_generate_stream_aggregates_and_calls_back(self, ollama_config, make_response, make_session):
        chunks = [ndjson(
            {"model": "test-model", "response": "Hel", "done": False},
            {"model": "test-model", "response": "lo", "done": False},
        ), ndjson({"model": "test-model", "response": "!", "done": True, "eval_count": 3})]
        session = make_session(make_response(chunks=chunks))
        client = OllamaClient(ollama_config, session=session)
        seen = []

        result = await client.generate_stream(GenerateRequest(prompt="hi"), on_frame=lambda f: seen.append(f.response))

        assert seen == ["Hel", "lo", "!"]
        assert result.response == "Hello!"
        assert result.eval_count == 3
        assert session.request.call_args.kwargs["json"]["stream"] is True
        session.request_context.__aexit__.assert_called_once()

    @pytest.mark.asyncio
    async def test_stream_without_done_frame_synthesizes_result(self, ollama_config, make_response, make_session):
        chunks = [ndjson({"response": "partial "}, {"response": "text"})]
        client = OllamaClient(ollama_config, session=make_session(make_response(chunks=chunks)))

        result = await client.generate_stream(GenerateRequest(prompt="hi"))

        assert result.done is True
        assert result.response == "partial text"
        assert result.model == "test-model"

    @pytest.mark.asyncio
    async def test_chat_stream_flattens_frames(self, ollama_config, make_response, make_session):
        chunks = [ndjson(
            {"message": {"role": "assistant", "content": "Hi"}, "done": False},
            {"message": {"role": "assistant", "content": " there"}, "done": True},
        )]
        client = OllamaClient(ollama_config, session=make_session(make_response(chunks=chunks)))
        request = ChatRequest(messages=[ChatMessage(role=ChatRole.USER, content="hello")])

        result = await client.chat_stream(request)

        assert result.response == "Hi there"

    @pytest.mark.asyncio
    async def test_chat_stream_skips_frame_with_malformed_message(self, ollama_config, make_response, make_session):
        chunks = [ndjson(
            {"message": "oops"},
            {"message": {"role": "assistant", "content": "ok"}, "done": True},
        )]
        client = OllamaClient(ollama_config, session=make_session(make_response(chunks=chunks)))
        request = ChatRequest(messages=[ChatMessage(role=ChatRole.USER, content="hello")])
        seen = []

        result = await client.chat_stream(request, on_frame=lambda frame: seen.append(frame.response))

        assert result.response == "ok"
        assert seen == ["ok"]

    @pytest.mark.asyncio
    async def test_chat_wraps_malformed_message(self, ollama_config, make_response, make_session):
        session = make_session(make_response(body={"message": "oops", "done": True}))
        client = OllamaClient(ollama_config, session=session)

        with pytest.raises(GenerationError):
            await client.chat(ChatRequest(messages=[ChatMessage(role=ChatRole.USER, content="hello")]))

    @pytest.mark.asyncio
    async def test_cancelled_stream_stops_before_next_callback(self, ollama_config, make_response, make_session):
        chunks = [ndjson({"response": "a"}, {"response": "b"}, {"response": "c", "done": True})]
        session = make_session(make_response(chunks=chunks))
        client = OllamaClient(ollama_config, session=session)
        token = CancellationToken()
        seen = []

        def on_frame(frame):
            seen.append(frame.response)
            token.cancel()

        with pytest.raises(OperationCancelledError):
            await client.generate_stream(GenerateRequest(prompt="hi"), on_frame=on_frame, cancel=token)

        assert seen == ["a"]
        session.request_context.__aexit__.assert_called_once()

    @pytest.mark.asyncio
    async def test_stream_http_error(self, ollama_config, make_response, make_session):
        client = OllamaClient(ollama_config, session=make_session(make_response(status=404)))

        with pytest.raises(GenerationError) as exc_info:
            await client.generate_stream(GenerateRequest(prompt="hi"))

        assert exc_info.value.status == 404


class TestPull:
    """Model pulls."""

    @pytest.mark.asyncio
    async def test_pull_returns_on_success_frame(self, ollama_config, make_response, make_session):
        chunks = [ndjson(
            {"status": "pulling manifest"},
            {"status": "downloading", "total": 100, "completed": 50},
            {"status": "success"},
            {"status": "never read"},
        )]
        session = make_session(make_response(chunks=chunks))
        client = OllamaClient(ollama_config, session=session)
        statuses = []

        await client.pull_model("llama3", on_progress=lambda p: statuses.append(p.status))

        assert statuses == ["pulling manifest", "downloading", "success"]
        assert session.request.call_args.kwargs["json"] == {"name": "llama3"}
        session.request_context.__aexit__.assert_called_once()

    @pytest.mark.asyncio
    async def test_pull_without_success_frame_does_not_raise(self, ollama_config, make_response, make_session):
        chunks = [ndjson({"status": "pulling manifest"}, {"error": "pull model manifest: file does not exist"})]
        session = make_session(make_response(chunks=chunks))
        client = OllamaClient(ollama_config, session=session)

        await client.pull_model("nonexistent-model")

        session.request_context.__aexit__.assert_called_once()

    @pytest.mark.asyncio
    async def test_pull_without_success_frame_fails_under_fail_policy(self, make_response, make_session):
        config = OllamaConfig(pull_policy=PullCompletionPolicy.FAIL)
        session = make_session(make_response(chunks=[ndjson({"status": "pulling manifest"})]))
        client = OllamaClient(config, session=session)

        with pytest.raises(PullError) as exc_info:
            await client.pull_model("nonexistent-model")

        assert exc_info.value.model_name == "nonexistent-model"
        session.request_context.__aexit__.assert_called_once()

    @pytest.mark.asyncio
    async def test_pull_http_error(self, ollama_config, make_response, make_session):
        client = OllamaClient(ollama_config, session=make_session(make_response(status=500)))

        with pytest.raises(PullError) as exc_info:
            await client.pull_model("llama3")

        assert exc_info.value.context["model"] == "llama3"


@pytest.mark.asyncio
async def test_owned_session_is_closed(ollama_config):
    client = OllamaClient(ollama_config)
    session = client._get_session()

    await client.close()

    assert session.closed
    assert client.session is None


@pytest.mark.asyncio
async def test_injected_session_is_left_open(ollama_config, make_session):
    session = make_session()

    async with OllamaClient(ollama_config, session=session):
        pass

    session.close.assert_not_called()
