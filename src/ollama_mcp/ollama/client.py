"""
Ollama client for ollama-mcp.

Typed facade over the model-serving daemon's HTTP API: model listing,
health, one-shot and streamed generate/chat, and model pulls.
"""
from typing import Any, Callable, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from ..cancellation import CancellationToken
from ..config import OllamaConfig, PullCompletionPolicy
from ..exceptions import (
    ErrorContext, GenerationError, ModelListError, NetworkError,
    PullError, TransportError
)
from ..logging import get_client_logger
from ..transport import open_stream, request_json
from .models import (
    ChatRequest, GenerateRequest, GenerateResult, ModelDescriptor, PullProgress
)
from .streaming import StreamAggregate, iter_frames

FrameCallback = Callable[[GenerateResult], None]
ProgressCallback = Callable[[PullProgress], None]

_WRAPPED = (TransportError, NetworkError, ValidationError)


class OllamaClient:
    """Client for a local Ollama daemon."""

    def __init__(self, config: OllamaConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.default_model = config.model
        self.logger = get_client_logger("ollama")
        self.session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout, trust_env=True)
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self.session is not None and self._owns_session:
            await self.session.close()
        self.session = None

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def health_check(self) -> bool:
        """True when ``/api/tags`` answers with a model collection. Never raises."""
        url = f"{self.base_url}/api/tags"
        try:
            data = await request_json(
                self._get_session(), "GET", url, headers={"Accept": "application/json"}
            )
        except (TransportError, NetworkError) as e:
            self.logger.warning("Ollama health check failed", error=str(e))
            return False
        return isinstance(data, dict) and data.get("models") is not None

    async def list_models(self) -> List[ModelDescriptor]:
        """List installed models."""
        url = f"{self.base_url}/api/tags"
        with ErrorContext("list models", ModelListError, _WRAPPED, logger=self.logger):
            data = await request_json(self._get_session(), "GET", url)
            models = data.get("models") if isinstance(data, dict) else None
            return [ModelDescriptor.model_validate(m) for m in models or []]

    async def get_model(self, name: str) -> Optional[ModelDescriptor]:
        """Best-effort lookup of one installed model by exact name."""
        try:
            models = await self.list_models()
        except ModelListError as e:
            self.logger.warning("Model lookup failed", model=name, error=str(e))
            return None
        return next((model for model in models if model.name == name), None)

    async def generate(self, request: GenerateRequest) -> GenerateResult:
        """One-shot completion."""
        url = f"{self.base_url}/api/generate"
        payload = request.to_payload(self.default_model, stream=False)
        self.logger.info("Sending generate request", model=payload["model"])
        with ErrorContext("generate", GenerationError, _WRAPPED, logger=self.logger):
            data = await request_json(self._get_session(), "POST", url, payload=payload)
            return GenerateResult.model_validate(data)

    async def chat(self, request: ChatRequest) -> GenerateResult:
        """One-shot chat, flattened to the generate result shape."""
        url = f"{self.base_url}/api/chat"
        payload = request.to_payload(self.default_model, stream=False)
        self.logger.info("Sending chat request",
                         model=payload["model"],
                         messages=len(request.messages))
        with ErrorContext("chat", GenerationError, _WRAPPED, logger=self.logger):
            data = await request_json(self._get_session(), "POST", url, payload=payload)
            result = GenerateResult.from_chat_payload(data)
            return result.model_copy(update={"done": True})

    async def generate_stream(
        self,
        request: GenerateRequest,
        on_frame: Optional[FrameCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> GenerateResult:
        """Streamed completion; ``on_frame`` sees each fragment as it arrives."""
        payload = request.to_payload(self.default_model, stream=True)
        return await self._consume(
            "generate stream", f"{self.base_url}/api/generate", payload,
            GenerateResult.model_validate, on_frame, cancel,
        )

    async def chat_stream(
        self,
        request: ChatRequest,
        on_frame: Optional[FrameCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> GenerateResult:
        """Streamed chat; frames are flattened to the generate result shape."""
        payload = request.to_payload(self.default_model, stream=True)
        return await self._consume(
            "chat stream", f"{self.base_url}/api/chat", payload,
            GenerateResult.from_chat_payload, on_frame, cancel,
        )

    async def _consume(
        self,
        operation: str,
        url: str,
        payload: Dict[str, Any],
        to_frame: Callable[[Dict[str, Any]], GenerateResult],
        on_frame: Optional[FrameCallback],
        cancel: Optional[CancellationToken],
    ) -> GenerateResult:
        aggregate = StreamAggregate()
        frames = 0

        self.logger.info("Starting stream", operation=operation, model=payload["model"])
        with ErrorContext(operation, GenerationError, (TransportError, NetworkError), logger=self.logger):
            async with open_stream(self._get_session(), url, payload) as response:
                async for data in iter_frames(response, self.logger):
                    try:
                        frame = to_frame(data)
                    except ValidationError as e:
                        self.logger.warning("Skipping malformed stream frame", error=str(e))
                        continue

                    if cancel is not None:
                        cancel.raise_if_cancelled()

                    aggregate.fold(frame)
                    frames += 1
                    if on_frame is not None:
                        on_frame(frame)

        self.logger.debug("Stream finished",
                          operation=operation,
                          frames=frames,
                          terminal=aggregate.terminal is not None)
        return aggregate.result(payload["model"])

    async def pull_model(
        self,
        name: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Download a model, returning as soon as a ``success`` frame arrives."""
        url = f"{self.base_url}/api/pull"
        self.logger.info("Pulling model", model=name)

        with ErrorContext("pull model", PullError, (TransportError, NetworkError),
                          context={"model": name}, logger=self.logger):
            async with open_stream(self._get_session(), url, {"name": name}) as response:
                async for data in iter_frames(response, self.logger):
                    if cancel is not None:
                        cancel.raise_if_cancelled()

                    try:
                        progress = PullProgress.model_validate(data)
                    except ValidationError as e:
                        self.logger.warning("Skipping malformed pull frame", error=str(e))
                        continue

                    if progress.error:
                        self.logger.warning("Pull reported an error", model=name, error=progress.error)
                    if on_progress is not None:
                        on_progress(progress)
                    if progress.status == "success":
                        self.logger.info("Model pull completed", model=name)
                        return

        if self.config.pull_policy == PullCompletionPolicy.FAIL:
            error = PullError("Pull stream ended without a success status", model_name=name)
            self.logger.error("Model pull incomplete", model=name)
            raise error
        self.logger.warning("Pull stream ended without a success status", model=name)

