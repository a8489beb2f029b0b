"""
Adapters over the Ollama client.

The streaming adapters (``GenerateAdapter`` and ``ChatAdapter``) keep at
most one cancellation token. Starting a new streamed call cancels the
previous token first, and frame callbacks drop anything that arrives for
a cancelled token, so a superseded call never writes into the adapter
after its replacement has started.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from ..cancellation import CancellationToken
from ..exceptions import OllamaMCPError, OperationCancelledError
from ..ollama.client import OllamaClient
from ..ollama.models import (
    ChatMessage, ChatRequest, ChatRole, GenerateRequest, GenerateResult,
    GenerationOptions, ModelDescriptor, PullProgress
)
from .base import ObservableAdapter


class ModelsAdapter(ObservableAdapter):
    """Installed model listing."""

    def __init__(self, client: OllamaClient):
        super().__init__()
        self.client = client

    @property
    def models(self) -> List[ModelDescriptor]:
        return self.state.value or []

    async def refresh_models(self) -> None:
        self._begin()
        try:
            models = await self.client.list_models()
        except OllamaMCPError as e:
            self._fail(e)
            return
        self._succeed(models)


class HealthAdapter(ObservableAdapter):
    """Daemon reachability."""

    def __init__(self, client: OllamaClient):
        super().__init__()
        self.client = client

    @property
    def is_healthy(self) -> Optional[bool]:
        """None until the first check has settled."""
        return self.state.value if self.state.settled else None

    @property
    def is_checking(self) -> bool:
        return self.state.loading

    async def check_health(self) -> bool:
        self._begin()
        healthy = await self.client.health_check()
        self._succeed(healthy)
        return healthy


class PullAdapter(ObservableAdapter):
    """Model download with a one-line progress description."""

    def __init__(self, client: OllamaClient):
        super().__init__()
        self.client = client
        self.progress = ""

    @property
    def is_pulling(self) -> bool:
        return self.state.loading

    def _on_progress(self, progress: PullProgress) -> None:
        line = progress.status
        if progress.total and progress.completed is not None:
            line = f"{line} ({progress.completed * 100 // progress.total}%)"
        self.progress = line
        self._notify()

    async def pull_model(self, name: str) -> None:
        """Pull ``name``; failures are recorded and then re-raised."""
        self.progress = "Downloading model..."
        self._begin()
        try:
            await self.client.pull_model(name, on_progress=self._on_progress)
        except OllamaMCPError as e:
            self.progress = f"Error: {e.message}"
            self._fail(e)
            raise
        self.progress = "Model download complete"
        self._succeed(name)


class _StreamingAdapter(ObservableAdapter):
    """Owns the single cancellation token of a streaming call site."""

    def __init__(self, client: OllamaClient, model: Optional[str] = None):
        super().__init__()
        self.client = client
        self.model = model
        self._cancel: Optional[CancellationToken] = None

    @property
    def is_generating(self) -> bool:
        return self.state.loading

    def _start_stream(self) -> CancellationToken:
        self._cancel_stream()
        self._cancel = CancellationToken(type(self).__name__)
        return self._cancel

    def _cancel_stream(self) -> None:
        if self._cancel is not None:
            self._cancel.cancel()
            self._cancel = None

    def _finish_stream(self, token: CancellationToken) -> None:
        if self._cancel is token:
            self._cancel = None


class GenerateAdapter(_StreamingAdapter):
    """Prompt completion, one-shot or streamed into ``response``."""

    def __init__(self, client: OllamaClient, model: Optional[str] = None):
        super().__init__(client, model)
        self.response = ""

    def _request(self, prompt: str, options: Optional[GenerationOptions]) -> GenerateRequest:
        return GenerateRequest(prompt=prompt, model=self.model, options=options)

    async def generate(self, prompt: str, options: Optional[GenerationOptions] = None) -> None:
        self.response = ""
        self._begin()
        try:
            result = await self.client.generate(self._request(prompt, options))
        except OllamaMCPError as e:
            self._fail(e)
            return
        self.response = result.response
        self._succeed(result.response)

    async def generate_stream(self, prompt: str, options: Optional[GenerationOptions] = None) -> None:
        token = self._start_stream()
        self.response = ""
        self._begin()

        def on_frame(frame: GenerateResult) -> None:
            if token.cancelled:
                return
            self.response += frame.response
            self._notify()

        try:
            result = await self.client.generate_stream(
                self._request(prompt, options), on_frame=on_frame, cancel=token
            )
        except OperationCancelledError:
            return
        except OllamaMCPError as e:
            if not token.cancelled:
                self._fail(e)
            return
        finally:
            self._finish_stream(token)

        if not token.cancelled:
            self.response = result.response
            self._succeed(result.response)

    def clear_response(self) -> None:
        self._cancel_stream()
        self.response = ""
        self._reset()


@dataclass
class ChatTurn:
    """One message of the conversation as shown to the user."""
    role: ChatRole
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ChatAdapter(_StreamingAdapter):
    """Multi-turn chat keeping the conversation in insertion order."""

    def __init__(self, client: OllamaClient, model: Optional[str] = None):
        super().__init__(client, model)
        self.messages: List[ChatTurn] = []

    def _append_user_turn(self, content: str) -> ChatRequest:
        self.messages.append(ChatTurn(ChatRole.USER, content))
        history = [ChatMessage(role=turn.role, content=turn.content) for turn in self.messages]
        return ChatRequest(model=self.model, messages=history)

    async def send_message(self, content: str) -> None:
        request = self._append_user_turn(content)
        self._begin()
        try:
            result = await self.client.chat(request)
        except OllamaMCPError as e:
            self._fail(e)
            return
        self.messages.append(ChatTurn(ChatRole.ASSISTANT, result.response))
        self._succeed(result.response)

    async def send_message_stream(self, content: str) -> None:
        token = self._start_stream()
        request = self._append_user_turn(content)
        self._begin()
        reply: Optional[ChatTurn] = None

        def on_frame(frame: GenerateResult) -> None:
            nonlocal reply
            if token.cancelled:
                return
            if reply is None:
                reply = ChatTurn(ChatRole.ASSISTANT, "")
                self.messages.append(reply)
            reply.content += frame.response
            self._notify()

        try:
            result = await self.client.chat_stream(request, on_frame=on_frame, cancel=token)
        except OperationCancelledError:
            return
        except OllamaMCPError as e:
            if not token.cancelled:
                self._fail(e)
            return
        finally:
            self._finish_stream(token)

        if not token.cancelled:
            self._succeed(result.response)

    def clear_chat(self) -> None:
        self._cancel_stream()
        self.messages = []
        self._reset()
