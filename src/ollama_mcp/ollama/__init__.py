"""Client for the Ollama HTTP API."""

from .client import OllamaClient
from .models import (
    ChatMessage, ChatRequest, ChatRole, GenerateRequest, GenerateResult,
    GenerationOptions, ModelDescriptor, PullProgress
)
from .streaming import StreamAggregate, iter_frames

__all__ = [
    "OllamaClient",
    "ChatMessage",
    "ChatRequest",
    "ChatRole",
    "GenerateRequest",
    "GenerateResult",
    "GenerationOptions",
    "ModelDescriptor",
    "PullProgress",
    "StreamAggregate",
    "iter_frames",
]
