"""
Request and response shapes for the Ollama HTTP API.

These mirror the daemon's wire format closely; field names are the
daemon's own so payloads validate and serialize without aliasing.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ModelDetails(BaseModel):
    """Descriptive details of an installed model."""
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    parent_model: str = ""
    format: str = ""
    family: str = ""
    families: List[str] = Field(default_factory=list)
    parameter_size: str = ""
    quantization_level: str = ""


class ModelDescriptor(BaseModel):
    """A model entry from ``GET /api/tags``."""
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    name: str
    model: Optional[str] = None
    modified_at: str = ""
    size: int = Field(default=0, ge=0)
    digest: str = ""
    details: ModelDetails = Field(default_factory=ModelDetails)


class GenerationOptions(BaseModel):
    """Sampling options forwarded under ``options``."""
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    repeat_penalty: Optional[float] = None
    stop: Optional[List[str]] = None
    num_predict: Optional[int] = None


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """One chat message on the wire."""
    role: ChatRole
    content: str


class GenerateRequest(BaseModel):
    """Body of ``POST /api/generate``. ``model`` falls back to the client default."""
    model_config = ConfigDict(protected_namespaces=())

    prompt: str
    model: Optional[str] = None
    format: Optional[str] = None
    options: Optional[GenerationOptions] = None

    def to_payload(self, model: str, stream: bool) -> Dict[str, Any]:
        payload = self.model_dump(exclude_none=True)
        payload["model"] = self.model or model
        payload["stream"] = stream
        return payload


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""
    model_config = ConfigDict(protected_namespaces=())

    messages: List[ChatMessage]
    model: Optional[str] = None
    format: Optional[str] = None
    options: Optional[GenerationOptions] = None

    def to_payload(self, model: str, stream: bool) -> Dict[str, Any]:
        payload = self.model_dump(mode="json", exclude_none=True)
        payload["model"] = self.model or model
        payload["stream"] = stream
        return payload


class ChatFrameMessage(BaseModel):
    """The ``message`` object of a chat response frame."""
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: Optional[str] = None


class GenerateResult(BaseModel):
    """Result of a generate or chat call, and the shape of each streamed frame.

    For frames, ``response`` holds only that frame's fragment; for the
    value returned at the end of a stream it holds the full text.
    """
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    model: str = ""
    created_at: str = ""
    response: str = ""
    done: bool = False
    done_reason: Optional[str] = None
    context: Optional[List[int]] = None
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None
    prompt_eval_duration: Optional[int] = None
    eval_count: Optional[int] = None
    eval_duration: Optional[int] = None

    @classmethod
    def from_chat_payload(cls, data: Dict[str, Any]) -> "GenerateResult":
        """Flatten the chat wire format ``{message: {content}}`` into ``response``.

        Raises:
            ValidationError: If ``message`` is not an object
        """
        message = ChatFrameMessage.model_validate(data.get("message") or {})
        fields = {k: v for k, v in data.items() if k != "message"}
        fields["response"] = message.content or ""
        return cls.model_validate(fields)

    @classmethod
    def synthesized(cls, model: str, text: str) -> "GenerateResult":
        """Terminal record for a stream that never sent a ``done`` frame."""
        return cls(model=model, created_at=utc_timestamp(), response=text, done=True)


class PullProgress(BaseModel):
    """One frame of a ``POST /api/pull`` stream."""
    model_config = ConfigDict(extra="ignore")

    status: str = ""
    digest: Optional[str] = None
    total: Optional[int] = None
    completed: Optional[int] = None
    error: Optional[str] = None
