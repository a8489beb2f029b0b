"""Request/response envelope protocol: shared models and the client."""

from .client import EnvelopeClient
from .models import (
    ENVELOPE_PATH, EnvelopeErrorResponse, EnvelopeMethod, EnvelopeRequest,
    EnvelopeResponse, ToolDescriptor, ToolsListResult
)

__all__ = [
    "EnvelopeClient",
    "ENVELOPE_PATH",
    "EnvelopeErrorResponse",
    "EnvelopeMethod",
    "EnvelopeRequest",
    "EnvelopeResponse",
    "ToolDescriptor",
    "ToolsListResult",
]
