"""Observable state adapters for presenting client operations."""

from .envelope import ContextAdapter, ToolExecutionAdapter, ToolsAdapter
from .formatting import format_file_size
from .ollama import (
    ChatAdapter, ChatTurn, GenerateAdapter, HealthAdapter, ModelsAdapter, PullAdapter
)
from .state import OperationState, OperationStatus

__all__ = [
    "ContextAdapter",
    "ToolExecutionAdapter",
    "ToolsAdapter",
    "format_file_size",
    "ChatAdapter",
    "ChatTurn",
    "GenerateAdapter",
    "HealthAdapter",
    "ModelsAdapter",
    "PullAdapter",
    "OperationState",
    "OperationStatus",
]
