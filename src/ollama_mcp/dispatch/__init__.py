"""Server-side dispatch of envelope methods to Ollama operations."""

from .handler import RequestHandler
from .registry import build_tool_descriptors, find_tool

__all__ = [
    "RequestHandler",
    "build_tool_descriptors",
    "find_tool",
]
