"""
ollama-mcp: Ollama client and request/response envelope server.

Wraps a local Ollama daemon behind a typed async client and exposes its
operations as tools over a small JSON envelope protocol.
"""

__version__ = "0.1.0"
__author__ = "ollama-mcp Contributors"
__description__ = "Ollama client and envelope tool server"

from .config import Config, get_config, reload_config
from .logging import get_main_logger, configure_logging
from .exceptions import OllamaMCPError

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "Config",
    "get_config",
    "reload_config",
    "get_main_logger",
    "configure_logging",
    "OllamaMCPError"
]
