"""
Logging infrastructure for ollama-mcp.

Provides structured logging with correlation IDs, multiple output formats,
and client-specific log channels.
"""
import logging
import logging.handlers
import sys
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional
from contextvars import ContextVar

import structlog

from .config import LoggingConfig


# Context variable for correlation ID tracking
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)


class CorrelationIDProcessor:
    """Add correlation ID to log records."""

    def __call__(self, logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Add correlation ID to the event dictionary."""
        if cid := correlation_id.get():
            event_dict['correlation_id'] = cid
        return event_dict


def setup_logging(config: LoggingConfig) -> None:
    """Setup structured logging based on configuration."""
    structlog.reset_defaults()

    level = getattr(logging, config.level.value)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )

    if config.file:
        file_path = Path(config.file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.file,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)

        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)
        root_logger.setLevel(level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        CorrelationIDProcessor(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None, client: Optional[str] = None) -> structlog.BoundLogger:
    """Get a configured logger instance."""
    if name is None:
        name = "ollama_mcp"

    logger = structlog.get_logger(name)

    if client:
        logger = logger.bind(client=client)

    return logger


@contextmanager
def log_context(
    correlation_id_value: Optional[str] = None,
    **context_data: Any
):
    """
    Context manager for adding correlation ID and additional context to logs.

    Args:
        correlation_id_value: Correlation ID to use. If None, generates a new UUID.
        **context_data: Additional context data to include in logs.
    """
    if correlation_id_value is None:
        correlation_id_value = str(uuid.uuid4())[:8]

    token = correlation_id.set(correlation_id_value)

    logger = get_logger().bind(**context_data)

    try:
        yield logger
    finally:
        correlation_id.reset(token)


class OllamaMCPLogger:
    """
    Specialized logger for ollama-mcp with convenience methods.
    """

    def __init__(self, name: str = "ollama_mcp", client: Optional[str] = None):
        self.name = name
        self.client = client
        self._logger = get_logger(name, client)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._logger.error(message, **kwargs)

    def log_request(self, method: str, url: str, **kwargs: Any) -> None:
        """Log an outbound HTTP request."""
        self._logger.debug("HTTP request sent",
                           method=method,
                           url=url,
                           request_type="http_request",
                           **kwargs)

    def with_context(self, **context: Any) -> 'OllamaMCPLogger':
        """Create a new logger with additional context."""
        new_logger = OllamaMCPLogger(self.name, self.client)
        new_logger._logger = self._logger.bind(**context)
        return new_logger


# Global logger instances
_main_logger: Optional[OllamaMCPLogger] = None
_client_loggers: Dict[str, OllamaMCPLogger] = {}


def get_main_logger() -> OllamaMCPLogger:
    """Get the main application logger."""
    global _main_logger
    if _main_logger is None:
        _main_logger = OllamaMCPLogger("ollama_mcp")
    return _main_logger


def get_client_logger(client_name: str) -> OllamaMCPLogger:
    """Get a client-specific logger."""
    if client_name not in _client_loggers:
        _client_loggers[client_name] = OllamaMCPLogger(f"ollama_mcp.{client_name}", client_name)
    return _client_loggers[client_name]


def configure_logging(config: LoggingConfig) -> None:
    """Configure logging system with the provided configuration."""
    setup_logging(config)

    logger = get_main_logger()
    logger.debug("Logging system configured",
                 level=config.level.value,
                 format=config.format,
                 file=config.file)
