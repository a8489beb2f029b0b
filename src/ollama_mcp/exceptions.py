"""
Custom exception hierarchy for ollama-mcp.

Provides specific exceptions for different error conditions with
helpful error messages and context information.
"""
from typing import Any, Dict, Optional, Tuple, Type


class OllamaMCPError(Exception):
    """Base exception for all ollama-mcp errors."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.cause = cause
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


# Transport Errors
class TransportError(OllamaMCPError):
    """HTTP call completed with a non-success status."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        url: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.status = status
        self.url = url
        context = context or {}
        if url:
            context["url"] = url
        super().__init__(message, context, cause)


class NetworkError(OllamaMCPError):
    """HTTP call failed before a status was received."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.url = url
        context = context or {}
        if url:
            context["url"] = url
        super().__init__(message, context, cause)


class OperationCancelledError(OllamaMCPError):
    """A streamed operation was cancelled through its cancellation token."""
    pass


# Model server Errors
class OllamaError(OllamaMCPError):
    """Base class for model-server operation errors."""

    @property
    def status(self) -> Optional[int]:
        """HTTP status of the underlying transport failure, if any."""
        return getattr(self.cause, "status", None)


class ModelListError(OllamaError):
    """Listing models failed."""
    pass


class GenerationError(OllamaError):
    """Generate or chat call failed."""
    pass


class PullError(OllamaError):
    """Model pull failed."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.model_name = model_name
        context = context or {}
        if model_name:
            context["model"] = model_name
        super().__init__(message, context, cause)


# Envelope Errors
class EnvelopeError(OllamaMCPError):
    """Base class for envelope client errors."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.method = method
        context = context or {}
        if method:
            context["method"] = method
        super().__init__(message, context, cause)


class EnvelopeTransportError(EnvelopeError):
    """Envelope endpoint answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        method: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.status = status
        super().__init__(message, method, context, cause)


class EnvelopeRemoteError(EnvelopeError):
    """Envelope endpoint answered with an error-tagged message."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        method: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.code = code
        context = context or {}
        if code is not None:
            context["code"] = code
        super().__init__(message, method, context, cause)


class EnvelopeProtocolError(EnvelopeError):
    """Envelope response does not match the wire schema."""
    pass


# Dispatch Errors
class DispatchError(OllamaMCPError):
    """Base class for server-side dispatch errors."""
    pass


class UnknownMethodError(DispatchError):
    """Envelope method is not handled."""

    def __init__(self, method: str, context: Optional[Dict[str, Any]] = None):
        self.method = method
        super().__init__(f"Unknown method: {method}", context)


class UnknownToolError(DispatchError):
    """Tool name is not in the dispatch table."""

    def __init__(self, tool_name: str, context: Optional[Dict[str, Any]] = None):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}", context)


# Context Manager for Error Handling
class ErrorContext:
    """Re-raise low-level failures inside a block as an operation-level error."""

    def __init__(
        self,
        operation: str,
        reraise_as: Type[OllamaMCPError] = OllamaMCPError,
        wrap: Tuple[Type[BaseException], ...] = (TransportError, NetworkError),
        context: Optional[Dict[str, Any]] = None,
        logger: Optional[Any] = None
    ):
        self.operation = operation
        self.reraise_as = reraise_as
        self.wrap = wrap
        self.context = context or {}
        self.logger = logger

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None or not isinstance(exc_val, self.wrap):
            return False

        message = f"{self.operation} failed: {getattr(exc_val, 'message', exc_val)}"
        if self.logger is not None:
            self.logger.error(f"{self.operation} failed",
                              error=str(exc_val),
                              error_type=type(exc_val).__name__,
                              **self.context)
        raise self.reraise_as(message, context=dict(self.context), cause=exc_val) from exc_val


def format_error_for_user(error: Exception) -> str:
    """Format error message for display to user."""
    if isinstance(error, OllamaMCPError):
        return error.message
    return f"Unexpected error: {error}"


def get_error_details(error: Exception) -> Dict[str, Any]:
    """Extract detailed error information for logging."""
    details = {
        "error_type": type(error).__name__,
        "message": str(error),
    }

    if isinstance(error, OllamaMCPError):
        details.update({
            "context": error.context,
            "cause": str(error.cause) if error.cause else None,
        })

        status = getattr(error, "status", None)
        if status is not None:
            details["status"] = status
        if isinstance(error, EnvelopeRemoteError) and error.code is not None:
            details["code"] = error.code
        elif isinstance(error, UnknownToolError):
            details["tool"] = error.tool_name
        elif isinstance(error, UnknownMethodError):
            details["method"] = error.method

    return details
