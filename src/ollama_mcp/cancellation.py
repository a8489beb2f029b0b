"""Cancellation handles for streamed calls."""
from typing import Optional

from .exceptions import OperationCancelledError


class CancellationToken:
    """Explicit cancellation handle passed into a streaming call.

    The streaming loop checks the token before handing each frame to its
    callback, so once ``cancel()`` returns no further frame is delivered.
    """

    def __init__(self, label: Optional[str] = None):
        self.label = label
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError(
                "Operation cancelled",
                context={"operation": self.label} if self.label else None,
            )

    def __repr__(self) -> str:
        return f"CancellationToken(label={self.label!r}, cancelled={self._cancelled})"
