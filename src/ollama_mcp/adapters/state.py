"""
Operation state for the presentation adapters.

Each operation moves through idle -> in-flight -> succeeded | failed. The
state is one tagged value so that, for example, an in-flight operation
carrying an error cannot be constructed.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class OperationStatus(Enum):
    """Lifecycle of a single adapter operation."""
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class OperationState:
    """Current state of an adapter operation."""
    status: OperationStatus = OperationStatus.IDLE
    value: Any = None
    error: Optional[str] = None

    def __post_init__(self):
        if self.status is OperationStatus.FAILED:
            if not self.error:
                raise ValueError("A failed state requires an error message")
            if self.value is not None:
                raise ValueError("A failed state cannot carry a value")
        elif self.error is not None:
            raise ValueError(f"A {self.status.value} state cannot carry an error")
        if self.status is OperationStatus.IN_FLIGHT and self.value is not None:
            raise ValueError("An in-flight state cannot carry a value")

    @classmethod
    def idle(cls) -> "OperationState":
        return cls(OperationStatus.IDLE)

    @classmethod
    def in_flight(cls) -> "OperationState":
        return cls(OperationStatus.IN_FLIGHT)

    @classmethod
    def succeeded(cls, value: Any = None) -> "OperationState":
        return cls(OperationStatus.SUCCEEDED, value=value)

    @classmethod
    def failed(cls, message: str) -> "OperationState":
        return cls(OperationStatus.FAILED, error=message)

    @property
    def loading(self) -> bool:
        return self.status is OperationStatus.IN_FLIGHT

    @property
    def settled(self) -> bool:
        return self.status in (OperationStatus.SUCCEEDED, OperationStatus.FAILED)
