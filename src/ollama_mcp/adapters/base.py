"""Observable base class shared by the presentation adapters."""
from typing import Callable, List

from ..exceptions import format_error_for_user
from ..logging import get_client_logger
from .state import OperationState

Listener = Callable[[OperationState], None]


class ObservableAdapter:
    """Holds one ``OperationState`` and notifies subscribers when it changes."""

    def __init__(self):
        self.logger = get_client_logger("adapters")
        self._state = OperationState.idle()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> OperationState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned function removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: OperationState) -> None:
        self._state = state
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

    def _begin(self) -> None:
        self._set_state(OperationState.in_flight())

    def _succeed(self, value=None) -> None:
        self._set_state(OperationState.succeeded(value))

    def _fail(self, error: Exception) -> None:
        self.logger.warning("Adapter operation failed",
                            adapter=type(self).__name__,
                            error=str(error))
        self._set_state(OperationState.failed(format_error_for_user(error) or type(error).__name__))

    def _reset(self) -> None:
        self._set_state(OperationState.idle())
