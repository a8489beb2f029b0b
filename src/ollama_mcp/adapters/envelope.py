"""Adapters over the envelope client: tool listing, tool execution, context."""
from typing import Any, Dict, List, Optional

from ..envelope.client import EnvelopeClient
from ..envelope.models import ToolDescriptor
from ..exceptions import OllamaMCPError
from .base import ObservableAdapter


class ToolsAdapter(ObservableAdapter):
    """Tool listing; failures are recorded in the state, not raised."""

    def __init__(self, client: EnvelopeClient):
        super().__init__()
        self.client = client

    @property
    def tools(self) -> List[ToolDescriptor]:
        return self.state.value or []

    async def refresh_tools(self) -> None:
        self._begin()
        try:
            tools = await self.client.list_tools()
        except OllamaMCPError as e:
            self._fail(e)
            return
        self._succeed(tools)


class ToolExecutionAdapter(ObservableAdapter):
    """Tool execution. Unlike the other adapters, failures are re-raised after being recorded."""

    def __init__(self, client: EnvelopeClient):
        super().__init__()
        self.client = client

    @property
    def result(self) -> Any:
        return self.state.value

    async def execute_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        self._begin()
        try:
            result = await self.client.call_tool(name, arguments or {})
        except OllamaMCPError as e:
            self._fail(e)
            raise
        self._succeed(result)
        return result


class ContextAdapter(ObservableAdapter):
    """One context blob, identified by type and optional query."""

    def __init__(self, client: EnvelopeClient, context_type: str, query: Optional[str] = None):
        super().__init__()
        self.client = client
        self.context_type = context_type
        self.query = query

    @property
    def context(self) -> Any:
        return self.state.value

    async def fetch_context(self) -> None:
        if not self.context_type:
            return

        self._begin()
        try:
            context = await self.client.get_context(self.context_type, self.query)
        except OllamaMCPError as e:
            self._fail(e)
            return
        self._succeed(context)

    async def refetch(self) -> None:
        await self.fetch_context()
