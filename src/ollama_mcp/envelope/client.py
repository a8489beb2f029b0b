"""
Envelope client for ollama-mcp.

Wraps the HTTP transport with the request/response envelope used between
this application's front and back ends. ``send`` is the one generic call;
``list_tools``, ``call_tool`` and ``get_context`` are built on it and
unwrap the tagged response.
"""
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from ..config import MCPConfig
from ..exceptions import (
    EnvelopeProtocolError, EnvelopeRemoteError, EnvelopeTransportError,
    NetworkError, TransportError
)
from ..logging import get_client_logger
from ..transport import request_json
from .models import (
    ENVELOPE_PATH, ContextParams, EnvelopeErrorResponse, EnvelopeMethod,
    EnvelopeRequest, ToolCallParams, ToolDescriptor, ToolsListResult,
    inbound_envelope_adapter
)


class EnvelopeClient:
    """
    Client for the envelope endpoint.

    Each call sends one request-tagged envelope with a fresh id and awaits
    the immediate HTTP response; there is no correlation table.
    """

    def __init__(self, config: MCPConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.logger = get_client_logger("envelope")
        self.session = session
        self._owns_session = session is None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{ENVELOPE_PATH}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout, trust_env=True)
            self._owns_session = True
        return self.session

    def _get_auth_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    async def close(self) -> None:
        if self.session is not None and self._owns_session:
            await self.session.close()
        self.session = None

    async def __aenter__(self) -> "EnvelopeClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send one envelope and return the decoded response body verbatim.

        Raises:
            EnvelopeTransportError: If the endpoint answers with a non-2xx status
            NetworkError: If the request never produced a status
        """
        message = EnvelopeRequest(method=method, params=params)
        self.logger.log_request("POST", self.endpoint, envelope_id=message.id, envelope_method=method)

        try:
            return await request_json(
                self._get_session(),
                "POST",
                self.endpoint,
                headers=self._get_auth_headers(),
                payload=message.model_dump(exclude_none=True),
            )
        except TransportError as e:
            self.logger.error("Envelope request failed",
                              envelope_method=method,
                              status=e.status,
                              error=str(e))
            raise EnvelopeTransportError(
                f"HTTP error! status: {e.status}",
                status=e.status,
                method=method,
                cause=e
            ) from e
        except NetworkError as e:
            self.logger.error("Envelope request failed", envelope_method=method, error=str(e))
            raise

    def _unwrap(self, method: str, body: Any) -> Any:
        """Validate the response tag and return its ``result``."""
        try:
            envelope = inbound_envelope_adapter.validate_python(body)
        except ValidationError as e:
            self.logger.error("Malformed envelope response", envelope_method=method, error=str(e))
            raise EnvelopeProtocolError(
                "Malformed envelope response", method=method, cause=e
            ) from e

        if isinstance(envelope, EnvelopeErrorResponse):
            self.logger.error("Envelope request returned an error",
                              envelope_method=method,
                              code=envelope.error.code,
                              error=envelope.error.message)
            raise EnvelopeRemoteError(envelope.error.message, code=envelope.error.code, method=method)
        return envelope.result

    async def list_tools(self) -> List[ToolDescriptor]:
        """List the tools exposed by the dispatch table."""
        method = EnvelopeMethod.LIST_TOOLS.value
        result = self._unwrap(method, await self.send(method))
        try:
            return ToolsListResult.model_validate(result or {}).tools
        except ValidationError as e:
            raise EnvelopeProtocolError("Malformed tools/list result", method=method, cause=e) from e

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a tool and return its result payload."""
        method = EnvelopeMethod.CALL_TOOL.value
        params = ToolCallParams(name=name, arguments=arguments or {})
        return self._unwrap(method, await self.send(method, params.model_dump()))

    async def get_context(self, context_type: str, query: Optional[str] = None) -> Any:
        """Fetch a context blob by type."""
        method = EnvelopeMethod.GET_CONTEXT.value
        params = ContextParams(type=context_type, query=query)
        return self._unwrap(method, await self.send(method, params.model_dump()))
