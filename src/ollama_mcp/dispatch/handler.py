"""
Server-side envelope dispatch.

``RequestHandler.handle`` switches on the envelope method. Tool calls are
routed through a fixed name-to-handler table; each handler turns the
model-server outcome into ``{"success": ..., "timestamp": ...}`` so a
failing tool never becomes a transport-level error.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..config import OllamaConfig
from ..envelope.models import (
    ContextParams, EnvelopeMethod, ToolCallParams, ToolDescriptor, ToolsListResult
)
from ..exceptions import OllamaMCPError, UnknownMethodError, UnknownToolError
from ..logging import get_main_logger
from ..ollama.client import OllamaClient
from ..ollama.models import (
    ChatMessage, ChatRequest, ChatRole, GenerateRequest, GenerationOptions, utc_timestamp
)
from .context import get_context
from .registry import (
    CHAT_TOOL, GENERATE_TOOL, HEALTH_TOOL, MODELS_TOOL, build_tool_descriptors
)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


def _first_set(value: Any, default: Any) -> Any:
    return default if value is None else value


class RequestHandler:
    """Dispatch table from envelope methods and tool names to model operations."""

    def __init__(self, ollama_client: OllamaClient, config: Optional[OllamaConfig] = None):
        self.ollama = ollama_client
        self.config = config or ollama_client.config
        self.logger = get_main_logger()
        self.tools: List[ToolDescriptor] = build_tool_descriptors(self.config.model)
        self._tool_handlers: Dict[str, ToolHandler] = {
            GENERATE_TOOL: self._generate,
            CHAT_TOOL: self._chat,
            MODELS_TOOL: self._models,
            HEALTH_TOOL: self._health,
        }

    async def handle(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Answer one envelope method.

        Raises:
            UnknownMethodError: If ``method`` is not handled
            UnknownToolError: If a ``tools/call`` names an unknown tool
        """
        params = params or {}

        if method == EnvelopeMethod.LIST_TOOLS:
            return ToolsListResult(tools=self.tools).to_wire()
        if method == EnvelopeMethod.CALL_TOOL:
            call = ToolCallParams.model_validate(params)
            return await self.call_tool(call.name, call.arguments)
        if method == EnvelopeMethod.GET_CONTEXT:
            request = ContextParams.model_validate(params)
            return get_context(request.type, request.query)

        raise UnknownMethodError(method)

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        handler = self._tool_handlers.get(name)
        if handler is None:
            raise UnknownToolError(name)

        logger = self.logger.with_context(tool=name)
        logger.info("Executing tool")
        try:
            data = await handler(arguments)
        except OllamaMCPError as e:
            logger.warning("Tool failed", error=str(e))
            return {"success": False, "error": e.message, "timestamp": utc_timestamp()}
        except ValidationError as e:
            logger.warning("Tool arguments rejected", error=str(e))
            return {"success": False, "error": str(e), "timestamp": utc_timestamp()}
        return {"success": True, **data, "timestamp": utc_timestamp()}

    def _options(self, arguments: Dict[str, Any], with_max_tokens: bool) -> GenerationOptions:
        options = GenerationOptions(
            temperature=_first_set(arguments.get("temperature"), self.config.default_temperature)
        )
        if with_max_tokens:
            options.num_predict = _first_set(arguments.get("max_tokens"), self.config.default_max_tokens)
        return options

    async def _generate(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.ollama.generate(GenerateRequest(
            model=arguments.get("model") or self.config.model,
            prompt=str(arguments.get("prompt") or ""),
            options=self._options(arguments, with_max_tokens=True),
        ))
        data = {"response": result.response, "model": result.model}
        if result.total_duration is not None:
            data["duration"] = result.total_duration
        return data

    async def _chat(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.ollama.chat(ChatRequest(
            model=arguments.get("model") or self.config.model,
            messages=[ChatMessage(role=ChatRole.USER, content=str(arguments.get("message") or ""))],
            options=self._options(arguments, with_max_tokens=False),
        ))
        data = {"response": result.response, "model": result.model}
        if result.total_duration is not None:
            data["duration"] = result.total_duration
        return data

    async def _models(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        models = await self.ollama.list_models()
        return {
            "models": [
                {
                    "name": model.name,
                    "size": model.size,
                    "modified_at": model.modified_at,
                    "family": model.details.family,
                }
                for model in models
            ]
        }

    async def _health(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {"healthy": await self.ollama.health_check()}
