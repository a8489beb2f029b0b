"""HTTP server exposing the envelope endpoint and auxiliary Ollama endpoints."""
import json
from typing import Any, Optional

from aiohttp import web

from .config import Config
from .envelope.models import ENVELOPE_PATH, EnvelopeErrorBody, EnvelopeErrorResponse, EnvelopeResponse
from .dispatch.handler import RequestHandler
from .exceptions import get_error_details
from .logging import get_main_logger, log_context
from .ollama.client import OllamaClient

OLLAMA_CLIENT_KEY = web.AppKey("ollama_client", OllamaClient)
HANDLER_KEY = web.AppKey("request_handler", RequestHandler)
CONFIG_KEY = web.AppKey("config", Config)


def _authorized(request: web.Request, config: Config) -> bool:
    if not config.server.require_auth:
        return True
    return request.headers.get("Authorization") == f"Bearer {config.mcp.api_key}"


async def _read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except json.JSONDecodeError:
        return None


async def handle_envelope(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    handler = request.app[HANDLER_KEY]
    logger = get_main_logger()

    if not _authorized(request, config):
        return web.json_response({"error": "Unauthorized"}, status=401)

    body = await _read_json(request)
    if not isinstance(body, dict) or not body.get("method"):
        return web.json_response({"error": "Method is required"}, status=400)

    envelope_id = str(body["id"]) if body.get("id") is not None else None
    method = body["method"]

    with log_context(envelope_id, envelope_method=method):
        try:
            result = await handler.handle(method, body.get("params"))
        except Exception as e:
            details = get_error_details(e)
            logger.error("Envelope request failed", error=details.pop("message"), **details)
            response = EnvelopeErrorResponse(
                id=envelope_id or "unknown",
                error=EnvelopeErrorBody(code=500, message=getattr(e, "message", str(e))),
            )
            return web.json_response(response.model_dump(), status=500)

        logger.debug("Envelope request handled")
        response = EnvelopeResponse(id=envelope_id or "unknown", result=result)
        return web.json_response(response.model_dump())


async def handle_models(request: web.Request) -> web.Response:
    client = request.app[OLLAMA_CLIENT_KEY]
    try:
        models = await client.list_models()
    except Exception as e:
        return web.json_response({"success": False, "error": str(e)}, status=500)
    return web.json_response({"success": True, "models": [m.model_dump() for m in models]})


async def handle_health(request: web.Request) -> web.Response:
    client = request.app[OLLAMA_CLIENT_KEY]
    try:
        models = await client.list_models()
    except Exception as e:
        return web.json_response({"healthy": False, "error": str(e)}, status=500)
    return web.json_response({"healthy": True, "models": [m.model_dump() for m in models]})


async def handle_pull(request: web.Request) -> web.Response:
    client = request.app[OLLAMA_CLIENT_KEY]
    body = await _read_json(request)
    name = body.get("model") if isinstance(body, dict) else None
    if not name:
        return web.json_response({"success": False, "error": "Model name is required"}, status=400)

    try:
        await client.pull_model(name)
    except Exception as e:
        return web.json_response({"success": False, "error": str(e)}, status=500)
    return web.json_response({"success": True, "result": None})


def create_app(config: Config, ollama_client: Optional[OllamaClient] = None) -> web.Application:
    """Build the application; the Ollama client is closed on cleanup."""
    client = ollama_client or OllamaClient(config.ollama)

    app = web.Application()
    app[CONFIG_KEY] = config
    app[OLLAMA_CLIENT_KEY] = client
    app[HANDLER_KEY] = RequestHandler(client, config.ollama)

    app.router.add_post(ENVELOPE_PATH, handle_envelope)
    app.router.add_get("/api/ollama/models", handle_models)
    app.router.add_get("/api/ollama/health", handle_health)
    app.router.add_post("/api/ollama/pull", handle_pull)

    async def _on_startup(app: web.Application) -> None:
        get_main_logger().info("Server starting",
                               host=config.server.host,
                               port=config.server.port,
                               ollama=config.ollama.base_url)

    async def _on_cleanup(app: web.Application) -> None:
        await app[OLLAMA_CLIENT_KEY].close()
        get_main_logger().info("Server stopped")

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app


def run_server(config: Config) -> None:
    """Serve until interrupted."""
    web.run_app(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        print=None,
    )
