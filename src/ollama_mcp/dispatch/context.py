"""Static context blobs served by ``context/get``."""
from typing import Any, Dict, Optional

from .. import __version__
from ..ollama.models import utc_timestamp

PROJECT_CONTEXT = "project"
DEPLOYMENT_CONTEXT = "deployment"


def get_context(context_type: str, query: Optional[str] = None) -> Dict[str, Any]:
    """Return the blob for a recognized context type, or a generic fallback."""
    if context_type == PROJECT_CONTEXT:
        return {
            "name": "ollama-mcp",
            "version": __version__,
            "description": "Envelope and Ollama client practice project",
            "technologies": ["Python", "aiohttp", "pydantic", "structlog"],
        }
    if context_type == DEPLOYMENT_CONTEXT:
        return {
            "environments": ["staging", "production"],
            "currentVersion": __version__,
            "lastDeployment": utc_timestamp(),
        }
    return {
        "type": context_type,
        "query": query,
        "data": "No specific context available",
    }
