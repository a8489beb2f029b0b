"""Static tool descriptor registry served by ``tools/list``."""
from typing import List, Optional

from ..envelope.models import ToolDescriptor, ToolInputSchema

GENERATE_TOOL = "ollama_generate"
CHAT_TOOL = "ollama_chat"
MODELS_TOOL = "ollama_models"
HEALTH_TOOL = "ollama_health"


def build_tool_descriptors(default_model: str) -> List[ToolDescriptor]:
    """Descriptors for the four model-server tools, in listing order."""
    model_property = {
        "type": "string",
        "description": f"Model name (default: {default_model})",
    }
    temperature_property = {
        "type": "number",
        "description": "Sampling temperature (0.0-1.0)",
    }

    return [
        ToolDescriptor(
            name=GENERATE_TOOL,
            description="Generate text with Ollama",
            input_schema=ToolInputSchema(
                properties={
                    "prompt": {"type": "string", "description": "Prompt to complete"},
                    "model": model_property,
                    "temperature": temperature_property,
                    "max_tokens": {"type": "number", "description": "Maximum number of tokens"},
                },
                required=["prompt"],
            ),
        ),
        ToolDescriptor(
            name=CHAT_TOOL,
            description="Chat with an Ollama model",
            input_schema=ToolInputSchema(
                properties={
                    "message": {"type": "string", "description": "User message"},
                    "model": model_property,
                    "temperature": temperature_property,
                },
                required=["message"],
            ),
        ),
        ToolDescriptor(
            name=MODELS_TOOL,
            description="List the models available in Ollama",
        ),
        ToolDescriptor(
            name=HEALTH_TOOL,
            description="Check whether the Ollama server is reachable",
        ),
    ]


def find_tool(tools: List[ToolDescriptor], name: str) -> Optional[ToolDescriptor]:
    return next((tool for tool in tools if tool.name == name), None)
