"""
Envelope wire format shared by the envelope client and the server.

Outbound messages are ``EnvelopeRequest``; inbound messages are the tagged
variant ``EnvelopeResponse | EnvelopeErrorResponse`` discriminated on
``type``. Tool descriptors and the ``tools/list`` result live here too so
both halves of the connection read and write the same schema.
"""
import uuid
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

ENVELOPE_PATH = "/api/mcp/request"


class EnvelopeMethod(str, Enum):
    """Envelope method names."""
    LIST_TOOLS = "tools/list"
    CALL_TOOL = "tools/call"
    GET_CONTEXT = "context/get"


def new_request_id() -> str:
    """Generate unique request ID."""
    return str(uuid.uuid4())


class EnvelopeErrorBody(BaseModel):
    """Error object carried by an error-tagged envelope."""
    code: int
    message: str


class EnvelopeRequest(BaseModel):
    """Envelope request message."""
    id: str = Field(default_factory=new_request_id)
    type: Literal["request"] = "request"
    method: str
    params: Optional[Dict[str, Any]] = None


class EnvelopeResponse(BaseModel):
    """Envelope response message."""
    id: str
    type: Literal["response"] = "response"
    result: Any = None


class EnvelopeErrorResponse(BaseModel):
    """Envelope error message."""
    id: str
    type: Literal["error"] = "error"
    error: EnvelopeErrorBody


InboundEnvelope = Annotated[
    Union[EnvelopeResponse, EnvelopeErrorResponse],
    Field(discriminator="type"),
]

inbound_envelope_adapter: TypeAdapter = TypeAdapter(InboundEnvelope)


class ToolInputSchema(BaseModel):
    """JSON-schema-like description of a tool's arguments."""
    type: Literal["object"] = "object"
    properties: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    required: Optional[List[str]] = None


class ToolDescriptor(BaseModel):
    """A tool as listed by ``tools/list``."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    description: str
    input_schema: ToolInputSchema = Field(default_factory=ToolInputSchema, alias="inputSchema")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ToolsListResult(BaseModel):
    """Result of ``tools/list``."""
    tools: List[ToolDescriptor] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {"tools": [tool.to_wire() for tool in self.tools]}


class ToolCallParams(BaseModel):
    """Parameters for ``tools/call``."""
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def null_arguments_are_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ContextParams(BaseModel):
    """Parameters for ``context/get``."""
    type: str
    query: Optional[str] = None
