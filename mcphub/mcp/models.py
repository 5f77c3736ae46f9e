"""Pydantic models for MCP JSON-RPC 2.0 protocol."""

import uuid
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)

from mcphub.mcp.errors import (
    PARSE_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
    error_message,
    mcp_error_code,
)

# MCP protocol versions this package speaks, newest first
LATEST_PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")

JSONRPC_VERSION = "2.0"

# Strings or numbers only; a boolean id is rejected, not read as 0 or 1
RequestId = StrictInt | StrictStr


def _not_blank(value: str, what: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{what} cannot be blank")
    return value


# =============================================================================
# JSON-RPC 2.0 Base Models
# =============================================================================


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    model_config = ConfigDict(frozen=True)

    code: int
    message: str
    data: Any = None

    @classmethod
    def parse_error(cls, message: str | None = None) -> "JsonRpcError":
        return cls(code=PARSE_ERROR, message=message or error_message(PARSE_ERROR))

    @classmethod
    def invalid_request(cls, message: str | None = None) -> "JsonRpcError":
        return cls(code=INVALID_REQUEST, message=message or error_message(INVALID_REQUEST))

    @classmethod
    def method_not_found(cls, method: str) -> "JsonRpcError":
        return cls(code=METHOD_NOT_FOUND, message=f"Method not found: {method}")

    @classmethod
    def invalid_params(cls, message: str | None = None) -> "JsonRpcError":
        return cls(code=INVALID_PARAMS, message=message or error_message(INVALID_PARAMS))

    @classmethod
    def internal_error(cls, message: str | None = None) -> "JsonRpcError":
        return cls(code=INTERNAL_ERROR, message=message or error_message(INTERNAL_ERROR))

    @classmethod
    def mcp_error(cls, offset: int, message: str) -> "JsonRpcError":
        return cls(code=mcp_error_code(offset), message=message)

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            data["data"] = self.data
        return data


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request object."""

    model_config = ConfigDict(frozen=True)

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId
    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("params", mode="before")
    @classmethod
    def _default_params(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def create(cls, method: str, params: dict[str, Any] | None = None) -> "JsonRpcRequest":
        """Create a request with a generated id."""
        return cls(id=str(uuid.uuid4()), method=method, params=params or {})

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id, "method": self.method}
        if self.params:
            data["params"] = self.params
        return data


class JsonRpcNotification(BaseModel):
    """JSON-RPC 2.0 notification (a request without an id, never answered)."""

    model_config = ConfigDict(frozen=True)

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("params", mode="before")
    @classmethod
    def _default_params(cls, value: Any) -> Any:
        return {} if value is None else value

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params:
            data["params"] = self.params
        return data


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response object."""

    model_config = ConfigDict(frozen=True)

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId | None = None
    result: Any = None
    error: JsonRpcError | None = None

    @model_validator(mode="after")
    def _result_xor_error(self) -> "JsonRpcResponse":
        if self.error is not None and self.result is not None:
            raise ValueError("A response carries either a result or an error, not both")
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        """Custom serialization to exclude None fields appropriately."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump()
        else:
            data["result"] = self.result
        return data


JsonRpcMessage = Union[JsonRpcRequest, JsonRpcResponse, JsonRpcNotification]


# =============================================================================
# MCP Content Types
# =============================================================================


class ResourceContent(BaseModel):
    """Contents of a resource, either text or base64 encoded blob."""

    uri: str
    mimeType: str | None = None
    text: str | None = None
    blob: str | None = None

    @property
    def is_text(self) -> bool:
        return self.text is not None

    @property
    def is_blob(self) -> bool:
        return self.blob is not None


class TextContent(BaseModel):
    """Text content returned by tools."""

    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    """Image content returned by tools (base64 encoded)."""

    type: Literal["image"] = "image"
    data: str  # base64 encoded
    mimeType: str


class EmbeddedResource(BaseModel):
    """A resource embedded in a tool result."""

    type: Literal["resource"] = "resource"
    resource: ResourceContent


Content = Annotated[
    Union[TextContent, ImageContent, EmbeddedResource], Field(discriminator="type")
]


# =============================================================================
# MCP Tool Models
# =============================================================================


class Tool(BaseModel):
    """MCP tool definition."""

    name: str = Field(..., description="Tool name, unique within one server")
    description: str = Field(default="", description="Human-readable description")
    inputSchema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for tool input",
    )

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _not_blank(value, "Tool name")

    @classmethod
    def simple(cls, name: str, description: str, *parameters: str) -> "Tool":
        """Build a tool whose parameters are all required strings."""
        properties = {
            param: {"type": "string", "description": f"Parameter: {param}"}
            for param in parameters
        }
        return cls(
            name=name,
            description=description,
            inputSchema={
                "type": "object",
                "properties": properties,
                "required": list(parameters),
            },
        )


class ToolArguments(BaseModel):
    """A tool name together with the arguments to call it with."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _not_blank(value, "Tool name")

    @field_validator("arguments", mode="before")
    @classmethod
    def _default_arguments(cls, value: Any) -> Any:
        return {} if value is None else value


class ToolResult(BaseModel):
    """Result of a tool call."""

    content: list[Content] = Field(default_factory=list)
    isError: bool = False

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(text=text)])

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(content=[TextContent(text=message)], isError=True)


# =============================================================================
# MCP Resource Models
# =============================================================================


class Resource(BaseModel):
    """A piece of data a server exposes for reading."""

    uri: str
    name: str
    description: str | None = None
    mimeType: str | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _not_blank(value, "Resource name")


class ResourceTemplateVariable(BaseModel):
    """A variable of a URI template."""

    name: str
    description: str | None = None
    required: bool = False
    type: str = "string"


class ResourceTemplate(BaseModel):
    """A parameterized family of resources (RFC 6570 URI template)."""

    uriTemplate: str
    name: str
    description: str | None = None
    mimeType: str | None = None
    variables: list[ResourceTemplateVariable] = Field(default_factory=list)


# =============================================================================
# MCP Prompt Models
# =============================================================================


class PromptArgument(BaseModel):
    """An argument accepted by a prompt."""

    name: str
    description: str | None = None
    required: bool = False

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _not_blank(value, "Prompt argument name")


class Prompt(BaseModel):
    """A prompt template exposed by a server."""

    name: str
    description: str | None = None
    arguments: list[PromptArgument] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _not_blank(value, "Prompt name")


ROLE_SYSTEM = "system"
ROLE_USER = "user"


class PromptMessage(BaseModel):
    """One message of a rendered prompt. String content is sent as text content."""

    role: str
    content: str | TextContent | ImageContent | EmbeddedResource

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        if isinstance(self.content, str):
            content: dict[str, Any] = {"type": "text", "text": self.content}
        else:
            content = self.content.model_dump(exclude_none=True)
        return {"role": self.role, "content": content}


class PromptResult(BaseModel):
    """A rendered prompt."""

    description: str | None = None
    messages: list[PromptMessage] = Field(..., min_length=1)

    @classmethod
    def simple(cls, description: str | None, user_content: str) -> "PromptResult":
        return cls(
            description=description,
            messages=[PromptMessage(role=ROLE_USER, content=user_content)],
        )


# =============================================================================
# MCP Protocol Models
# =============================================================================


class ServerMetadata(BaseModel):
    """Server information returned during initialization."""

    name: str
    version: str = "1.0.0"

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _not_blank(value, "Server name")


class ResourceCapabilities(BaseModel):
    subscribe: bool = False
    listChanged: bool = False


class ToolCapabilities(BaseModel):
    listChanged: bool = False


class PromptCapabilities(BaseModel):
    listChanged: bool = False


class LoggingCapabilities(BaseModel):
    pass


class ServerCapabilities(BaseModel):
    """Server capabilities. A capability that is None is not supported."""

    resources: ResourceCapabilities | None = None
    tools: ToolCapabilities | None = None
    prompts: PromptCapabilities | None = None
    logging: LoggingCapabilities | None = None

    @classmethod
    def of(
        cls,
        resources: bool = False,
        tools: bool = False,
        prompts: bool = False,
        logging: bool = False,
    ) -> "ServerCapabilities":
        return cls(
            resources=ResourceCapabilities(subscribe=True) if resources else None,
            tools=ToolCapabilities(listChanged=True) if tools else None,
            prompts=PromptCapabilities(listChanged=True) if prompts else None,
            logging=LoggingCapabilities() if logging else None,
        )

    @classmethod
    def all(cls) -> "ServerCapabilities":
        return cls.of(resources=True, tools=True, prompts=True, logging=True)

    @classmethod
    def tools_only(cls) -> "ServerCapabilities":
        return cls.of(tools=True)

    @classmethod
    def resources_and_tools(cls) -> "ServerCapabilities":
        return cls.of(resources=True, tools=True)


class ClientMetadata(BaseModel):
    """Client information sent during initialization."""

    name: str
    version: str = "1.0.0"


class ClientCapabilities(BaseModel):
    """Capabilities a client advertises. Unknown entries are preserved."""

    model_config = ConfigDict(extra="allow")

    roots: dict[str, Any] | None = None
    sampling: dict[str, Any] | None = None

    @classmethod
    def none(cls) -> "ClientCapabilities":
        return cls()


class ClientInfo(BaseModel):
    """Parameters of the initialize request."""

    protocolVersion: str
    capabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
    clientInfo: ClientMetadata


class InitializeResult(BaseModel):
    """Result of initialize request."""

    protocolVersion: str = LATEST_PROTOCOL_VERSION
    capabilities: ServerCapabilities
    serverInfo: ServerMetadata

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        return {
            "protocolVersion": self.protocolVersion,
            "capabilities": self.capabilities.model_dump(exclude_none=True),
            "serverInfo": self.serverInfo.model_dump(),
        }


# =============================================================================
# Request parameter models
# =============================================================================


class InitializeParams(BaseModel):
    """Parameters for initialize request; all three fields are required."""

    protocolVersion: str
    capabilities: ClientCapabilities
    clientInfo: ClientMetadata


class ResourceUriParams(BaseModel):
    """Parameters for resources/read, resources/subscribe and resources/unsubscribe."""

    uri: str


class PromptGetParams(BaseModel):
    """Parameters for prompts/get request."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _default_arguments(cls, value: Any) -> Any:
        return {} if value is None else value
