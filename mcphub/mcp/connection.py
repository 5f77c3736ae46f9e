"""Connections: the client-side view of one live MCP server."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from mcphub.mcp.errors import INTERNAL_ERROR, INVALID_REQUEST, ProtocolError
from mcphub.mcp.handlers import NOTIFICATION_INITIALIZED, McpMethod, ProtocolHandler
from mcphub.mcp.jsonrpc import make_notification, make_request, parse_message, serialize_message
from mcphub.mcp.models import (
    LATEST_PROTOCOL_VERSION,
    ClientCapabilities,
    ClientMetadata,
    InitializeResult,
    JsonRpcResponse,
    Prompt,
    PromptResult,
    Resource,
    ResourceContent,
    ServerCapabilities,
    ServerMetadata,
    Tool,
    ToolArguments,
    ToolResult,
)

logger = logging.getLogger(__name__)


class Connection(ABC):
    """
    One live server endpoint, supplied by the transport layer.

    The tool registry owns each connection it is given and closes it
    exactly once, when the server is unregistered or the registry closes.
    """

    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the endpoint is ready to serve requests."""

    @abstractmethod
    async def list_tools(self) -> list[Tool]:
        """List the tools the server currently exposes."""

    @abstractmethod
    async def call_tool(self, arguments: ToolArguments) -> ToolResult:
        """Invoke a tool by its bare name."""

    @abstractmethod
    async def close(self) -> None:
        """Release the endpoint."""


class LocalConnection(Connection):
    """
    In-process connection to a ProtocolHandler.

    Every call is serialized to JSON text, handed to the handler and the
    reply parsed back, so the full wire path is exercised without a
    transport. ``connect()`` performs the initialize handshake.
    """

    def __init__(
        self,
        handler: ProtocolHandler,
        client_name: str = "mcphub",
        client_version: str = "1.0.0",
        protocol_version: str = LATEST_PROTOCOL_VERSION,
    ):
        self.handler = handler
        self.client = ClientMetadata(name=client_name, version=client_version)
        self.protocol_version = protocol_version
        self.server_info: ServerMetadata | None = None
        self.server_capabilities: ServerCapabilities | None = None
        self._connected = False
        self._closed = False

    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> InitializeResult:
        """Run the initialize handshake and confirm it with a notification."""
        if self._closed:
            raise ProtocolError(INVALID_REQUEST, "Connection is closed")

        result = await self._send(
            McpMethod.INITIALIZE,
            {
                "protocolVersion": self.protocol_version,
                "capabilities": ClientCapabilities.none().model_dump(exclude_none=True),
                "clientInfo": self.client.model_dump(),
            },
        )
        init_result = InitializeResult.model_validate(result)
        self.server_info = init_result.serverInfo
        self.server_capabilities = init_result.capabilities
        self.protocol_version = init_result.protocolVersion

        await self.handler.handle_message(serialize_message(make_notification(NOTIFICATION_INITIALIZED)))
        self._connected = True
        logger.info(f"Connected to MCP server '{init_result.serverInfo.name}'")
        return init_result

    async def ping(self) -> bool:
        result = await self._request(McpMethod.PING)
        return bool(result.get("pong"))

    async def list_tools(self) -> list[Tool]:
        result = await self._request(McpMethod.TOOLS_LIST)
        return [Tool.model_validate(tool) for tool in result.get("tools", [])]

    async def call_tool(self, arguments: ToolArguments) -> ToolResult:
        result = await self._request(
            McpMethod.TOOLS_CALL,
            {"name": arguments.name, "arguments": arguments.arguments},
        )
        return ToolResult.model_validate(result)

    async def list_resources(self) -> list[Resource]:
        result = await self._request(McpMethod.RESOURCES_LIST)
        return [Resource.model_validate(r) for r in result.get("resources", [])]

    async def read_resource(self, uri: str) -> ResourceContent:
        result = await self._request(McpMethod.RESOURCES_READ, {"uri": uri})
        contents = result.get("contents") or []
        if not contents:
            raise ProtocolError(INTERNAL_ERROR, f"Empty contents for resource {uri}")
        return ResourceContent.model_validate(contents[0])

    async def list_prompts(self) -> list[Prompt]:
        result = await self._request(McpMethod.PROMPTS_LIST)
        return [Prompt.model_validate(p) for p in result.get("prompts", [])]

    async def get_prompt(self, name: str, arguments: dict[str, Any] | None = None) -> PromptResult:
        result = await self._request(
            McpMethod.PROMPTS_GET, {"name": name, "arguments": arguments or {}}
        )
        return PromptResult.model_validate(result)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._connected = False
        self.handler.shutdown()
        logger.info("Closed local MCP connection")

    async def _request(self, method: McpMethod, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self._connected:
            raise ProtocolError(INVALID_REQUEST, "Connection is not open")
        return await self._send(method, params)

    async def _send(self, method: McpMethod, params: dict[str, Any] | None = None) -> dict[str, Any]:
        request = make_request(method.value, params)
        reply = await self.handler.handle_message(serialize_message(request))
        if reply is None:
            raise ProtocolError(INTERNAL_ERROR, f"No response to {method.value}")

        response = parse_message(serialize_message(reply))
        if not isinstance(response, JsonRpcResponse):
            raise ProtocolError(INTERNAL_ERROR, f"Unexpected reply to {method.value}")
        if response.id != request.id:
            raise ProtocolError(
                INTERNAL_ERROR, f"Response id {response.id!r} does not match {request.id!r}"
            )
        if response.error is not None:
            raise ProtocolError(response.error.code, response.error.message, response.error.data)
        return response.result or {}
