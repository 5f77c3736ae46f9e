"""MCP (Model Context Protocol) implementation with JSON-RPC 2.0."""

from mcphub.mcp.models import (
    JsonRpcRequest,
    JsonRpcResponse,
    JsonRpcNotification,
    JsonRpcError,
    Tool,
    ToolArguments,
    ToolResult,
    TextContent,
    ServerCapabilities,
    ServerMetadata,
)
from mcphub.mcp.capability import CapabilityProvider
from mcphub.mcp.connection import Connection, LocalConnection
from mcphub.mcp.handlers import LifecycleState, McpMethod, ProtocolHandler
from mcphub.mcp.registry import RegistryStats, ToolDescriptor, ToolRegistry
from mcphub.mcp.errors import (
    PARSE_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
    ProtocolError,
)

__all__ = [
    "JsonRpcRequest",
    "JsonRpcResponse",
    "JsonRpcNotification",
    "JsonRpcError",
    "Tool",
    "ToolArguments",
    "ToolResult",
    "TextContent",
    "ServerCapabilities",
    "ServerMetadata",
    "CapabilityProvider",
    "Connection",
    "LocalConnection",
    "LifecycleState",
    "McpMethod",
    "ProtocolHandler",
    "RegistryStats",
    "ToolDescriptor",
    "ToolRegistry",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "ProtocolError",
]
