"""JSON-RPC 2.0 error codes, error object helpers and the MCP exception hierarchy."""

from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700  # Invalid JSON was received
INVALID_REQUEST = -32600  # The JSON sent is not a valid Request object
METHOD_NOT_FOUND = -32601  # The method does not exist / is not available
INVALID_PARAMS = -32602  # Invalid method parameter(s)
INTERNAL_ERROR = -32603  # Internal JSON-RPC error

# MCP-specific codes are offsets added to this base (server range -32000..-32099)
MCP_ERROR_BASE = -32000


def mcp_error_code(offset: int) -> int:
    """Return the MCP-specific error code for an offset from the base."""
    return MCP_ERROR_BASE + offset


def error_message(code: int) -> str:
    """Get the standard message for a JSON-RPC error code."""
    messages = {
        PARSE_ERROR: "Parse error",
        INVALID_REQUEST: "Invalid Request",
        METHOD_NOT_FOUND: "Method not found",
        INVALID_PARAMS: "Invalid params",
        INTERNAL_ERROR: "Internal error",
    }
    if code in messages:
        return messages[code]
    if MCP_ERROR_BASE - 99 <= code <= MCP_ERROR_BASE:
        return "Server error"
    return "Unknown error"


# =============================================================================
# Exceptions
# =============================================================================


class McpError(Exception):
    """Base class for all errors raised by this package."""


class ProtocolError(McpError):
    """
    A failure that is reported on the wire as a JSON-RPC error object.

    Raised while parsing or dispatching a message, and by client-side
    connections when the remote end answers with an error response.
    """

    def __init__(self, code: int, message: str | None = None, data: Any = None):
        self.code = code
        self.message = message or error_message(code)
        self.data = data
        super().__init__(self.message)

    def to_error(self) -> "JsonRpcError":
        from mcphub.mcp.models import JsonRpcError

        return JsonRpcError(code=self.code, message=self.message, data=self.data)

    def __repr__(self) -> str:
        return f"ProtocolError(code={self.code}, message={self.message!r})"


class UnsupportedOperationError(McpError, NotImplementedError):
    """Raised by capability operations a server does not implement."""


class RegistryError(McpError):
    """Base class for tool registry precondition failures."""


class DuplicateServerIdError(RegistryError):
    """A server with the same id is already registered."""

    def __init__(self, server_id: str):
        self.server_id = server_id
        super().__init__(f"Server already registered: {server_id}")


class ServerNotFoundError(RegistryError):
    """No server is registered under the given id."""

    def __init__(self, server_id: str):
        self.server_id = server_id
        super().__init__(f"Server not found: {server_id}")


class ToolNotFoundError(RegistryError, KeyError):
    """No tool is indexed under the given qualified name."""

    def __init__(self, qualified_name: str):
        self.qualified_name = qualified_name
        super().__init__(f"Tool not found: {qualified_name}")

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return str(self.args[0])


class ServerUnavailableError(RegistryError):
    """The tool is indexed but its owning connection is gone."""

    def __init__(self, server_id: str):
        self.server_id = server_id
        super().__init__(f"Server not available: {server_id}")
