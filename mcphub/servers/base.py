"""Tool handler type and decorator for declaring tools on plain coroutines."""

import functools
from typing import Any, Awaitable, Callable

from mcphub.mcp.models import Tool, ToolResult

# Every tool handler has this one shape: arguments in, ToolResult out.
ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResult]]


def tool(
    name: str,
    description: str,
    input_schema: dict[str, Any] | None = None,
) -> Callable[[ToolHandler], ToolHandler]:
    """
    Decorator to mark a coroutine as an MCP tool.

    Usage:
        @tool(
            name="echo",
            description="Echoes the message back",
            input_schema={"type": "object", "properties": {"message": {"type": "string"}}},
        )
        async def echo(arguments: dict) -> ToolResult:
            return ToolResult.text(arguments["message"])

        server.add_tool_function(echo)

    The decorated function will have _tool_metadata attached.
    """
    definition = Tool(
        name=name,
        description=description,
        inputSchema=input_schema or {"type": "object", "properties": {}},
    )

    def decorator(func: ToolHandler) -> ToolHandler:
        @functools.wraps(func)
        async def wrapper(arguments: dict[str, Any]) -> ToolResult:
            return await func(arguments)

        # Attach metadata for registration
        wrapper._tool_metadata = definition  # type: ignore
        return wrapper

    return decorator


def get_tool_metadata(func: Callable) -> Tool | None:
    """Get tool metadata from a decorated function."""
    return getattr(func, "_tool_metadata", None)
