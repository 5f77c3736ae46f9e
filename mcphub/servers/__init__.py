"""In-process MCP servers."""

from mcphub.servers.base import ToolHandler, tool, get_tool_metadata
from mcphub.servers.memory import MemoryServer, memory_servers_from_config
from mcphub.servers.prompts import PromptManager

__all__ = [
    "ToolHandler",
    "tool",
    "get_tool_metadata",
    "MemoryServer",
    "memory_servers_from_config",
    "PromptManager",
]
