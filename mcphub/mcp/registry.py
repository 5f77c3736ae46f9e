"""Tool registry aggregating many MCP servers into one namespace."""

import asyncio
import threading
from types import MappingProxyType
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from mcphub.mcp.connection import Connection
from mcphub.mcp.errors import (
    DuplicateServerIdError,
    RegistryError,
    ServerNotFoundError,
    ServerUnavailableError,
    ToolNotFoundError,
)
from mcphub.mcp.models import Tool, ToolArguments, ToolResult
from mcphub.utils.logging import get_logger

logger = get_logger(__name__)

# Reserved between server id and tool name; server ids may not contain it.
SEPARATOR = ":"


def qualify(server_id: str, tool_name: str) -> str:
    """Build the registry-wide name of a tool."""
    return f"{server_id}{SEPARATOR}{tool_name}"


def split_qualified_name(qualified_name: str) -> tuple[str, str]:
    """Split a qualified name at its first separator into (server_id, tool_name)."""
    server_id, sep, tool_name = qualified_name.partition(SEPARATOR)
    if not sep:
        raise ValueError(f"Not a qualified tool name: {qualified_name}")
    return server_id, tool_name


class ToolDescriptor(BaseModel):
    """A tool as indexed by the registry."""

    model_config = ConfigDict(frozen=True)

    qualified_name: str
    server_id: str
    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_tool(cls, server_id: str, tool: Tool) -> "ToolDescriptor":
        return cls(
            qualified_name=qualify(server_id, tool.name),
            server_id=server_id,
            name=tool.name,
            description=tool.description,
            input_schema=tool.inputSchema,
        )

    def to_mcp_tool(self) -> Tool:
        """Convert to an MCP Tool named by its qualified name."""
        return Tool(
            name=self.qualified_name,
            description=self.description,
            inputSchema=self.input_schema,
        )


class RegistryStats(BaseModel):
    """Point-in-time registry size."""

    server_count: int
    tool_count: int


ToolsChangedListener = Callable[["ToolRegistry"], None]


class ToolRegistry:
    """
    Registry of MCP servers and the tools they expose.

    Servers are registered under unique ids with the Connection that
    reaches them; their tools are indexed under ``serverId:toolName``.

    Both maps are replaced copy-on-write under a lock, so readers always
    work on a consistent snapshot: a server's tool set is swapped in one
    step and a reader never sees a mix of its old and new tools.
    Mutations may come from any thread or task.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._servers: Mapping[str, Connection] = MappingProxyType({})
        self._tool_index: Mapping[str, ToolDescriptor] = MappingProxyType({})
        self._listeners: tuple[ToolsChangedListener, ...] = ()
        self._attributes: dict[str, Any] = {}

    # -------------------------------------------------------------------------
    # Server registration
    # -------------------------------------------------------------------------

    async def register_server(self, server_id: str, connection: Connection) -> None:
        """
        Register a server and wait for its initial tool discovery.

        Raises:
            DuplicateServerIdError: the id is taken; nothing changes.
            ValueError: the id is blank or contains the separator, or the
                connection already belongs to another server.
        """
        self._add_server(server_id, connection)
        await self._discover(server_id, connection)

    def register_server_nowait(self, server_id: str, connection: Connection) -> "asyncio.Task[bool]":
        """Register a server and run discovery in the background.

        Preconditions are checked synchronously, as for ``register_server``.
        Must be called with a running event loop.
        """
        self._add_server(server_id, connection)
        return asyncio.get_running_loop().create_task(
            self._discover(server_id, connection), name=f"discover-{server_id}"
        )

    def _add_server(self, server_id: str, connection: Connection) -> None:
        if not server_id or not server_id.strip():
            raise ValueError("Server id cannot be blank")
        if SEPARATOR in server_id:
            raise ValueError(f"Server id cannot contain '{SEPARATOR}': {server_id}")

        with self._lock:
            if server_id in self._servers:
                raise DuplicateServerIdError(server_id)
            for other_id, other in self._servers.items():
                if other is connection:
                    raise ValueError(
                        f"Connection is already registered as server '{other_id}'"
                    )
            servers = dict(self._servers)
            servers[server_id] = connection
            self._servers = MappingProxyType(servers)

        logger.info("Registered MCP server", server_id=server_id)

    async def unregister_server(self, server_id: str) -> None:
        """Remove a server and its tools, then close its connection."""
        with self._lock:
            connection = self._servers.get(server_id)
            if connection is None:
                raise ServerNotFoundError(server_id)
            servers = dict(self._servers)
            del servers[server_id]
            index = {
                qualified_name: descriptor
                for qualified_name, descriptor in self._tool_index.items()
                if descriptor.server_id != server_id
            }
            removed = len(self._tool_index) - len(index)
            self._servers = MappingProxyType(servers)
            self._tool_index = MappingProxyType(index)

        try:
            await connection.close()
        except Exception:
            logger.warning("Error closing connection", server_id=server_id, exc_info=True)

        logger.info("Unregistered MCP server", server_id=server_id, tools_removed=removed)
        self._fire_tools_changed()

    def get_server(self, server_id: str) -> Connection | None:
        return self._servers.get(server_id)

    def get_server_ids(self) -> list[str]:
        return list(self._servers)

    def has_server(self, server_id: str) -> bool:
        return server_id in self._servers

    # -------------------------------------------------------------------------
    # Tool discovery
    # -------------------------------------------------------------------------

    async def _discover(self, server_id: str, connection: Connection) -> bool:
        """Index the server's current tools. Returns whether the index was updated."""
        try:
            if not connection.is_connected():
                logger.debug("Server not connected, skipping tool discovery", server_id=server_id)
                return False
            tools = await connection.list_tools()
            descriptors = [ToolDescriptor.from_tool(server_id, tool) for tool in tools]
        except Exception:
            logger.error("Failed to discover tools", server_id=server_id, exc_info=True)
            return False

        with self._lock:
            if self._servers.get(server_id) is not connection:
                # Unregistered (or replaced) while list_tools was running
                logger.info("Discarding tools of removed server", server_id=server_id)
                return False
            index = {
                qualified_name: descriptor
                for qualified_name, descriptor in self._tool_index.items()
                if descriptor.server_id != server_id
            }
            index.update((d.qualified_name, d) for d in descriptors)
            self._tool_index = MappingProxyType(index)

        logger.info("Discovered tools", server_id=server_id, tool_count=len(descriptors))
        self._fire_tools_changed()
        return True

    async def refresh_tools(self, server_id: str) -> bool:
        """Re-run discovery for one server, replacing its tools in one step."""
        connection = self._servers.get(server_id)
        if connection is None:
            raise ServerNotFoundError(server_id)
        return await self._discover(server_id, connection)

    async def refresh_all(self) -> dict[str, bool]:
        """
        Re-run discovery for every server concurrently.

        A failing server does not stop the others. Returns, per server id,
        whether its tools were refreshed.
        """
        servers = dict(self._servers)
        outcomes = await asyncio.gather(
            *(self._discover(server_id, connection) for server_id, connection in servers.items()),
            return_exceptions=True,
        )
        results: dict[str, bool] = {}
        for server_id, outcome in zip(servers, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Refresh failed", server_id=server_id, error=repr(outcome)
                )
                results[server_id] = False
            else:
                results[server_id] = outcome
        return results

    # -------------------------------------------------------------------------
    # Tool access
    # -------------------------------------------------------------------------

    def find_tool(self, qualified_name: str) -> ToolDescriptor | None:
        return self._tool_index.get(qualified_name)

    def has_tool(self, qualified_name: str) -> bool:
        return qualified_name in self._tool_index

    def get_tools(self, server_id: str) -> list[ToolDescriptor]:
        return [d for d in self._tool_index.values() if d.server_id == server_id]

    def get_all_tools(self) -> list[ToolDescriptor]:
        return list(self._tool_index.values())

    def list_tools(self) -> list[Tool]:
        """All indexed tools as MCP Tool models named by qualified name."""
        return [d.to_mcp_tool() for d in self._tool_index.values()]

    def search_tools(self, pattern: str) -> list[ToolDescriptor]:
        """Case-insensitive substring match against bare and qualified names."""
        needle = pattern.lower()
        return [
            d
            for d in self._tool_index.values()
            if needle in d.name.lower() or needle in d.qualified_name.lower()
        ]

    # -------------------------------------------------------------------------
    # Tool execution
    # -------------------------------------------------------------------------

    def _resolve(self, qualified_name: str) -> tuple[ToolDescriptor, Connection]:
        descriptor = self._tool_index.get(qualified_name)
        if descriptor is None:
            raise ToolNotFoundError(qualified_name)
        connection = self._servers.get(descriptor.server_id)
        if connection is None:
            raise ServerUnavailableError(descriptor.server_id)
        return descriptor, connection

    async def call_tool(
        self, qualified_name: str, arguments: dict[str, Any] | None = None
    ) -> ToolResult:
        """
        Call a tool by qualified name and wait for its result.

        Raises:
            ToolNotFoundError: no tool with that name is indexed.
            ServerUnavailableError: the owning server has been removed.
            asyncio.CancelledError: the calling task was cancelled.
        """
        descriptor, connection = self._resolve(qualified_name)
        return await self._invoke(descriptor, connection, arguments)

    def call_tool_async(
        self, qualified_name: str, arguments: dict[str, Any] | None = None
    ) -> "asyncio.Future[ToolResult]":
        """
        Start a tool call and return a cancellable handle for its result.

        Never raises for a missing tool or server; those failures are set on
        the returned future, which asyncio reports as "Future exception was
        never retrieved" if the caller drops it unawaited. Must be called
        with a running event loop.
        """
        loop = asyncio.get_running_loop()
        try:
            descriptor, connection = self._resolve(qualified_name)
        except RegistryError as e:
            future: asyncio.Future[ToolResult] = loop.create_future()
            future.set_exception(e)
            return future
        return loop.create_task(
            self._invoke(descriptor, connection, arguments),
            name=f"call-{qualified_name}",
        )

    async def _invoke(
        self,
        descriptor: ToolDescriptor,
        connection: Connection,
        arguments: dict[str, Any] | None,
    ) -> ToolResult:
        tool_arguments = ToolArguments(name=descriptor.name, arguments=arguments or {})
        logger.info("Calling tool", tool=descriptor.qualified_name)
        try:
            return await connection.call_tool(tool_arguments)
        except asyncio.CancelledError:
            logger.info("Tool call cancelled", tool=descriptor.qualified_name)
            raise

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, listener: ToolsChangedListener) -> None:
        with self._lock:
            self._listeners = self._listeners + (listener,)

    def remove_listener(self, listener: ToolsChangedListener) -> None:
        with self._lock:
            self._listeners = tuple(l for l in self._listeners if l is not listener)

    def _fire_tools_changed(self) -> None:
        for listener in self._listeners:
            try:
                listener(self)
            except Exception:
                logger.error("Error notifying listener", listener=repr(listener), exc_info=True)

    # -------------------------------------------------------------------------
    # Attributes
    # -------------------------------------------------------------------------

    def set_attribute(self, key: str, value: Any) -> None:
        self._attributes[key] = value

    def get_attribute(self, key: str, expected_type: type | None = None) -> Any:
        """Get an attribute; with ``expected_type``, values of another type read as None."""
        value = self._attributes.get(key)
        if expected_type is not None and not isinstance(value, expected_type):
            return None
        return value

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def get_stats(self) -> RegistryStats:
        return RegistryStats(
            server_count=len(self._servers),
            tool_count=len(self._tool_index),
        )

    @property
    def server_count(self) -> int:
        """Return the number of registered servers."""
        return len(self._servers)

    @property
    def tool_count(self) -> int:
        """Return the number of indexed tools."""
        return len(self._tool_index)

    async def close(self) -> None:
        """Unregister every server, closing each connection once, and drop listeners."""
        for server_id in list(self._servers):
            try:
                await self.unregister_server(server_id)
            except ServerNotFoundError:
                # Removed concurrently
                continue
        with self._lock:
            self._listeners = ()


# Global registry instance
_registry: ToolRegistry | None = None


def get_registry() -> ToolRegistry:
    """Get the global tool registry, creating it if necessary."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _registry
    _registry = None
