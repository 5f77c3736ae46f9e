"""Pytest configuration and fixtures."""

import asyncio

import pytest

from mcphub.config.loader import get_settings
from mcphub.mcp.connection import Connection, LocalConnection
from mcphub.mcp.handlers import ProtocolHandler
from mcphub.mcp.models import Tool, ToolArguments, ToolResult
from mcphub.mcp.registry import get_registry, reset_registry
from mcphub.servers.memory import MemoryServer


class FakeConnection(Connection):
    """Scriptable connection used to drive the registry without a server."""

    def __init__(self, tools: list[Tool] | None = None, connected: bool = True):
        self.tools = list(tools or [])
        self.connected = connected
        self.list_error: Exception | None = None
        self.connected_error: Exception | None = None
        self.list_gate: asyncio.Event | None = None
        self.call_gate: asyncio.Event | None = None
        self.calls: list[ToolArguments] = []
        self.list_calls = 0
        self.close_calls = 0

    def is_connected(self) -> bool:
        if self.connected_error is not None:
            raise self.connected_error
        return self.connected

    async def list_tools(self) -> list[Tool]:
        self.list_calls += 1
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(self.tools)

    async def call_tool(self, arguments: ToolArguments) -> ToolResult:
        self.calls.append(arguments)
        if self.call_gate is not None:
            await self.call_gate.wait()
        return ToolResult.text(f"{arguments.name}:{arguments.arguments}")

    async def close(self) -> None:
        self.close_calls += 1
        self.connected = False


@pytest.fixture(autouse=True)
def reset_global_registry():
    """Reset the global tool registry before and after each test."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def registry():
    """Get a fresh tool registry."""
    reset_registry()
    return get_registry()


@pytest.fixture
def settings():
    """Get application settings."""
    return get_settings()


@pytest.fixture
def make_connection():
    """FakeConnection factory taking tool names."""
    def _make(*tool_names: str, connected: bool = True) -> FakeConnection:
        return FakeConnection(
            [Tool(name=name, description=f"The {name} tool") for name in tool_names],
            connected=connected,
        )
    return _make


@pytest.fixture
def memory_server():
    """In-memory server with an echo tool, a failing tool, a resource and a prompt."""
    server = MemoryServer("test-server", version="2.0.0")

    @server.tool(
        name="echo",
        description="Echoes the message back",
        input_schema={
            "type": "object",
            "properties": {"message": {"type": "string"}},
            "required": ["message"],
        },
    )
    async def echo(arguments: dict) -> ToolResult:
        return ToolResult.text(arguments.get("message", ""))

    @server.tool(name="fail", description="Always raises")
    async def fail(arguments: dict) -> ToolResult:
        raise RuntimeError("boom")

    server.add_text_resource("mem://readme", "readme", "hello", description="Read me")
    server.prompts.register_text_prompt("greet", "Greets someone", "Hello {name}!")
    return server


@pytest.fixture
def handler(memory_server):
    """Uninitialized protocol handler over the memory server."""
    return ProtocolHandler(memory_server)


@pytest.fixture
def initialize_params():
    return {
        "protocolVersion": "2024-11-05",
        "capabilities": {},
        "clientInfo": {"name": "test", "version": "1.0"},
    }


@pytest.fixture
async def initialized_handler(handler, sample_jsonrpc_request, initialize_params):
    """Protocol handler that has completed the initialize handshake."""
    response = await handler.handle_message(
        sample_jsonrpc_request("initialize", initialize_params, id=0)
    )
    assert response.error is None
    await handler.handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"})
    return handler


@pytest.fixture
async def local_connection(handler):
    """Connected LocalConnection over the memory server."""
    connection = LocalConnection(handler, client_name="test-client")
    await connection.connect()
    return connection


@pytest.fixture
def sample_jsonrpc_request():
    """Sample JSON-RPC request factory."""
    def _make_request(method: str, params: dict = None, id: int = 1):
        return {
            "jsonrpc": "2.0",
            "id": id,
            "method": method,
            "params": params or {},
        }
    return _make_request
