"""Tests for LocalConnection and end-to-end registry use over the wire format."""

import pytest

from mcphub.mcp.connection import LocalConnection
from mcphub.mcp.errors import INVALID_REQUEST, ProtocolError
from mcphub.mcp.handlers import LifecycleState, ProtocolHandler
from mcphub.mcp.models import Tool, ToolArguments, ToolResult
from mcphub.servers.memory import MemoryServer


class TestLocalConnection:
    """Tests for the in-process connection."""

    @pytest.mark.asyncio
    async def test_connect_performs_handshake(self, handler):
        connection = LocalConnection(handler, client_name="test-client")
        assert not connection.is_connected()

        result = await connection.connect()

        assert connection.is_connected()
        assert result.serverInfo.name == "test-server"
        assert connection.server_info.version == "2.0.0"
        assert connection.server_capabilities.tools is not None
        assert handler.state is LifecycleState.INITIALIZED
        assert handler.client_info.clientInfo.name == "test-client"

    @pytest.mark.asyncio
    async def test_requests_before_connect_fail(self, handler):
        connection = LocalConnection(handler)
        with pytest.raises(ProtocolError) as exc_info:
            await connection.list_tools()
        assert exc_info.value.code == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_ping(self, local_connection):
        assert await local_connection.ping() is True

    @pytest.mark.asyncio
    async def test_list_and_call_tools(self, local_connection):
        tools = await local_connection.list_tools()
        assert {t.name for t in tools} == {"echo", "fail"}

        result = await local_connection.call_tool(
            ToolArguments(name="echo", arguments={"message": "over the wire"})
        )
        assert result.content[0].text == "over the wire"

    @pytest.mark.asyncio
    async def test_tool_failure_arrives_as_error_result(self, local_connection):
        result = await local_connection.call_tool(ToolArguments(name="fail"))
        assert result.isError is True
        assert result.content[0].text == "Error: boom"

    @pytest.mark.asyncio
    async def test_resources_and_prompts(self, local_connection):
        resources = await local_connection.list_resources()
        assert resources[0].uri == "mem://readme"

        content = await local_connection.read_resource("mem://readme")
        assert content.text == "hello"

        prompts = await local_connection.list_prompts()
        assert prompts[0].name == "greet"

        rendered = await local_connection.get_prompt("greet", {"name": "Bob"})
        assert rendered.messages[0].content.text == "Hello Bob!"

    @pytest.mark.asyncio
    async def test_error_response_raises_protocol_error(self, local_connection):
        with pytest.raises(ProtocolError) as exc_info:
            await local_connection.read_resource("mem://missing")
        assert exc_info.value.message == "Resource not found: mem://missing"

    @pytest.mark.asyncio
    async def test_close_shuts_handler_down_once(self, local_connection, handler):
        await local_connection.close()
        await local_connection.close()

        assert not local_connection.is_connected()
        assert handler.state is LifecycleState.SHUTDOWN
        with pytest.raises(ProtocolError):
            await local_connection.connect()


class TestRegistryOverLocalConnections:
    """End-to-end: memory servers registered in a registry."""

    @pytest.mark.asyncio
    async def test_two_servers_with_same_tool_name(self, registry):
        connections = {}
        for server_id in ("alpha", "beta"):
            server = MemoryServer(server_id)

            @server.tool(name="whoami", description="Names the server")
            async def whoami(arguments: dict, server_id=server_id):
                return ToolResult.text(server_id)

            connection = LocalConnection(ProtocolHandler(server))
            await connection.connect()
            connections[server_id] = connection
            await registry.register_server(server_id, connection)

        assert registry.tool_count == 2
        assert (await registry.call_tool("alpha:whoami")).content[0].text == "alpha"
        assert (await registry.call_tool("beta:whoami")).content[0].text == "beta"

        await registry.close()
        assert not connections["alpha"].is_connected()
        assert not connections["beta"].is_connected()

    @pytest.mark.asyncio
    async def test_unconnected_local_connection_is_registered_without_tools(self, registry, handler):
        connection = LocalConnection(handler)
        await registry.register_server("later", connection)
        assert registry.tool_count == 0

        await connection.connect()
        assert await registry.refresh_tools("later") is True
        assert registry.has_tool("later:echo")

    @pytest.mark.asyncio
    async def test_tool_added_after_registration_appears_on_refresh(
        self, registry, local_connection, memory_server
    ):
        await registry.register_server("mem", local_connection)
        assert not registry.has_tool("mem:late")

        async def late(arguments: dict) -> ToolResult:
            return ToolResult.text("late")

        memory_server.add_tool(Tool(name="late"), late)
        await registry.refresh_tools("mem")

        assert registry.has_tool("mem:late")
        assert (await registry.call_tool("mem:late")).content[0].text == "late"
