"""In-memory MCP server holding its tools, resources and prompts in dictionaries."""

import logging
from typing import Any, Callable

from mcphub.config.loader import get_settings
from mcphub.mcp.capability import CapabilityProvider
from mcphub.mcp.errors import UnsupportedOperationError
from mcphub.mcp.models import (
    Prompt,
    PromptResult,
    Resource,
    ResourceContent,
    ResourceTemplate,
    ServerCapabilities,
    ServerMetadata,
    Tool,
    ToolArguments,
    ToolResult,
)
from mcphub.servers.base import ToolHandler, get_tool_metadata
from mcphub.servers.prompts import PromptExecutor, PromptManager

logger = logging.getLogger(__name__)

ResourceProvider = Callable[[str], ResourceContent]


class MemoryServer(CapabilityProvider):
    """
    A complete MCP server living in process memory.

    Useful for embedding capabilities in an application and for tests.
    Pair it with a ProtocolHandler and a LocalConnection to register it
    with a ToolRegistry.
    """

    def __init__(
        self,
        name: str,
        capabilities: ServerCapabilities | None = None,
        version: str = "1.0.0",
    ):
        self._server_info = ServerMetadata(name=name, version=version)
        self._capabilities = capabilities or ServerCapabilities.all()
        self._tools: dict[str, Tool] = {}
        self._tool_handlers: dict[str, ToolHandler] = {}
        self._resources: dict[str, Resource] = {}
        self._resource_providers: dict[str, ResourceProvider] = {}
        self._resource_templates: list[ResourceTemplate] = []
        self._subscriptions: set[str] = set()
        self.prompts = PromptManager()

    def get_server_info(self) -> ServerMetadata:
        return self._server_info

    def get_capabilities(self) -> ServerCapabilities:
        return self._capabilities

    # -------------------------------------------------------------------------
    # Tools
    # -------------------------------------------------------------------------

    def add_tool(self, tool: Tool, handler: ToolHandler | None = None) -> "MemoryServer":
        if tool.name in self._tools:
            logger.warning(f"Tool '{tool.name}' already registered, overwriting")
        self._tools[tool.name] = tool
        if handler is not None:
            self._tool_handlers[tool.name] = handler
        logger.debug(f"Registered tool: {tool.name}")
        return self

    def set_tool_handler(self, name: str, handler: ToolHandler) -> "MemoryServer":
        self._tool_handlers[name] = handler
        return self

    def add_tool_function(self, func: ToolHandler) -> "MemoryServer":
        """Register a coroutine decorated with ``@tool``."""
        definition = get_tool_metadata(func)
        if definition is None:
            raise ValueError(f"{getattr(func, '__name__', func)!r} is not decorated with @tool")
        return self.add_tool(definition, func)

    def tool(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any] | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator registering a coroutine as a tool of this server."""

        def decorator(func: ToolHandler) -> ToolHandler:
            definition = Tool(
                name=name,
                description=description,
                inputSchema=input_schema or {"type": "object", "properties": {}},
            )
            self.add_tool(definition, func)
            return func

        return decorator

    def remove_tool(self, name: str) -> "MemoryServer":
        self._tools.pop(name, None)
        self._tool_handlers.pop(name, None)
        return self

    async def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    async def call_tool(self, arguments: ToolArguments) -> ToolResult:
        if not self.supports_tools():
            raise UnsupportedOperationError("Tools not supported")
        handler = self._tool_handlers.get(arguments.name)
        if handler is None:
            raise LookupError(f"Tool not found: {arguments.name}")
        return await handler(arguments.arguments)

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def add_resource(
        self, resource: Resource, provider: ResourceProvider | None = None
    ) -> "MemoryServer":
        self._resources[resource.uri] = resource
        if provider is not None:
            self._resource_providers[resource.uri] = provider
        return self

    def add_text_resource(
        self,
        uri: str,
        name: str,
        text: str,
        mime_type: str = "text/plain",
        description: str | None = None,
    ) -> "MemoryServer":
        """Add a resource whose content is a fixed text."""
        content = ResourceContent(uri=uri, mimeType=mime_type, text=text)
        return self.add_resource(
            Resource(uri=uri, name=name, description=description, mimeType=mime_type),
            lambda _uri: content,
        )

    def add_resource_template(self, template: ResourceTemplate) -> "MemoryServer":
        self._resource_templates.append(template)
        return self

    async def list_resources(self) -> list[Resource]:
        return list(self._resources.values())

    async def list_resource_templates(self) -> list[ResourceTemplate]:
        return list(self._resource_templates)

    async def read_resource(self, uri: str) -> ResourceContent:
        if not self.supports_resources():
            raise UnsupportedOperationError("Resources not supported")
        provider = self._resource_providers.get(uri)
        if provider is None:
            raise LookupError(f"Resource not found: {uri}")
        return provider(uri)

    async def subscribe_resource(self, uri: str) -> None:
        if not self.supports_resource_subscription():
            raise UnsupportedOperationError("Resource subscription not supported")
        if uri not in self._resources:
            raise LookupError(f"Resource not found: {uri}")
        self._subscriptions.add(uri)

    async def unsubscribe_resource(self, uri: str) -> None:
        self._subscriptions.discard(uri)

    def is_subscribed(self, uri: str) -> bool:
        return uri in self._subscriptions

    # -------------------------------------------------------------------------
    # Prompts
    # -------------------------------------------------------------------------

    def add_prompt(self, prompt: Prompt, executor: PromptExecutor) -> "MemoryServer":
        self.prompts.register(prompt, executor)
        return self

    async def list_prompts(self) -> list[Prompt]:
        return self.prompts.list_prompts()

    async def get_prompt(self, name: str, arguments: dict[str, Any]) -> PromptResult:
        if not self.supports_prompts():
            raise UnsupportedOperationError("Prompts not supported")
        return self.prompts.get_prompt(name, arguments)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def shutdown(self) -> None:
        super().shutdown()
        self._subscriptions.clear()

    def has_tools(self) -> bool:
        return bool(self._tools)

    def has_resources(self) -> bool:
        return bool(self._resources)

    def has_prompts(self) -> bool:
        return len(self.prompts) > 0


def memory_servers_from_config(config: dict[str, Any]) -> dict[str, MemoryServer]:
    """
    Build in-memory servers from a config loaded by ``load_servers_config``.

    Returns servers keyed by their id. Tools need code and cannot be
    declared in configuration; resources and prompt templates can.
    """
    settings = get_settings()
    servers: dict[str, MemoryServer] = {}
    for server_id, server_config in (config.get("servers") or {}).items():
        server_config = server_config or {}
        server = MemoryServer(
            name=server_config.get("name", server_id),
            version=str(server_config.get("version", settings.server_version)),
        )
        for resource in server_config.get("resources") or []:
            server.add_text_resource(
                uri=resource["uri"],
                name=resource["name"],
                text=resource.get("text", ""),
                mime_type=resource.get("mimeType", "text/plain"),
                description=resource.get("description"),
            )
        for prompt in server_config.get("prompts") or []:
            server.prompts.register_text_prompt(
                prompt["name"], prompt.get("description"), prompt["template"]
            )
        servers[server_id] = server
        logger.info(
            f"Configured server '{server_id}' with {len(server_config.get('resources') or [])} "
            f"resources and {len(server.prompts)} prompts"
        )
    return servers
