"""Capability surface a concrete MCP server implements."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from mcphub.mcp.errors import UnsupportedOperationError
from mcphub.mcp.models import (
    ClientInfo,
    InitializeResult,
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

logger = logging.getLogger(__name__)


class CapabilityProvider(ABC):
    """
    Base class for MCP servers.

    Subclasses provide metadata and override the operations of the
    capabilities they support:

    - ``list_resources``, ``read_resource`` (and subscriptions) for resources
    - ``list_tools``, ``call_tool`` for tools
    - ``list_prompts``, ``get_prompt`` for prompts

    Listing operations default to an empty list; the others fail with
    UnsupportedOperationError. The protocol handler calls into this class,
    never the other way round.
    """

    client_info: ClientInfo | None = None

    @abstractmethod
    def get_server_info(self) -> ServerMetadata:
        """Server name and version."""

    @abstractmethod
    def get_capabilities(self) -> ServerCapabilities:
        """Capabilities advertised during initialization."""

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    async def initialize(self, client_info: ClientInfo) -> InitializeResult:
        """Record the client and answer with this server's capabilities."""
        self.client_info = client_info
        logger.info(
            f"Initializing MCP server '{self.get_server_info().name}' "
            f"with client '{client_info.clientInfo.name}'"
        )
        return InitializeResult(
            capabilities=self.get_capabilities(),
            serverInfo=self.get_server_info(),
        )

    def initialized(self) -> None:
        """Called when the client confirms initialization."""
        logger.debug(f"MCP server '{self.get_server_info().name}' initialized")

    def shutdown(self) -> None:
        """Release resources held by the server."""
        logger.info(f"Shutting down MCP server '{self.get_server_info().name}'")

    # ---------------------------------------------------------------------
    # Resources
    # ---------------------------------------------------------------------

    async def list_resources(self) -> list[Resource]:
        return []

    async def list_resource_templates(self) -> list[ResourceTemplate]:
        return []

    async def read_resource(self, uri: str) -> ResourceContent:
        raise UnsupportedOperationError("Resources not supported")

    async def subscribe_resource(self, uri: str) -> None:
        raise UnsupportedOperationError("Resource subscription not supported")

    async def unsubscribe_resource(self, uri: str) -> None:
        raise UnsupportedOperationError("Resource subscription not supported")

    # ---------------------------------------------------------------------
    # Tools
    # ---------------------------------------------------------------------

    async def list_tools(self) -> list[Tool]:
        return []

    async def call_tool(self, arguments: ToolArguments) -> ToolResult:
        raise UnsupportedOperationError("Tools not supported")

    # ---------------------------------------------------------------------
    # Prompts
    # ---------------------------------------------------------------------

    async def list_prompts(self) -> list[Prompt]:
        return []

    async def get_prompt(self, name: str, arguments: dict[str, Any]) -> PromptResult:
        raise UnsupportedOperationError("Prompts not supported")

    # ---------------------------------------------------------------------
    # Capability checks
    # ---------------------------------------------------------------------

    def supports_resources(self) -> bool:
        return self.get_capabilities().resources is not None

    def supports_tools(self) -> bool:
        return self.get_capabilities().tools is not None

    def supports_prompts(self) -> bool:
        return self.get_capabilities().prompts is not None

    def supports_resource_subscription(self) -> bool:
        resources = self.get_capabilities().resources
        return resources is not None and resources.subscribe
