"""MCP method handlers for JSON-RPC requests."""

from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from mcphub.config.loader import get_settings
from mcphub.mcp.capability import CapabilityProvider
from mcphub.mcp.errors import (
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    ProtocolError,
)
from mcphub.mcp.jsonrpc import (
    error_response,
    parse_message,
    request_id_of,
    success_response,
)
from mcphub.mcp.models import (
    SUPPORTED_PROTOCOL_VERSIONS,
    ClientInfo,
    InitializeParams,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    PromptGetParams,
    ResourceContent,
    ResourceUriParams,
    ToolArguments,
    ToolResult,
)
from mcphub.utils.logging import bound_request_id, get_logger

logger = get_logger(__name__)

ParamsT = TypeVar("ParamsT", bound=BaseModel)
MethodHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    SHUTDOWN = "shutdown"


class McpMethod(str, Enum):
    """Request methods understood by the protocol handler."""

    INITIALIZE = "initialize"
    PING = "ping"
    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"
    RESOURCES_TEMPLATES_LIST = "resources/templates/list"
    RESOURCES_SUBSCRIBE = "resources/subscribe"
    RESOURCES_UNSUBSCRIBE = "resources/unsubscribe"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"


# Methods accepted before the client has initialized the session
PRE_INITIALIZE_METHODS = frozenset({McpMethod.INITIALIZE, McpMethod.PING})

NOTIFICATION_INITIALIZED = "notifications/initialized"
NOTIFICATION_CANCELLED = "notifications/cancelled"


def parse_params(model: type[ParamsT], params: dict[str, Any]) -> ParamsT:
    """Validate request params against a model, raising INVALID_PARAMS on failure."""
    try:
        return model.model_validate(params)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'params'}: {err['msg']}"
            for err in e.errors()
        )
        raise ProtocolError(INVALID_PARAMS, f"Invalid params: {details}") from e


class ProtocolHandler:
    """
    Server side of one MCP session.

    Owns the capability provider, the lifecycle state and the method table
    that maps wire requests onto capability operations. Every request gets
    exactly one response: protocol failures become JSON-RPC error objects,
    capability exceptions become INTERNAL_ERROR responses carrying only the
    exception message, and tool failures are reported in-band with
    ``isError: true``.
    """

    def __init__(self, provider: CapabilityProvider, protocol_version: str | None = None):
        self.provider = provider
        self.protocol_version = protocol_version or get_settings().protocol_version
        self.client_info: ClientInfo | None = None
        self._state = LifecycleState.UNINITIALIZED
        self._initializing = False

        self._handlers: dict[McpMethod, MethodHandler] = {
            McpMethod.INITIALIZE: self.handle_initialize,
            McpMethod.PING: self.handle_ping,
            McpMethod.RESOURCES_LIST: self.handle_resources_list,
            McpMethod.RESOURCES_READ: self.handle_resources_read,
            McpMethod.RESOURCES_TEMPLATES_LIST: self.handle_resource_templates_list,
            McpMethod.RESOURCES_SUBSCRIBE: self.handle_resources_subscribe,
            McpMethod.RESOURCES_UNSUBSCRIBE: self.handle_resources_unsubscribe,
            McpMethod.TOOLS_LIST: self.handle_tools_list,
            McpMethod.TOOLS_CALL: self.handle_tools_call,
            McpMethod.PROMPTS_LIST: self.handle_prompts_list,
            McpMethod.PROMPTS_GET: self.handle_prompts_get,
        }
        missing = set(McpMethod) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for methods: {sorted(m.value for m in missing)}")

    @property
    def state(self) -> LifecycleState:
        return self._state

    def shutdown(self) -> None:
        """Shut the provider down and reject every further request."""
        if self._state is LifecycleState.SHUTDOWN:
            return
        self._state = LifecycleState.SHUTDOWN
        self.provider.shutdown()
        logger.info("Protocol handler shut down", server=self.provider.get_server_info().name)

    # ---------------------------------------------------------------------
    # Message entry points
    # ---------------------------------------------------------------------

    async def handle_message(self, raw_data: str | bytes | dict[str, Any]) -> JsonRpcResponse | None:
        """
        Handle a raw JSON-RPC message end-to-end.

        Returns a response, or None for notifications and stray responses.
        """
        try:
            message = parse_message(raw_data)
        except ProtocolError as e:
            logger.warning("Rejected malformed message", code=e.code, error=e.message)
            return error_response(request_id_of(raw_data), e.to_error())

        match message:
            case JsonRpcRequest():
                return await self.handle_request(message)
            case JsonRpcNotification():
                self.handle_notification(message)
                return None
            case JsonRpcResponse():
                logger.warning("Ignoring response sent to server", id=message.id)
                return None
            case _:
                raise TypeError(f"Unknown message type: {type(message).__name__}")

    async def handle_request(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Dispatch a request and build its response; never raises for request failures."""
        with bound_request_id(request.id):
            try:
                result = await self._dispatch(request.method, request.params)
            except ProtocolError as e:
                logger.warning(
                    "Request failed", method=request.method, code=e.code, error=e.message
                )
                return error_response(request.id, e.to_error())
            except Exception as e:
                logger.error("Error handling request", method=request.method, exc_info=True)
                return error_response(request.id, JsonRpcError.internal_error(str(e) or None))
            return success_response(request.id, result)

    def handle_notification(self, notification: JsonRpcNotification) -> None:
        """Handle a notification. Notifications are never answered."""
        if notification.method == NOTIFICATION_INITIALIZED:
            if self._state is not LifecycleState.INITIALIZED:
                logger.warning("Initialized notification before initialize", state=self._state.value)
                return
            try:
                self.provider.initialized()
            except Exception:
                logger.error("Error in initialized callback", exc_info=True)
            logger.info("Client confirmed initialization")
        elif notification.method == NOTIFICATION_CANCELLED:
            logger.info("Client cancelled request", request=notification.params.get("requestId"))
        else:
            logger.debug("Ignoring notification", method=notification.method)

    async def _dispatch(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        if self._state is LifecycleState.SHUTDOWN:
            raise ProtocolError(INVALID_REQUEST, "Server is shut down")

        try:
            mcp_method = McpMethod(method)
        except ValueError:
            raise ProtocolError(METHOD_NOT_FOUND, f"Method not found: {method}") from None

        if self._state is LifecycleState.UNINITIALIZED and mcp_method not in PRE_INITIALIZE_METHODS:
            raise ProtocolError(INVALID_REQUEST, f"Server not initialized, cannot handle {method}")

        return await self._handlers[mcp_method](params)

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    async def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle the initialize request."""
        if self._state is LifecycleState.INITIALIZED:
            raise ProtocolError(INVALID_REQUEST, "Server already initialized")
        if self._initializing:
            raise ProtocolError(INVALID_REQUEST, "Initialization already in progress")

        init_params = parse_params(InitializeParams, params)
        client_info = ClientInfo(
            protocolVersion=init_params.protocolVersion,
            capabilities=init_params.capabilities,
            clientInfo=init_params.clientInfo,
        )

        # Claimed before the await; released whether or not the provider raises
        self._initializing = True
        try:
            result = await self.provider.initialize(client_info)
        finally:
            self._initializing = False

        if self._state is LifecycleState.SHUTDOWN:
            raise ProtocolError(INVALID_REQUEST, "Server is shut down")

        if client_info.protocolVersion in SUPPORTED_PROTOCOL_VERSIONS:
            version = client_info.protocolVersion
        else:
            version = self.protocol_version
        self.client_info = client_info
        self._state = LifecycleState.INITIALIZED
        logger.info(
            "Session initialized",
            client=client_info.clientInfo.name,
            protocol_version=version,
        )
        return result.model_copy(update={"protocolVersion": version}).model_dump()

    async def handle_ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"pong": True}

    # ---------------------------------------------------------------------
    # Resources
    # ---------------------------------------------------------------------

    async def handle_resources_list(self, params: dict[str, Any]) -> dict[str, Any]:
        resources = await self.provider.list_resources()
        return {"resources": [r.model_dump(exclude_none=True) for r in resources]}

    async def handle_resources_read(self, params: dict[str, Any]) -> dict[str, Any]:
        uri_params = parse_params(ResourceUriParams, params)
        content = await self.provider.read_resource(uri_params.uri)
        return {"contents": [_serialize_resource_content(content, uri_params.uri)]}

    async def handle_resource_templates_list(self, params: dict[str, Any]) -> dict[str, Any]:
        templates = await self.provider.list_resource_templates()
        serialized = []
        for template in templates:
            data = template.model_dump(exclude_none=True)
            if not data.get("variables"):
                data.pop("variables", None)
            serialized.append(data)
        return {"resourceTemplates": serialized}

    async def handle_resources_subscribe(self, params: dict[str, Any]) -> dict[str, Any]:
        uri_params = parse_params(ResourceUriParams, params)
        await self.provider.subscribe_resource(uri_params.uri)
        return {}

    async def handle_resources_unsubscribe(self, params: dict[str, Any]) -> dict[str, Any]:
        uri_params = parse_params(ResourceUriParams, params)
        await self.provider.unsubscribe_resource(uri_params.uri)
        return {}

    # ---------------------------------------------------------------------
    # Tools
    # ---------------------------------------------------------------------

    async def handle_tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle the tools/list request."""
        tools = await self.provider.list_tools()
        return {"tools": [tool.model_dump() for tool in tools]}

    async def handle_tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        """
        Handle the tools/call request.

        A tool that raises is not a protocol failure: the response is a
        normal result with ``isError`` set and the error text as content.
        """
        arguments = parse_params(ToolArguments, params)

        logger.info("Calling tool", tool=arguments.name)
        try:
            result = await self.provider.call_tool(arguments)
        except Exception as e:
            logger.error("Tool call error", tool=arguments.name, exc_info=True)
            result = ToolResult.error(f"Error: {e}")
        return result.model_dump(exclude_none=True)

    # ---------------------------------------------------------------------
    # Prompts
    # ---------------------------------------------------------------------

    async def handle_prompts_list(self, params: dict[str, Any]) -> dict[str, Any]:
        prompts = await self.provider.list_prompts()
        serialized = []
        for prompt in prompts:
            data = prompt.model_dump(exclude_none=True)
            if not data.get("arguments"):
                data.pop("arguments", None)
            serialized.append(data)
        return {"prompts": serialized}

    async def handle_prompts_get(self, params: dict[str, Any]) -> dict[str, Any]:
        prompt_params = parse_params(PromptGetParams, params)
        result = await self.provider.get_prompt(prompt_params.name, prompt_params.arguments)
        data: dict[str, Any] = {"messages": [m.model_dump() for m in result.messages]}
        if result.description is not None:
            data["description"] = result.description
        return data


def _serialize_resource_content(content: ResourceContent, requested_uri: str) -> dict[str, Any]:
    data: dict[str, Any] = {"uri": content.uri or requested_uri}
    if content.mimeType is not None:
        data["mimeType"] = content.mimeType
    if content.blob is not None:
        data["blob"] = content.blob
    else:
        data["text"] = content.text if content.text is not None else ""
    return data
