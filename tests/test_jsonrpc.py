"""Tests for JSON-RPC message models and parsing."""

import json

import pytest
from pydantic import ValidationError

from mcphub.mcp.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ProtocolError,
    error_message,
    mcp_error_code,
)
from mcphub.mcp.jsonrpc import (
    error_response,
    make_notification,
    make_request,
    parse_message,
    request_id_of,
    serialize_message,
    success_response,
)
from mcphub.mcp.models import (
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    PromptMessage,
    PromptResult,
    ServerCapabilities,
    Tool,
    ToolArguments,
    ToolResult,
)


class TestMessageModels:
    """Tests for JSON-RPC message construction."""

    def test_request_rejects_wrong_version(self):
        """A request with a jsonrpc version other than 2.0 cannot be built."""
        with pytest.raises(ValidationError):
            JsonRpcRequest(jsonrpc="1.0", id=1, method="ping")

    def test_request_rejects_boolean_id(self):
        """A boolean id is neither a string nor a number and is not coerced."""
        with pytest.raises(ValidationError):
            JsonRpcRequest(id=True, method="ping")
        with pytest.raises(ValidationError):
            JsonRpcResponse(id=False, result={})

    def test_request_defaults_params_to_empty(self):
        request = JsonRpcRequest(id=1, method="ping", params=None)
        assert request.params == {}

    def test_request_create_generates_unique_ids(self):
        first = JsonRpcRequest.create("ping")
        second = JsonRpcRequest.create("ping")
        assert first.id != second.id

    def test_request_serialization_omits_empty_params(self):
        data = make_request("ping").model_dump()
        assert "params" not in data
        assert data["jsonrpc"] == "2.0"
        assert data["method"] == "ping"

    def test_response_cannot_carry_result_and_error(self):
        """A response has a result or an error, never both."""
        with pytest.raises(ValidationError):
            JsonRpcResponse(id=1, result={}, error=JsonRpcError.internal_error())

    def test_error_response_serialization(self):
        data = error_response(7, JsonRpcError.method_not_found("nope")).model_dump()
        assert data == {
            "jsonrpc": "2.0",
            "id": 7,
            "error": {"code": METHOD_NOT_FOUND, "message": "Method not found: nope"},
        }

    def test_success_response_serialization(self):
        data = success_response("abc", {"pong": True}).model_dump()
        assert data == {"jsonrpc": "2.0", "id": "abc", "result": {"pong": True}}
        assert not success_response("abc", {}).is_error

    def test_messages_are_immutable(self):
        request = make_request("ping")
        with pytest.raises(ValidationError):
            request.method = "other"


class TestErrorFactories:
    """Tests for standard error objects."""

    def test_standard_codes(self):
        assert JsonRpcError.parse_error().code == PARSE_ERROR
        assert JsonRpcError.invalid_request().code == INVALID_REQUEST
        assert JsonRpcError.invalid_params().code == INVALID_PARAMS
        assert JsonRpcError.internal_error().code == INTERNAL_ERROR
        assert JsonRpcError.internal_error().message == "Internal error"

    def test_mcp_error_codes_are_offsets_from_base(self):
        error = JsonRpcError.mcp_error(2, "Resource busy")
        assert error.code == -31998
        assert mcp_error_code(0) == -32000

    def test_server_range_message(self):
        assert error_message(-32050) == "Server error"
        assert error_message(1) == "Unknown error"

    def test_data_is_omitted_when_absent(self):
        assert "data" not in JsonRpcError.invalid_params("bad").model_dump()
        assert JsonRpcError(code=1, message="x", data={"k": 1}).model_dump()["data"] == {"k": 1}

    def test_protocol_error_converts_to_error_object(self):
        error = ProtocolError(INVALID_PARAMS, "Missing uri").to_error()
        assert error.code == INVALID_PARAMS
        assert error.message == "Missing uri"


class TestParseMessage:
    """Tests for raw message parsing."""

    def test_invalid_json_raises_parse_error(self):
        with pytest.raises(ProtocolError) as exc_info:
            parse_message("not valid json{")
        assert exc_info.value.code == PARSE_ERROR
        assert "invalid json" in exc_info.value.message.lower()

    def test_wrong_version_raises_invalid_request(self):
        with pytest.raises(ProtocolError) as exc_info:
            parse_message({"jsonrpc": "1.0", "id": 1, "method": "ping"})
        assert exc_info.value.code == INVALID_REQUEST

    def test_missing_version_raises_invalid_request(self):
        with pytest.raises(ProtocolError) as exc_info:
            parse_message({"id": 1, "method": "ping"})
        assert exc_info.value.code == INVALID_REQUEST

    def test_boolean_id_raises_invalid_request(self):
        with pytest.raises(ProtocolError) as exc_info:
            parse_message('{"jsonrpc": "2.0", "id": true, "method": "ping"}')
        assert exc_info.value.code == INVALID_REQUEST

    def test_numeric_and_string_ids_keep_their_type(self):
        assert parse_message('{"jsonrpc": "2.0", "id": 1, "method": "ping"}').id == 1
        assert parse_message('{"jsonrpc": "2.0", "id": "1", "method": "ping"}').id == "1"

    def test_non_object_raises_invalid_request(self):
        with pytest.raises(ProtocolError) as exc_info:
            parse_message("[1, 2, 3]")
        assert exc_info.value.code == INVALID_REQUEST

    def test_request_notification_and_response_variants(self):
        assert isinstance(parse_message('{"jsonrpc": "2.0", "id": 1, "method": "ping"}'), JsonRpcRequest)
        assert isinstance(parse_message({"jsonrpc": "2.0", "method": "notifications/initialized"}), JsonRpcNotification)
        assert isinstance(parse_message({"jsonrpc": "2.0", "id": 1, "result": {}}), JsonRpcResponse)

    def test_null_id_with_method_is_a_notification(self):
        message = parse_message({"jsonrpc": "2.0", "id": None, "method": "notifications/cancelled"})
        assert isinstance(message, JsonRpcNotification)

    def test_bytes_are_decoded(self):
        message = parse_message(b'{"jsonrpc": "2.0", "id": "x", "method": "ping"}')
        assert message.id == "x"

    def test_envelope_without_method_or_result(self):
        with pytest.raises(ProtocolError) as exc_info:
            parse_message({"jsonrpc": "2.0", "id": 1})
        assert exc_info.value.code == INVALID_REQUEST

    def test_serialize_then_parse_request(self):
        request = make_request("tools/call", {"name": "echo"})
        parsed = parse_message(serialize_message(request))
        assert parsed == request

    def test_notification_serialization_has_no_id(self):
        data = json.loads(serialize_message(make_notification("notifications/initialized")))
        assert "id" not in data

    def test_request_id_of_malformed_message(self):
        assert request_id_of({"jsonrpc": "1.0", "id": 5}) == 5
        assert request_id_of("not json") is None
        assert request_id_of({"id": True}) is None


class TestMcpModels:
    """Tests for MCP data models."""

    def test_tool_name_cannot_be_blank(self):
        with pytest.raises(ValidationError):
            Tool(name="  ")

    def test_tool_defaults(self):
        tool = Tool(name="t")
        assert tool.description == ""
        assert tool.inputSchema == {"type": "object", "properties": {}}

    def test_simple_tool_requires_all_parameters(self):
        tool = Tool.simple("search", "Search things", "query", "limit")
        assert tool.inputSchema["required"] == ["query", "limit"]
        assert tool.inputSchema["properties"]["query"]["type"] == "string"

    def test_tool_arguments_default_to_empty(self):
        assert ToolArguments(name="t", arguments=None).arguments == {}

    def test_tool_result_error(self):
        result = ToolResult.error("Error: boom")
        assert result.isError is True
        assert result.content[0].text == "Error: boom"

    def test_tool_result_content_discriminator(self):
        result = ToolResult.model_validate(
            {"content": [{"type": "image", "data": "AAA=", "mimeType": "image/png"}]}
        )
        assert result.content[0].type == "image"

    def test_prompt_result_needs_messages(self):
        with pytest.raises(ValidationError):
            PromptResult(messages=[])

    def test_prompt_message_string_content(self):
        assert PromptMessage(role="user", content="hi").model_dump() == {
            "role": "user",
            "content": {"type": "text", "text": "hi"},
        }

    def test_capability_presets(self):
        caps = ServerCapabilities.tools_only()
        assert caps.tools is not None
        assert caps.resources is None
        assert ServerCapabilities.all().resources.subscribe is True
