"""JSON-RPC 2.0 message construction, parsing and serialization."""

import json
from typing import Any

from pydantic import ValidationError

from mcphub.mcp.models import (
    JsonRpcRequest,
    JsonRpcResponse,
    JsonRpcNotification,
    JsonRpcError,
    JsonRpcMessage,
    RequestId,
)
from mcphub.mcp.errors import PARSE_ERROR, INVALID_REQUEST, ProtocolError


def make_request(method: str, params: dict[str, Any] | None = None) -> JsonRpcRequest:
    """Create a request with a generated id."""
    return JsonRpcRequest.create(method, params)


def make_notification(method: str, params: dict[str, Any] | None = None) -> JsonRpcNotification:
    """Create a notification (a request that carries no id)."""
    return JsonRpcNotification(method=method, params=params or {})


def success_response(request_id: RequestId | None, result: Any) -> JsonRpcResponse:
    return JsonRpcResponse(id=request_id, result=result)


def error_response(request_id: RequestId | None, error: JsonRpcError) -> JsonRpcResponse:
    return JsonRpcResponse(id=request_id, error=error)


def parse_message(raw_data: str | bytes | dict[str, Any]) -> JsonRpcMessage:
    """
    Parse one JSON-RPC message into its variant.

    Raises ProtocolError with PARSE_ERROR for undecodable JSON and with
    INVALID_REQUEST for anything that is not a valid envelope, including a
    wrong ``jsonrpc`` version.
    """
    if isinstance(raw_data, dict):
        data: Any = raw_data
    else:
        try:
            if isinstance(raw_data, bytes):
                raw_data = raw_data.decode("utf-8")
            data = json.loads(raw_data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProtocolError(PARSE_ERROR, f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError(INVALID_REQUEST, "Invalid JSON-RPC message: expected an object")
    if data.get("jsonrpc") != "2.0":
        raise ProtocolError(INVALID_REQUEST, "Invalid JSON-RPC message: jsonrpc must be '2.0'")

    try:
        if "method" in data:
            if "id" in data and data["id"] is not None:
                return JsonRpcRequest(**data)
            return JsonRpcNotification(
                **{k: v for k, v in data.items() if k != "id"}
            )
        if "result" in data or "error" in data:
            return JsonRpcResponse(**data)
    except (ValidationError, TypeError) as e:
        raise ProtocolError(INVALID_REQUEST, f"Invalid JSON-RPC message: {e}") from e

    raise ProtocolError(INVALID_REQUEST, "Invalid JSON-RPC message: no method, result or error")


def request_id_of(raw_data: str | bytes | dict[str, Any]) -> RequestId | None:
    """Best-effort extraction of the id from a message that failed to parse."""
    data: Any = raw_data
    if not isinstance(raw_data, dict):
        try:
            data = json.loads(raw_data)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
    if isinstance(data, dict) and isinstance(data.get("id"), (int, str)) and not isinstance(
        data.get("id"), bool
    ):
        return data["id"]
    return None


def serialize_message(message: JsonRpcMessage) -> str:
    """Serialize a JSON-RPC message to a JSON string."""
    return json.dumps(message.model_dump())
