"""
JSON-RPC 2.0 protocol types for MCP communication.

Implements the minimal set of message shapes the MCP client needs:
requests, responses, notifications, and the standard error codes.
Messages travel as one JSON object per line.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from toolbridge.infrastructure.mcp.errors import MCPProtocolError, MCPRpcError

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

# MCP protocol revision this client speaks
MCP_PROTOCOL_VERSION = "2025-11-25"


class ErrorCode:
    """Standard JSON-RPC error codes and MCP-specific codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # MCP-specific
    RESOURCE_NOT_FOUND = -32002


class MessageKind(str, Enum):
    """What an inbound message is, judged by its envelope."""

    RESPONSE = "response"
    NOTIFICATION = "notification"
    REQUEST = "request"  # server-initiated request


@dataclass(frozen=True)
class JsonRpcRequest:
    """A JSON-RPC 2.0 request (has an ``id``)."""

    id: int
    method: str
    params: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id, "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        return message


@dataclass(frozen=True)
class JsonRpcNotification:
    """A JSON-RPC 2.0 notification (no ``id``, fire and forget)."""

    method: str
    params: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        return message


@dataclass(frozen=True)
class JsonRpcResponse:
    """A JSON-RPC 2.0 response; exactly one of result / error is meaningful."""

    id: Any
    result: Any = None
    error: dict[str, Any] | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def unwrap(self) -> Any:
        """Return the result, raising MCPRpcError if the response carries an error."""
        if self.error is not None:
            raise MCPRpcError.from_dict(self.error)
        return self.result

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            message["error"] = self.error
        else:
            message["result"] = self.result
        return message


@dataclass(frozen=True)
class ServerMessage:
    """An inbound message from an MCP server, classified by envelope."""

    kind: MessageKind
    raw: dict[str, Any] = field(repr=False)

    @property
    def id(self) -> Any:
        return self.raw.get("id")

    @property
    def method(self) -> str | None:
        return self.raw.get("method")

    @property
    def params(self) -> dict[str, Any]:
        params = self.raw.get("params")
        return params if isinstance(params, dict) else {}

    def as_response(self) -> JsonRpcResponse:
        error = self.raw.get("error")
        return JsonRpcResponse(
            id=self.raw.get("id"),
            result=self.raw.get("result"),
            error=error if error is None or isinstance(error, dict) else {"message": str(error)},
        )


def classify(raw: dict[str, Any]) -> MessageKind:
    """
    Classify a decoded message.

    ``method`` without a (non-null) ``id`` is a notification, ``method`` with
    an ``id`` is a server-initiated request, anything else is a response.
    """
    has_method = isinstance(raw.get("method"), str)
    has_id = raw.get("id") is not None
    if has_method and not has_id:
        return MessageKind.NOTIFICATION
    if has_method:
        return MessageKind.REQUEST
    return MessageKind.RESPONSE


def parse_server_message(line: str | bytes) -> ServerMessage | None:
    """
    Parse one raw line from the server into a ServerMessage.

    Returns None for valid JSON that is not an object (nothing to dispatch).

    Raises:
        MCPProtocolError: If the line is not valid JSON.
    """
    try:
        raw = json.loads(line)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MCPProtocolError(f"unparsable message from server: {e}") from e
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring message from server that is not a JSON object: {raw!r:.100}")
        return None
    return ServerMessage(kind=classify(raw), raw=raw)


def encode_message(message: dict[str, Any]) -> bytes:
    """Encode one message as a newline-terminated JSON line."""
    return (json.dumps(message, separators=(",", ":")) + "\n").encode()
