"""MCP client error types.

Every failure inside the client layer is raised as one of these so the
layer above can turn it into a connection status or a tool result instead
of crashing.
"""

from typing import Any


class MCPError(Exception):
    """Base exception for MCP client errors."""

    pass


class MCPConfigError(MCPError):
    """A server entry in the configuration is malformed."""

    pass


class MCPSpawnError(MCPError):
    """The server process could not be launched."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"failed to spawn MCP server: {command}: {reason}")


class MCPProtocolError(MCPError):
    """A message from the server is malformed or violates the protocol."""

    pass


class MCPHandshakeError(MCPProtocolError):
    """The initialize handshake failed."""

    pass


class MCPRpcError(MCPError):
    """The server answered a request with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"JSON-RPC error {code}: {message}")

    @classmethod
    def from_dict(cls, error: Any) -> "MCPRpcError":
        if not isinstance(error, dict):
            return cls(code=-32603, message=str(error))
        code = error.get("code")
        return cls(
            code=code if isinstance(code, int) else -32603,
            message=str(error.get("message", "")),
            data=error.get("data"),
        )


class MCPTimeoutError(MCPError):
    """The server did not answer in time."""

    def __init__(self, method: str, timeout: float) -> None:
        self.method = method
        self.timeout = timeout
        super().__init__(f"MCP request '{method}' timed out after {timeout}s")


class MCPTransportError(MCPError):
    """Reading from or writing to the transport failed."""

    pass


class MCPTransportClosedError(MCPTransportError):
    """The transport is closed (process exited, pipe broken, EOF)."""

    pass


class MCPDisconnectedError(MCPError):
    """The client is not connected; the call was not attempted."""

    def __init__(self, server_name: str) -> None:
        self.server_name = server_name
        super().__init__(f"MCP server '{server_name}' is disconnected")


class MCPCancelledError(MCPError):
    """A pending request was cancelled because its session shut down."""

    pass
