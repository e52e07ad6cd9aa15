"""
MCP Transport Domain Models.

Defines the transport protocol types a server entry may name.
Only stdio is implemented; the others are registered through
TransportFactory when an implementation exists.
"""

from enum import Enum


class TransportType(str, Enum):
    """MCP transport protocol types."""

    STDIO = "stdio"  # subprocess stdin/stdout
    HTTP = "http"  # HTTP request/response
    SSE = "sse"  # Server-Sent Events (Streamable HTTP)
    WEBSOCKET = "websocket"  # WebSocket bidirectional

    @classmethod
    def normalize(cls, value: str) -> "TransportType":
        """Normalize transport type string to enum.

        Raises:
            ValueError: If the value names no known transport.
        """
        normalized = value.lower().strip()
        if normalized == "local":
            return cls.STDIO
        return cls(normalized)
