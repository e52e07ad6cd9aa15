"""
MCP Connection Domain Models.

Defines connection state and info value objects.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class ConnectionState(str, Enum):
    """MCP connection state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        """Check if connection is in an active state."""
        return self in (ConnectionState.CONNECTED, ConnectionState.CONNECTING)

    @property
    def is_settled(self) -> bool:
        """Check if a connection attempt has finished one way or the other."""
        return self in (ConnectionState.CONNECTED, ConnectionState.FAILED)


@dataclass(frozen=True)
class ConnectionStatus:
    """
    Connection state paired with its cause.

    Published as a single immutable value so a reader never sees a state
    from one transition combined with the cause of another.
    """

    state: ConnectionState
    cause: str | None = None

    @classmethod
    def disconnected(cls, cause: str | None = None) -> "ConnectionStatus":
        return cls(state=ConnectionState.DISCONNECTED, cause=cause)

    @classmethod
    def connecting(cls) -> "ConnectionStatus":
        return cls(state=ConnectionState.CONNECTING)

    @classmethod
    def connected(cls) -> "ConnectionStatus":
        return cls(state=ConnectionState.CONNECTED)

    @classmethod
    def failed(cls, cause: str) -> "ConnectionStatus":
        return cls(state=ConnectionState.FAILED, cause=cause)

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def __str__(self) -> str:
        if self.cause:
            return f"{self.state.value} ({self.cause})"
        return self.state.value


@dataclass(frozen=True)
class ConnectionInfo:
    """
    MCP connection information.

    Snapshot of a client's connection including timing information and
    what was negotiated during the handshake.
    """

    server_name: str
    endpoint: str  # command line of the server process
    status: ConnectionStatus = field(default_factory=ConnectionStatus.disconnected)
    connected_at: datetime | None = None
    disconnected_at: datetime | None = None
    server_info: dict[str, Any] | None = None
    protocol_version: str | None = None
    tool_count: int = 0

    @property
    def state(self) -> ConnectionState:
        return self.status.state

    @property
    def is_connected(self) -> bool:
        """Check if currently connected."""
        return self.status.is_connected

    @property
    def connection_duration_seconds(self) -> float | None:
        """Get connection duration in seconds."""
        if not self.connected_at:
            return None
        end_time = self.disconnected_at or datetime.now()
        return (end_time - self.connected_at).total_seconds()

    def mark_connected(
        self,
        server_info: dict[str, Any] | None = None,
        protocol_version: str | None = None,
        tool_count: int = 0,
    ) -> "ConnectionInfo":
        """Create new instance marking as connected."""
        return replace(
            self,
            status=ConnectionStatus.connected(),
            connected_at=datetime.now(),
            disconnected_at=None,
            server_info=server_info,
            protocol_version=protocol_version,
            tool_count=tool_count,
        )

    def mark_disconnected(self, cause: str | None = None) -> "ConnectionInfo":
        """Create new instance marking as disconnected."""
        return replace(
            self,
            status=ConnectionStatus.disconnected(cause),
            disconnected_at=datetime.now(),
        )

    def mark_failed(self, cause: str) -> "ConnectionInfo":
        """Create new instance marking the connection attempt as failed."""
        return replace(
            self,
            status=ConnectionStatus.failed(cause),
            disconnected_at=datetime.now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for diagnostics."""
        return {
            "server_name": self.server_name,
            "endpoint": self.endpoint,
            "state": self.state.value,
            "cause": self.status.cause,
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
            "disconnected_at": self.disconnected_at.isoformat() if self.disconnected_at else None,
            "server_info": self.server_info,
            "protocol_version": self.protocol_version,
            "tool_count": self.tool_count,
        }
