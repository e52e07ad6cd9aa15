"""
Base transport implementation for MCP.

A transport moves framed JSON-RPC messages between the client and one
server. It knows nothing about request ids or the handshake; that is the
ProtocolSession's job.
"""

import logging
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any

from toolbridge.domain.model.mcp.server import ServerDescriptor
from toolbridge.infrastructure.mcp.protocol import ServerMessage

logger = logging.getLogger(__name__)


class BaseTransport(ABC):
    """
    Abstract base class for MCP transport implementations.

    Subclasses implement start/stop/send/receive for one connection.
    """

    def __init__(self, descriptor: ServerDescriptor) -> None:
        self._descriptor = descriptor
        self._is_open = False

    @property
    def is_open(self) -> bool:
        """Check if transport is currently open."""
        return self._is_open

    @property
    def descriptor(self) -> ServerDescriptor:
        return self._descriptor

    @abstractmethod
    async def start(self) -> None:
        """
        Start the transport connection.

        Raises:
            MCPSpawnError: If the server process cannot be launched.
            MCPTransportError: If the transport fails to start.
        """
        ...

    @abstractmethod
    async def stop(self) -> None:
        """
        Stop the transport connection.

        Should be idempotent.
        """
        ...

    @abstractmethod
    async def send(self, message: dict[str, Any]) -> None:
        """
        Send a message over the transport.

        Raises:
            MCPTransportClosedError: If the transport is closed or the peer went away.
        """
        ...

    @abstractmethod
    async def receive(self) -> ServerMessage:
        """
        Receive the next message from the transport.

        Raises:
            MCPTransportClosedError: On end of stream.
            MCPProtocolError: If the next message cannot be decoded.
        """
        ...

    async def __aenter__(self) -> "BaseTransport":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
