"""
Transport factory for MCP.

Creates the transport instance for a resolved server descriptor.
"""

import logging

from toolbridge.configuration.config import Settings
from toolbridge.domain.model.mcp.server import ServerDescriptor
from toolbridge.domain.model.mcp.transport import TransportType
from toolbridge.infrastructure.mcp.errors import MCPTransportError
from toolbridge.infrastructure.mcp.transport.base import BaseTransport

logger = logging.getLogger(__name__)


class TransportFactory:
    """
    Factory for creating MCP transport instances.

    Only stdio is built in. Other transport types can be plugged in with
    ``register`` by a host that provides an implementation.
    """

    _transports: dict[TransportType, type[BaseTransport]] = {}

    @classmethod
    def register(cls, transport_type: TransportType, transport_class: type[BaseTransport]) -> None:
        """
        Register a transport implementation.

        Args:
            transport_type: Transport type enum value.
            transport_class: Class implementing BaseTransport, constructed
                as ``transport_class(descriptor, settings)``.
        """
        cls._transports[transport_type] = transport_class
        logger.debug(f"Registered transport: {transport_type.value} -> {transport_class.__name__}")

    @classmethod
    def unregister(cls, transport_type: TransportType) -> None:
        cls._transports.pop(transport_type, None)

    @classmethod
    def create(
        cls, descriptor: ServerDescriptor, settings: Settings | None = None
    ) -> BaseTransport:
        """
        Create a transport instance for a server.

        Raises:
            MCPTransportError: If the descriptor's transport type is not supported.
        """
        cls._lazy_register()
        transport_class = cls._transports.get(descriptor.transport)
        if not transport_class:
            raise MCPTransportError(f"Unsupported transport type: {descriptor.transport.value}")
        return transport_class(descriptor, settings)

    @classmethod
    def supports(cls, transport_type: TransportType | str) -> bool:
        """Check if a transport type is supported."""
        try:
            normalized = TransportType.normalize(transport_type)
        except ValueError:
            return False
        cls._lazy_register()
        return normalized in cls._transports

    @classmethod
    def _lazy_register(cls) -> None:
        """Lazily register built-in transports."""
        if TransportType.STDIO in cls._transports:
            return

        from toolbridge.infrastructure.mcp.transport.stdio import StdioTransport

        cls.register(TransportType.STDIO, StdioTransport)

    @classmethod
    def get_supported_types(cls) -> list[str]:
        """Get list of supported transport type strings."""
        cls._lazy_register()
        return [t.value for t in cls._transports]
