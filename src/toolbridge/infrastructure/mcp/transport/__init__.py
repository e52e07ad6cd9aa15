"""
MCP Transport Layer.

- stdio: subprocess communication (local MCP servers)

Further transports plug in through TransportFactory.register.
"""

from toolbridge.infrastructure.mcp.transport.base import BaseTransport
from toolbridge.infrastructure.mcp.transport.factory import TransportFactory
from toolbridge.infrastructure.mcp.transport.stdio import StdioTransport

__all__ = [
    "BaseTransport",
    "StdioTransport",
    "TransportFactory",
]
