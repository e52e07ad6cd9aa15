"""
MCP (Model Context Protocol) Infrastructure Layer.

Client side of MCP: connects to external MCP server processes and exposes
their tools to the agent through the ToolPort interface.

Architecture:
- McpConfig / resolve: configuration fragment and ServerDescriptor resolution
- Transport: stdio subprocess transport (other transports plug into TransportFactory)
- ProtocolSession: JSON-RPC framing, handshake and request multiplexing
- MCPServerClient: one server's connection lifecycle and operations
- MCPClientManager: all configured servers, connected concurrently
- MCPToolAdapter / MCPToolLoader: remote tools as ToolPort instances
"""

from toolbridge.infrastructure.mcp.client import MCPServerClient
from toolbridge.infrastructure.mcp.config import (
    McpConfig,
    McpServerConfig,
    McpServerPermissions,
    expand_env_vars,
    resolve,
)
from toolbridge.infrastructure.mcp.errors import (
    MCPCancelledError,
    MCPConfigError,
    MCPDisconnectedError,
    MCPError,
    MCPHandshakeError,
    MCPProtocolError,
    MCPRpcError,
    MCPSpawnError,
    MCPTimeoutError,
    MCPTransportClosedError,
    MCPTransportError,
)
from toolbridge.infrastructure.mcp.manager import MCPClientManager
from toolbridge.infrastructure.mcp.session import ProtocolSession
from toolbridge.infrastructure.mcp.tool_adapter import MCPToolAdapter, format_tool_result
from toolbridge.infrastructure.mcp.tool_loader import (
    MCPToolLoader,
    build_mcp_tool_adapters,
    register_mcp_tools,
)
from toolbridge.infrastructure.mcp.transport import (
    BaseTransport,
    StdioTransport,
    TransportFactory,
)

__all__ = [
    # Configuration
    "McpConfig",
    "McpServerConfig",
    "McpServerPermissions",
    "expand_env_vars",
    "resolve",
    # Errors
    "MCPCancelledError",
    "MCPConfigError",
    "MCPDisconnectedError",
    "MCPError",
    "MCPHandshakeError",
    "MCPProtocolError",
    "MCPRpcError",
    "MCPSpawnError",
    "MCPTimeoutError",
    "MCPTransportClosedError",
    "MCPTransportError",
    # Client layer
    "ProtocolSession",
    "MCPServerClient",
    "MCPClientManager",
    # Tools
    "MCPToolAdapter",
    "MCPToolLoader",
    "build_mcp_tool_adapters",
    "format_tool_result",
    "register_mcp_tools",
    # Transport
    "BaseTransport",
    "StdioTransport",
    "TransportFactory",
]
