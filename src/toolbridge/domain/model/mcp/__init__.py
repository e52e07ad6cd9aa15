"""
MCP Domain Models.

Value objects shared by the MCP client layer:
- ServerDescriptor, TrustLevel
- ConnectionState, ConnectionStatus, ConnectionInfo
- MCPToolSchema, ToolAnnotations, MCPToolResult, content items
- TransportType
"""

from toolbridge.domain.model.mcp.connection import (
    ConnectionInfo,
    ConnectionState,
    ConnectionStatus,
)
from toolbridge.domain.model.mcp.server import ServerDescriptor, TrustLevel
from toolbridge.domain.model.mcp.tool import (
    ImageContent,
    MCPResourceSchema,
    MCPToolResult,
    MCPToolSchema,
    ResourceContent,
    TextContent,
    ToolAnnotations,
    ToolCallContent,
    parse_content_item,
)
from toolbridge.domain.model.mcp.transport import TransportType

__all__ = [
    "ConnectionInfo",
    "ConnectionState",
    "ConnectionStatus",
    "ImageContent",
    "MCPResourceSchema",
    "MCPToolResult",
    "MCPToolSchema",
    "ResourceContent",
    "ServerDescriptor",
    "TextContent",
    "ToolAnnotations",
    "ToolCallContent",
    "TransportType",
    "TrustLevel",
    "parse_content_item",
]
