"""MCP Tool Adapter.

Adapts a tool discovered on an MCP server to the ToolPort interface so the
agent can call it exactly like a built-in tool.
"""

import copy
import logging
from collections.abc import Sequence
from typing import Any

from toolbridge.domain.model.mcp.server import TrustLevel
from toolbridge.domain.model.mcp.tool import (
    ImageContent,
    MCPToolSchema,
    ResourceContent,
    TextContent,
    ToolAnnotations,
    ToolCallContent,
)
from toolbridge.domain.ports.tool_port import RiskLevel, ToolCategory, ToolResult
from toolbridge.infrastructure.mcp.client import MCPServerClient
from toolbridge.infrastructure.mcp.errors import MCPError

logger = logging.getLogger(__name__)


def format_tool_result(content: Sequence[ToolCallContent]) -> str:
    """
    Flatten tool call content into the text the agent reads.

    Images become a placeholder naming their MIME type; a resource shows
    its text, else the size of its blob, else its URI. Items are joined
    with a newline in their original order.
    """
    parts: list[str] = []
    for item in content:
        if isinstance(item, TextContent):
            parts.append(item.text)
        elif isinstance(item, ImageContent):
            parts.append(f"[Image: {item.mime_type}]")
        elif isinstance(item, ResourceContent):
            if item.text is not None:
                parts.append(item.text)
            elif item.blob is not None:
                parts.append(f"[Resource blob: {len(item.blob)} bytes]")
            else:
                parts.append(item.uri)
    return "\n".join(parts)


class MCPToolAdapter:
    """Adapter that wraps one MCP tool as a ToolPort.

    Tool naming convention: mcp__{server_name}__{tool_name}

    Description, input schema and annotations are a snapshot taken at
    discovery time. The client is shared with every other adapter of the
    same server and is not owned by the adapter.
    """

    MCP_PREFIX = "mcp"
    MCP_NAME_SEPARATOR = "__"

    def __init__(self, server_name: str, tool: MCPToolSchema, client: MCPServerClient) -> None:
        self.server_name = server_name
        self.remote_name = tool.name
        self.client = client
        self._name = self.namespaced_name(server_name, tool.name)
        self._description = tool.description or f"MCP tool: {tool.name}"
        self._input_schema = copy.deepcopy(tool.input_schema)
        self._annotations = tool.annotations

    @classmethod
    def namespaced_name(cls, server_name: str, tool_name: str) -> str:
        sep = cls.MCP_NAME_SEPARATOR
        return f"{cls.MCP_PREFIX}{sep}{server_name}{sep}{tool_name}"

    def name(self) -> str:
        return self._name

    def description(self) -> str:
        return self._description

    @property
    def annotations(self) -> ToolAnnotations:
        return self._annotations

    @property
    def trust_level(self) -> TrustLevel:
        """Trust level of the owning server, for the permission layer."""
        return self.client.trust_level

    def category(self) -> ToolCategory:
        # Anything not read-only may reach beyond the server process
        if self._annotations.read_only:
            return ToolCategory.READ_ONLY
        return ToolCategory.NETWORK

    def risk_level(self) -> RiskLevel:
        if self._annotations.destructive:
            return RiskLevel.DANGEROUS
        if self._annotations.read_only:
            return RiskLevel.SAFE
        return RiskLevel.MODERATE

    def parameters_schema(self) -> dict[str, Any]:
        if not self._input_schema:
            return {"type": "object", "properties": {}}
        return copy.deepcopy(self._input_schema)

    async def execute(self, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Execute the remote tool through the owning client."""
        if not self.client.is_connected:
            return ToolResult.error(f"MCP server '{self.server_name}' is disconnected")

        logger.info(f"Executing MCP tool: {self._name}")
        try:
            result = await self.client.call_tool(self.remote_name, arguments or {})
        except MCPError as e:
            logger.warning(f"MCP tool {self._name} failed: {e}")
            return ToolResult.error(f"MCP tool call failed (server '{self.server_name}'): {e}")

        output = format_tool_result(result.content)
        if result.is_error:
            logger.debug(f"MCP tool {self._name} reported an error")
            return ToolResult.error(output)
        return ToolResult.success(output)

    def __repr__(self) -> str:
        return f"MCPToolAdapter(name={self._name!r})"
