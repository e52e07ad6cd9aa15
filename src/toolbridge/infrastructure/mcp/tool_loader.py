"""MCP Tool Loader.

Builds ToolPort adapters from a manager's discovery results and hands
them to the agent's tool registry.
"""

import logging

from toolbridge.domain.ports.tool_port import ToolRegistryPort
from toolbridge.infrastructure.mcp.manager import MCPClientManager
from toolbridge.infrastructure.mcp.tool_adapter import MCPToolAdapter

logger = logging.getLogger(__name__)


class MCPToolLoader:
    """MCP Tool Loader.

    Wraps every tool discovered on a connected server in an MCPToolAdapter.
    Servers that are not connected contribute nothing. Results are cached
    until ``refresh=True`` is passed.
    """

    def __init__(self, manager: MCPClientManager):
        self.manager = manager
        self._cached_tools: dict[str, MCPToolAdapter] = {}
        self._tools_loaded = False

    def load_all_tools(self, refresh: bool = False) -> dict[str, MCPToolAdapter]:
        """Adapters for all connected servers, keyed by namespaced name."""
        if self._tools_loaded and not refresh:
            return dict(self._cached_tools)

        tools: dict[str, MCPToolAdapter] = {}
        for server_name, tool in self.manager.discovered_tools():
            client = self.manager.get_client(server_name)
            if client is None or not client.is_connected:
                continue
            adapter = MCPToolAdapter(server_name, tool, client)
            if adapter.name() in tools:
                logger.warning(f"Duplicate MCP tool name {adapter.name()}, keeping the first")
                continue
            tools[adapter.name()] = adapter

        logger.info(f"Total MCP tools loaded: {len(tools)}")
        self._cached_tools = tools
        self._tools_loaded = True
        return dict(tools)

    def load_server_tools(self, server_name: str) -> dict[str, MCPToolAdapter]:
        """Adapters for one server (empty if it is unknown or not connected)."""
        client = self.manager.get_client(server_name)
        if client is None or not client.is_connected:
            return {}
        tools: dict[str, MCPToolAdapter] = {}
        for tool in client.tools:
            adapter = MCPToolAdapter(server_name, tool, client)
            tools.setdefault(adapter.name(), adapter)
        return tools


def build_mcp_tool_adapters(manager: MCPClientManager) -> list[MCPToolAdapter]:
    """One adapter per tool of every connected server."""
    return list(MCPToolLoader(manager).load_all_tools().values())


def register_mcp_tools(manager: MCPClientManager, registry: ToolRegistryPort) -> list[str]:
    """
    Register adapters for all connected servers' tools.

    Returns the names that were registered.
    """
    registered: list[str] = []
    for adapter in build_mcp_tool_adapters(manager):
        registry.register(adapter)
        registered.append(adapter.name())
    if registered:
        logger.info(f"Registered {len(registered)} MCP tools")
    return registered
