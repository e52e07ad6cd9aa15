"""
MCP Client Manager.

Owns one MCPServerClient per configured server. Connection attempts fan
out concurrently and are isolated from each other: a server that fails to
spawn, answers garbage or hangs in its handshake only affects itself.
"""

import asyncio
import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any

from toolbridge.configuration.config import Settings, get_settings
from toolbridge.domain.model.mcp.connection import ConnectionStatus
from toolbridge.domain.model.mcp.tool import MCPToolSchema
from toolbridge.infrastructure.mcp.client import MCPServerClient
from toolbridge.infrastructure.mcp.config import McpConfig, resolve
from toolbridge.infrastructure.mcp.transport.factory import TransportFactory

logger = logging.getLogger(__name__)


class MCPClientManager:
    """
    Manager for all configured MCP servers.

    Usage:
        async with MCPClientManager() as manager:
            await manager.connect_all(config)
            for server_name, tool in manager.discovered_tools():
                ...
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport_factory: type[TransportFactory] = TransportFactory,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport_factory = transport_factory
        self._clients: dict[str, MCPServerClient] = {}

    async def __aenter__(self) -> "MCPClientManager":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    @property
    def server_count(self) -> int:
        return len(self._clients)

    @property
    def connected_count(self) -> int:
        return sum(1 for client in self._clients.values() if client.is_connected)

    async def connect_all(
        self,
        config: McpConfig | Mapping[str, Any] | None,
        environ: Mapping[str, str] | None = None,
    ) -> dict[str, ConnectionStatus]:
        """
        Connect every enabled server concurrently.

        Returns once every attempt has settled, with the resulting status per
        server. Calling it again (a reload) replaces clients of the same name.
        """
        if not isinstance(config, McpConfig):
            config = McpConfig.from_mapping(config)

        if not config.client_enabled:
            logger.info("MCP client disabled by configuration")
            return {}

        pending: list[MCPServerClient] = []
        for name, server_config in config.servers.items():
            if not server_config.enabled:
                logger.debug(f"MCP server '{name}' disabled, skipping")
                continue
            if not self._transport_factory.supports(server_config.transport):
                logger.warning(
                    f"MCP server '{name}': transport '{server_config.transport.value}' "
                    "is not supported, skipping"
                )
                continue

            previous = self._clients.pop(name, None)
            if previous is not None:
                await previous.disconnect()

            client = MCPServerClient(
                resolve(name, server_config, environ),
                settings=self._settings,
                transport_factory=self._transport_factory,
            )
            # Recorded before connecting so get_client answers even on failure
            self._clients[name] = client
            pending.append(client)

        if not pending:
            return {}

        results = await asyncio.gather(
            *(client.connect() for client in pending), return_exceptions=True
        )

        statuses: dict[str, ConnectionStatus] = {}
        for client, result in zip(pending, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"MCP server '{client.name}' connect raised: {result}")
                statuses[client.name] = ConnectionStatus.failed(str(result))
            else:
                statuses[client.name] = result

        connected = sum(1 for status in statuses.values() if status.is_connected)
        tool_count = sum(len(client.tools) for client in pending)
        logger.info(
            f"MCP: {connected}/{len(pending)} servers connected, {tool_count} tools discovered"
        )
        for name, status in statuses.items():
            if not status.is_connected:
                logger.warning(f"MCP server '{name}' unavailable: {status}")
        return statuses

    def discovered_tools(self) -> list[tuple[str, MCPToolSchema]]:
        """(server name, tool descriptor) pairs from the cached discovery results."""
        return [(name, tool) for name, client in self._clients.items() for tool in client.tools]

    def get_client(self, name: str) -> MCPServerClient | None:
        return self._clients.get(name)

    def clients(self) -> list[MCPServerClient]:
        return list(self._clients.values())

    def statuses(self) -> dict[str, ConnectionStatus]:
        return {name: client.status for name, client in self._clients.items()}

    async def refresh(self, name: str) -> tuple[MCPToolSchema, ...] | None:
        """
        Re-list one server's tools.

        Returns None when no server of that name is known.

        Raises:
            MCPError: If the server is not connected or the listing fails.
        """
        client = self._clients.get(name)
        if client is None:
            return None
        return await client.refresh_tools()

    async def shutdown(self) -> None:
        """Disconnect every client. Idempotent."""
        if not self._clients:
            return
        clients = list(self._clients.values())
        logger.info(f"Shutting down {len(clients)} MCP server(s)")
        results = await asyncio.gather(
            *(client.disconnect() for client in clients), return_exceptions=True
        )
        for client, result in zip(clients, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"Error disconnecting MCP server '{client.name}': {result}")
