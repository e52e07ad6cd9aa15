"""
MCP Server Client.

One MCPServerClient owns one MCP server subprocess and the ProtocolSession
speaking to it. It drives the connection state machine:

    DISCONNECTED -> CONNECTING -> CONNECTED | FAILED
    CONNECTED -> DISCONNECTED   (transport failure or explicit disconnect)

The current state is published as a single immutable ConnectionStatus, so
``is_connected`` is a plain attribute read that never blocks.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from types import TracebackType
from typing import Any

from toolbridge.configuration.config import Settings, get_settings
from toolbridge.domain.model.mcp.connection import (
    ConnectionInfo,
    ConnectionState,
    ConnectionStatus,
)
from toolbridge.domain.model.mcp.server import ServerDescriptor, TrustLevel
from toolbridge.domain.model.mcp.tool import (
    MCPResourceSchema,
    MCPToolResult,
    MCPToolSchema,
    ResourceContent,
)
from toolbridge.infrastructure.mcp.errors import (
    MCPDisconnectedError,
    MCPError,
    MCPProtocolError,
)
from toolbridge.infrastructure.mcp.session import ProtocolSession
from toolbridge.infrastructure.mcp.transport.factory import TransportFactory

logger = logging.getLogger(__name__)

ToolsChangedListener = Callable[[str], Any]

# Map MCP log levels (RFC 5424 names) onto stdlib logging levels
_MCP_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}


class MCPServerClient:
    """
    Client for a single MCP server.

    Usage:
        client = MCPServerClient(descriptor)
        status = await client.connect()
        if client.is_connected:
            result = await client.call_tool("read_file", {"path": "/etc/hosts"})
        await client.disconnect()

    Or use as async context manager:
        async with MCPServerClient(descriptor) as client:
            tools = client.tools
    """

    def __init__(
        self,
        descriptor: ServerDescriptor,
        settings: Settings | None = None,
        transport_factory: type[TransportFactory] = TransportFactory,
    ) -> None:
        self._descriptor = descriptor
        self._settings = settings or get_settings()
        self._transport_factory = transport_factory

        self._status = ConnectionStatus.disconnected()
        self._info = ConnectionInfo(server_name=descriptor.name, endpoint=descriptor.endpoint)
        self._session: ProtocolSession | None = None
        self._tools: tuple[MCPToolSchema, ...] = ()
        self._tools_stale = False
        self._listeners: list[ToolsChangedListener] = []
        self._listener_tasks: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> "MCPServerClient":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    # === state ===

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def descriptor(self) -> ServerDescriptor:
        return self._descriptor

    @property
    def trust_level(self) -> TrustLevel:
        return self._descriptor.trust_level

    @property
    def status(self) -> ConnectionStatus:
        """Current state together with its cause."""
        return self._status

    @property
    def state(self) -> ConnectionState:
        return self._status.state

    @property
    def is_connected(self) -> bool:
        """Non-blocking check used to fail fast before issuing a call."""
        return self._status.is_connected

    @property
    def connection_info(self) -> ConnectionInfo:
        return self._info

    @property
    def server_info(self) -> dict[str, Any] | None:
        return self._session.server_info if self._session else None

    @property
    def capabilities(self) -> dict[str, Any]:
        return self._session.capabilities if self._session else {}

    @property
    def protocol_version(self) -> str | None:
        return self._session.protocol_version if self._session else None

    @property
    def tools(self) -> tuple[MCPToolSchema, ...]:
        """Tool descriptors cached at discovery time."""
        return self._tools

    @property
    def tools_stale(self) -> bool:
        """True once the server announced its tool list changed since discovery."""
        return self._tools_stale

    @property
    def request_timeout(self) -> float:
        return self._descriptor.timeout or self._settings.mcp_request_timeout

    def add_tools_changed_listener(self, listener: ToolsChangedListener) -> None:
        """
        Register a callback invoked with the server name on ``tools/list_changed``.

        Listeners run as their own tasks, off the session's reader, so a
        listener may await traffic on this client such as ``refresh_tools()``.
        """
        self._listeners.append(listener)

    # === lifecycle ===

    async def connect(self) -> ConnectionStatus:
        """
        Spawn the server, perform the handshake and discover its tools.

        Never raises for server-side problems: a spawn or handshake failure
        is returned as a FAILED status carrying the cause. Only cancellation
        of the calling task propagates.
        """
        if self._status.state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING):
            logger.debug(f"MCP server '{self.name}' already {self._status.state.value}")
            return self._status

        self._status = ConnectionStatus.connecting()
        self._tools = ()
        self._tools_stale = False
        logger.info(f"Connecting to MCP server '{self.name}': {self._descriptor.endpoint}")

        session: ProtocolSession | None = None
        try:
            transport = self._transport_factory.create(self._descriptor, self._settings)
            session = ProtocolSession(
                transport,
                self.name,
                settings=self._settings,
                on_notification=self._handle_notification,
                on_closed=self._handle_session_closed,
            )
            self._session = session
            await session.start()
            await session.initialize(timeout=self._settings.mcp_handshake_timeout)
        except asyncio.CancelledError:
            await self._abandon(session, "connection attempt cancelled")
            raise
        except MCPError as e:
            await self._abandon(session, str(e))
            logger.error(f"Failed to connect to MCP server '{self.name}': {e}")
            return self._status
        except Exception as e:
            await self._abandon(session, f"unexpected error: {e}")
            logger.exception(f"Unexpected error connecting to MCP server '{self.name}'")
            return self._status

        try:
            self._tools = await self._list_all_tools()
        except asyncio.CancelledError:
            await self._abandon(session, "connection attempt cancelled")
            raise
        except MCPError as e:
            if session.is_closed:
                await self._abandon(session, f"tool discovery failed: {e}")
                logger.error(f"MCP server '{self.name}' failed during tool discovery: {e}")
                return self._status
            # A server that cannot list tools is still usable for resources
            logger.warning(f"Failed to list tools from MCP server '{self.name}': {e}")
        except Exception as e:
            await self._abandon(session, f"unexpected error during tool discovery: {e}")
            logger.exception(f"Unexpected error discovering tools on MCP server '{self.name}'")
            return self._status

        self._status = ConnectionStatus.connected()
        self._info = self._info.mark_connected(
            server_info=session.server_info,
            protocol_version=session.protocol_version,
            tool_count=len(self._tools),
        )
        logger.info(
            f"MCP server '{self.name}' connected "
            f"(protocol {session.protocol_version}, {len(self._tools)} tools)"
        )
        return self._status

    async def _abandon(self, session: ProtocolSession | None, cause: str) -> None:
        """Record a failed connection attempt and release its resources."""
        self._status = ConnectionStatus.failed(cause)
        self._info = self._info.mark_failed(cause)
        self._tools = ()
        self._session = None
        if session is not None:
            await session.close()

    async def disconnect(self) -> None:
        """
        Terminate the server process and cancel in-flight calls.

        Idempotent; the state ends DISCONNECTED either way.
        """
        session = self._session
        self._session = None
        if self._status.state != ConnectionState.DISCONNECTED:
            self._status = ConnectionStatus.disconnected()
            self._info = self._info.mark_disconnected()
        self._tools = ()

        if session is not None:
            logger.info(f"Disconnecting MCP server '{self.name}'")
            await session.close()
        await self._cancel_listener_tasks()

    def _handle_session_closed(self, cause: MCPError) -> None:
        """Called by the session when the transport fails."""
        if self._status.state != ConnectionState.CONNECTED:
            # Failures during connect are reported by connect() itself
            return
        self._status = ConnectionStatus.disconnected(str(cause))
        self._info = self._info.mark_disconnected(str(cause))
        logger.warning(f"MCP server '{self.name}' disconnected: {cause}")

    # === operations ===

    def _require_session(self) -> ProtocolSession:
        session = self._session
        if not self._status.is_connected or session is None:
            raise MCPDisconnectedError(self.name)
        return session

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> MCPToolResult:
        """
        Invoke a remote tool.

        Raises:
            MCPDisconnectedError: The client is not connected; nothing was sent.
            MCPTransportError: The transport failed; the client is now DISCONNECTED.
            MCPRpcError: The server rejected the request; connection unaffected.
            MCPTimeoutError: No answer in time; connection unaffected.
            MCPProtocolError: The result could not be decoded.
        """
        session = self._require_session()
        logger.debug(f"Calling MCP tool '{name}' on '{self.name}'")

        raw = await session.request(
            "tools/call",
            {"name": name, "arguments": arguments or {}},
            timeout=self.request_timeout,
        )
        try:
            return MCPToolResult.from_dict(raw)
        except ValueError as e:
            raise MCPProtocolError(f"invalid tools/call result from '{self.name}': {e}") from e

    async def list_tools(self) -> list[MCPToolSchema]:
        """Query the server's current tool list (does not touch the cache)."""
        self._require_session()
        return list(await self._list_all_tools())

    async def refresh_tools(self) -> tuple[MCPToolSchema, ...]:
        """
        Re-discover tools and replace the cache.

        Adapters built from the previous cache keep their own snapshot.
        """
        self._require_session()
        self._tools = await self._list_all_tools()
        self._tools_stale = False
        self._info = replace(self._info, tool_count=len(self._tools))
        logger.info(f"Refreshed MCP server '{self.name}': {len(self._tools)} tools")
        return self._tools

    async def _list_all_tools(self) -> tuple[MCPToolSchema, ...]:
        """Follow ``nextCursor`` pagination until exhausted."""
        session = self._session
        if session is None:
            raise MCPDisconnectedError(self.name)

        tools: list[MCPToolSchema] = []
        cursor: str | None = None
        seen_cursors: set[str] = set()
        while True:
            params = {"cursor": cursor} if cursor else None
            result = await session.request("tools/list", params, timeout=self.request_timeout)
            if not isinstance(result, dict):
                raise MCPProtocolError(f"invalid tools/list result from '{self.name}'")

            entries = result.get("tools")
            if entries is None:
                entries = []
            if not isinstance(entries, list):
                raise MCPProtocolError(
                    f"tools/list result from '{self.name}' has non-array tools: {entries!r}"
                )

            for entry in entries:
                if not isinstance(entry, dict):
                    logger.warning(f"MCP server '{self.name}' listed a non-object tool, skipped")
                    continue
                try:
                    tools.append(MCPToolSchema.from_dict(entry))
                except ValueError as e:
                    logger.warning(f"MCP server '{self.name}' listed an invalid tool, skipped: {e}")

            cursor = result.get("nextCursor")
            if not isinstance(cursor, str) or not cursor:
                break
            if cursor in seen_cursors:
                logger.warning(f"MCP server '{self.name}' repeated tools/list cursor, stopping")
                break
            seen_cursors.add(cursor)

        logger.debug(f"MCP server '{self.name}' lists {len(tools)} tools")
        return tuple(tools)

    async def list_resources(self) -> list[MCPResourceSchema]:
        """List resources exposed by the server."""
        session = self._require_session()
        resources: list[MCPResourceSchema] = []
        cursor: str | None = None
        while True:
            params = {"cursor": cursor} if cursor else None
            result = await session.request("resources/list", params, timeout=self.request_timeout)
            if not isinstance(result, dict):
                raise MCPProtocolError(f"invalid resources/list result from '{self.name}'")
            entries = result.get("resources")
            if entries is None:
                entries = []
            if not isinstance(entries, list):
                raise MCPProtocolError(
                    f"resources/list result from '{self.name}' has non-array resources"
                )
            for entry in entries:
                if not isinstance(entry, dict):
                    logger.warning(f"MCP server '{self.name}' listed a non-object resource")
                    continue
                try:
                    resources.append(MCPResourceSchema.from_dict(entry))
                except ValueError as e:
                    logger.warning(f"MCP server '{self.name}' listed an invalid resource: {e}")
            next_cursor = result.get("nextCursor")
            if not isinstance(next_cursor, str) or not next_cursor or next_cursor == cursor:
                return resources
            cursor = next_cursor

    async def read_resource(self, uri: str) -> list[ResourceContent]:
        """Read one resource by URI."""
        session = self._require_session()
        result = await session.request(
            "resources/read", {"uri": uri}, timeout=self.request_timeout
        )
        if not isinstance(result, dict) or not isinstance(result.get("contents"), list):
            raise MCPProtocolError(f"invalid resources/read result from '{self.name}'")
        if not all(isinstance(item, dict) for item in result["contents"]):
            raise MCPProtocolError(f"invalid resource content from '{self.name}'")
        try:
            return [ResourceContent.from_dict(item) for item in result["contents"]]
        except ValueError as e:
            raise MCPProtocolError(f"invalid resource content from '{self.name}': {e}") from e

    async def ping(self) -> bool:
        """Health check. Returns False instead of raising."""
        session = self._session
        if not self._status.is_connected or session is None:
            return False
        try:
            await session.request("ping", timeout=self._settings.mcp_handshake_timeout)
            return True
        except MCPError as e:
            logger.warning(f"MCP server '{self.name}' ping failed: {e}")
            return False

    # === notifications ===

    async def _handle_notification(self, method: str, params: dict[str, Any]) -> None:
        if method == "notifications/tools/list_changed":
            logger.info(f"MCP server '{self.name}' reports its tool list changed")
            self._tools_stale = True
            for listener in list(self._listeners):
                task = asyncio.create_task(
                    self._run_listener(listener), name=f"mcp-tools-changed-{self.name}"
                )
                self._listener_tasks.add(task)
                task.add_done_callback(self._listener_tasks.discard)
        elif method == "notifications/resources/list_changed":
            logger.info(f"MCP server '{self.name}' reports its resource list changed")
        elif method == "notifications/message":
            level = _MCP_LOG_LEVELS.get(str(params.get("level", "info")).lower(), logging.INFO)
            source = params.get("logger") or self.name
            logger.log(level, f"[{source}] {params.get('data')}")
        else:
            logger.debug(f"Unhandled notification from MCP server '{self.name}': {method}")

    async def _run_listener(self, listener: ToolsChangedListener) -> None:
        try:
            outcome = listener(self.name)
            if asyncio.iscoroutine(outcome):
                await outcome
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Tools-changed listener for MCP server '{self.name}' failed")

    async def _cancel_listener_tasks(self) -> None:
        current = asyncio.current_task()
        tasks = [task for task in self._listener_tasks if task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def __repr__(self) -> str:
        return f"MCPServerClient(name={self.name!r}, status={self._status})"
