"""
JSON-RPC session over one MCP transport.

ProtocolSession owns the request-id counter, the table of requests still
waiting for an answer and the background task that reads server output.
Responses are matched to requests by id, so any number of calls can be in
flight at once and the server may answer them in any order.
"""

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from toolbridge.configuration.config import Settings, get_settings
from toolbridge.infrastructure.mcp.errors import (
    MCPCancelledError,
    MCPError,
    MCPHandshakeError,
    MCPProtocolError,
    MCPTimeoutError,
    MCPTransportClosedError,
    MCPTransportError,
)
from toolbridge.infrastructure.mcp.protocol import (
    MCP_PROTOCOL_VERSION,
    ErrorCode,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    MessageKind,
    ServerMessage,
)
from toolbridge.infrastructure.mcp.transport.base import BaseTransport

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[str, dict[str, Any]], Awaitable[None]]
ClosedCallback = Callable[[MCPError], None]


class ProtocolSession:
    """
    Request/response multiplexer for one MCP server.

    Usage:
        session = ProtocolSession(transport, "github")
        await session.start()
        await session.initialize()
        result = await session.request("tools/list")
        await session.close()

    A transport fault (end of stream, broken pipe, undecodable line) closes
    the session: every pending request fails with the same error and
    ``on_closed`` is invoked once.
    """

    def __init__(
        self,
        transport: BaseTransport,
        server_name: str,
        settings: Settings | None = None,
        on_notification: NotificationHandler | None = None,
        on_closed: ClosedCallback | None = None,
    ) -> None:
        self._transport = transport
        self._server_name = server_name
        self._settings = settings or get_settings()
        self._on_notification = on_notification
        self._on_closed = on_closed

        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[JsonRpcResponse]] = {}
        self._reader_task: asyncio.Task[None] | None = None
        self._closed = False
        self._close_cause: MCPError | None = None

        self.server_info: dict[str, Any] | None = None
        self.capabilities: dict[str, Any] = {}
        self.protocol_version: str | None = None
        self.instructions: str | None = None

    @property
    def server_name(self) -> str:
        return self._server_name

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def close_cause(self) -> MCPError | None:
        """Why the session closed, or None while it is open."""
        return self._close_cause

    @property
    def pending_count(self) -> int:
        """Number of requests still waiting for an answer."""
        return len(self._pending)

    async def start(self) -> None:
        """Start the transport and the background reader."""
        await self._transport.start()
        self._reader_task = asyncio.create_task(
            self._read_loop(), name=f"mcp-reader-{self._server_name}"
        )

    async def initialize(self, timeout: float | None = None) -> dict[str, Any]:
        """
        Perform the MCP initialize handshake.

        Sends ``initialize``, records what the server reported and then sends
        ``notifications/initialized``. A server answering with a different
        protocol revision is accepted with a warning.

        Raises:
            MCPHandshakeError: On timeout or an unusable initialize result.
            MCPTransportError: If the transport fails during the handshake.
        """
        timeout = timeout or self._settings.mcp_handshake_timeout
        params = {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": {
                "name": self._settings.mcp_client_name,
                "version": self._settings.mcp_client_version,
            },
        }
        try:
            result = await self.request("initialize", params, timeout=timeout)
        except MCPTimeoutError as e:
            raise MCPHandshakeError(
                f"server '{self._server_name}' did not answer initialize within {timeout}s"
            ) from e
        except MCPProtocolError as e:
            raise MCPHandshakeError(f"invalid initialize response: {e}") from e

        if not isinstance(result, dict):
            raise MCPHandshakeError(f"initialize result is not an object: {result!r}")

        protocol_version = result.get("protocolVersion")
        if not isinstance(protocol_version, str):
            raise MCPHandshakeError("initialize result has no protocolVersion")
        if protocol_version != MCP_PROTOCOL_VERSION:
            logger.warning(
                f"MCP server '{self._server_name}' speaks protocol {protocol_version}, "
                f"client requested {MCP_PROTOCOL_VERSION}; continuing"
            )

        server_info = result.get("serverInfo")
        capabilities = result.get("capabilities")
        instructions = result.get("instructions")
        self.protocol_version = protocol_version
        self.server_info = server_info if isinstance(server_info, dict) else None
        self.capabilities = capabilities if isinstance(capabilities, dict) else {}
        self.instructions = instructions if isinstance(instructions, str) else None

        await self.notify("notifications/initialized")
        return result

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Send a request and wait for its result.

        The pending slot is released on every exit path: answer, error,
        timeout and cancellation of the awaiting task.

        Raises:
            MCPRpcError: The server answered with an error object.
            MCPTimeoutError: No answer within ``timeout`` seconds.
            MCPTransportError: The session is closed or the transport failed.
            MCPCancelledError: The session was closed while waiting.
        """
        if self._closed:
            raise self._closed_error()

        timeout = timeout or self._settings.mcp_request_timeout
        request_id = next(self._ids)
        future: asyncio.Future[JsonRpcResponse] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            try:
                await self._transport.send(JsonRpcRequest(request_id, method, params).to_dict())
            except MCPTransportError as e:
                self._pending.pop(request_id, None)
                self._close(e)
                raise

            try:
                response = await asyncio.wait_for(future, timeout=timeout)
            except TimeoutError:
                logger.warning(
                    f"MCP request '{method}' (id={request_id}) to '{self._server_name}' "
                    f"timed out after {timeout}s"
                )
                await self._send_cancelled(request_id, "timeout")
                raise MCPTimeoutError(method, timeout) from None
            return response.unwrap()
        finally:
            self._pending.pop(request_id, None)

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """
        Send a notification.

        Raises:
            MCPTransportError: If the session is closed or the write fails.
        """
        if self._closed:
            raise self._closed_error()
        try:
            await self._transport.send(JsonRpcNotification(method, params).to_dict())
        except MCPTransportError as e:
            self._close(e)
            raise

    async def close(self) -> None:
        """
        Close the session and stop the transport.

        Pending requests fail with MCPCancelledError. Idempotent.
        """
        closed_by_fault = self._closed
        if not self._closed:
            self._close(MCPCancelledError(f"session with '{self._server_name}' closed"))

        task = self._reader_task
        self._reader_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            if closed_by_fault:
                # The reader may already be stopping the transport itself
                await asyncio.wait({task}, timeout=self._settings.mcp_shutdown_timeout)
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._transport.stop()

    # === internals ===

    def _closed_error(self) -> MCPError:
        cause = self._close_cause
        if isinstance(cause, MCPTransportError):
            return MCPTransportClosedError(f"session with '{self._server_name}' is closed: {cause}")
        return MCPTransportClosedError(f"session with '{self._server_name}' is closed")

    def _close(self, cause: MCPError) -> None:
        """Mark the session closed, fail pending requests and notify the owner once."""
        if self._closed:
            return
        self._closed = True
        self._close_cause = cause

        for future in list(self._pending.values()):
            if not future.done():
                future.set_exception(cause)
        self._pending.clear()

        if self._on_closed is not None:
            self._on_closed(cause)

    async def _send_cancelled(self, request_id: int, reason: str) -> None:
        """Tell the server we stopped waiting for a request (best effort)."""
        if self._closed:
            return
        try:
            await self.notify(
                "notifications/cancelled", {"requestId": request_id, "reason": reason}
            )
        except MCPTransportError as e:
            logger.debug(f"Could not send cancellation for request {request_id}: {e}")

    async def _read_loop(self) -> None:
        """Background task: read messages until the transport fails or closes."""
        while not self._closed:
            try:
                message = await self._transport.receive()
            except MCPProtocolError as e:
                logger.error(f"MCP server '{self._server_name}' sent an invalid message: {e}")
                self._close(e)
            except MCPTransportError as e:
                logger.info(f"MCP server '{self._server_name}' transport closed: {e}")
                self._close(e)
            else:
                await self._dispatch(message)

        # Closed by a fault: release the process now rather than waiting for close()
        await self._transport.stop()

    async def _dispatch(self, message: ServerMessage) -> None:
        if message.kind == MessageKind.RESPONSE:
            self._handle_response(message)
        elif message.kind == MessageKind.NOTIFICATION:
            await self._handle_notification(message)
        else:
            await self._handle_server_request(message)

    def _handle_response(self, message: ServerMessage) -> None:
        request_id = message.id
        # bool is an int subclass; True must not match request 1
        if isinstance(request_id, bool) or not isinstance(request_id, int):
            logger.warning(
                f"MCP server '{self._server_name}' sent a response with unusable id "
                f"{request_id!r}, dropped"
            )
            return

        future = self._pending.get(request_id)
        if future is None or future.done():
            logger.debug(
                f"MCP server '{self._server_name}' answered unknown or abandoned request "
                f"{request_id}, dropped"
            )
            return
        future.set_result(message.as_response())

    async def _handle_notification(self, message: ServerMessage) -> None:
        method = message.method or ""
        logger.debug(f"MCP server '{self._server_name}' notification: {method}")
        if self._on_notification is None:
            return
        try:
            await self._on_notification(method, message.params)
        except Exception:
            logger.exception(
                f"Notification handler for '{method}' from '{self._server_name}' failed"
            )

    async def _handle_server_request(self, message: ServerMessage) -> None:
        """Answer requests initiated by the server."""
        method = message.method
        if method == "ping":
            response = JsonRpcResponse(id=message.id, result={})
        else:
            logger.debug(
                f"MCP server '{self._server_name}' sent unsupported request '{method}'"
            )
            response = JsonRpcResponse(
                id=message.id,
                error={
                    "code": ErrorCode.METHOD_NOT_FOUND,
                    "message": f"Method not found: {method}",
                },
            )
        try:
            await self._transport.send(response.to_dict())
        except MCPTransportError as e:
            self._close(e)
