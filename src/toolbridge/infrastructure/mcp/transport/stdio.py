"""
Stdio transport for MCP.

Launches the MCP server as a subprocess and exchanges newline-delimited
JSON-RPC messages over its stdin/stdout.
"""

import asyncio
import logging
import os
from typing import Any

from toolbridge.configuration.config import Settings, get_settings
from toolbridge.domain.model.mcp.server import ServerDescriptor
from toolbridge.infrastructure.mcp.errors import (
    MCPProtocolError,
    MCPSpawnError,
    MCPTransportClosedError,
)
from toolbridge.infrastructure.mcp.protocol import (
    ServerMessage,
    encode_message,
    parse_server_message,
)
from toolbridge.infrastructure.mcp.transport.base import BaseTransport

logger = logging.getLogger(__name__)


class StdioTransport(BaseTransport):
    """
    MCP transport using stdio (subprocess communication).

    The child runs in its own session so signals aimed at the host's
    process group are not forwarded to it. Its stderr is drained in the
    background and logged under the server's name.
    """

    def __init__(self, descriptor: ServerDescriptor, settings: Settings | None = None) -> None:
        super().__init__(descriptor)
        self._settings = settings or get_settings()
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._stderr_logger = logging.getLogger(f"{__name__}.{descriptor.name}")

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process else None

    async def start(self) -> None:
        """Start the server subprocess."""
        if self._is_open:
            logger.debug("Stdio transport already started")
            return

        descriptor = self._descriptor
        env = {**os.environ, **descriptor.env}

        logger.info(f"Starting MCP server '{descriptor.name}': {descriptor.endpoint}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                descriptor.command,
                *descriptor.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                limit=self._settings.mcp_stdout_limit,
                start_new_session=True,
            )
        except OSError as e:
            raise MCPSpawnError(descriptor.command, str(e)) from e

        self._is_open = True
        self._stderr_task = asyncio.create_task(
            self._drain_stderr(), name=f"mcp-stderr-{descriptor.name}"
        )
        logger.info(f"Started MCP server '{descriptor.name}' (pid={self._process.pid})")

    async def _drain_stderr(self) -> None:
        """Log the server's stderr line by line until it closes."""
        assert self._process is not None and self._process.stderr is not None
        stream = self._process.stderr
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # Over-long stderr line; drop what is buffered and keep going
                await stream.read(self._settings.mcp_stdout_limit)
                continue
            if not line:
                break
            self._stderr_logger.debug(line.decode("utf-8", errors="replace").rstrip())

    async def stop(self) -> None:
        """Close stdin, give the server a moment to exit, then terminate it."""
        if self._process is None:
            self._is_open = False
            return

        self._is_open = False
        process = self._process
        self._process = None
        timeout = self._settings.mcp_shutdown_timeout

        try:
            if process.stdin and not process.stdin.is_closing():
                process.stdin.close()
            if process.returncode is None:
                try:
                    await asyncio.wait_for(process.wait(), timeout=timeout)
                except TimeoutError:
                    process.terminate()
                    try:
                        await asyncio.wait_for(process.wait(), timeout=timeout)
                    except TimeoutError:
                        logger.warning(
                            f"MCP server '{self._descriptor.name}' did not terminate, killing"
                        )
                        process.kill()
                        await process.wait()
        except ProcessLookupError:
            pass
        finally:
            if self._stderr_task is not None:
                self._stderr_task.cancel()
                try:
                    await self._stderr_task
                except asyncio.CancelledError:
                    pass
                self._stderr_task = None

        logger.info(
            f"Stdio transport for '{self._descriptor.name}' stopped "
            f"(exit code {process.returncode})"
        )

    async def send(self, message: dict[str, Any]) -> None:
        """Write one message to the subprocess stdin."""
        process = self._process
        if not self._is_open or process is None or process.stdin is None:
            raise MCPTransportClosedError("Transport not connected")

        logger.debug(
            f"[{self._descriptor.name}] -> {message.get('method', 'response')} "
            f"(id={message.get('id')})"
        )
        try:
            process.stdin.write(encode_message(message))
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise MCPTransportClosedError(f"Server stdin closed: {e}") from e

    async def receive(self) -> ServerMessage:
        """
        Read the next message from subprocess stdout.

        Blank lines are skipped.
        """
        process = self._process
        if process is None or process.stdout is None:
            raise MCPTransportClosedError("Transport not connected")

        while True:
            try:
                line = await process.stdout.readline()
            except ValueError as e:
                raise MCPProtocolError(f"Message exceeds the stdout line limit: {e}") from e
            except (ConnectionResetError, BrokenPipeError) as e:
                raise MCPTransportClosedError(f"Server stdout closed: {e}") from e

            if not line:
                returncode = process.returncode
                if returncode is None:
                    raise MCPTransportClosedError("Server closed stdout")
                raise MCPTransportClosedError(f"Server process exited with code {returncode}")

            if not line.strip():
                continue

            logger.debug(f"[{self._descriptor.name}] <- {line[:200]!r}")
            message = parse_server_message(line)
            if message is not None:
                return message
