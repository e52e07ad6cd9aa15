"""Unit tests for the MCP transport layer."""

import asyncio

import pytest

from toolbridge.domain.model.mcp.server import ServerDescriptor
from toolbridge.domain.model.mcp.transport import TransportType
from toolbridge.infrastructure.mcp.errors import (
    MCPSpawnError,
    MCPTransportClosedError,
    MCPTransportError,
)
from toolbridge.infrastructure.mcp.protocol import MessageKind
from toolbridge.infrastructure.mcp.transport.factory import TransportFactory
from toolbridge.infrastructure.mcp.transport.stdio import StdioTransport

# ============================================================================
# TransportFactory Tests
# ============================================================================


class TestTransportFactory:
    """Tests for TransportFactory."""

    def test_supports_stdio(self):
        assert TransportFactory.supports("stdio") is True
        assert TransportFactory.supports("local") is True
        assert TransportFactory.supports(TransportType.STDIO) is True

    def test_does_not_support_unimplemented_transports(self):
        assert TransportFactory.supports("websocket") is False
        assert TransportFactory.supports("unknown") is False

    def test_get_supported_types(self):
        assert "stdio" in TransportFactory.get_supported_types()

    def test_create_stdio_transport(self, settings):
        descriptor = ServerDescriptor(name="t", command="uvx", args=("test",))
        transport = TransportFactory.create(descriptor, settings)

        assert isinstance(transport, StdioTransport)
        assert not transport.is_open

    def test_create_unsupported_raises(self, settings):
        descriptor = ServerDescriptor(name="t", command="x", transport=TransportType.HTTP)

        with pytest.raises(MCPTransportError, match="Unsupported transport type: http"):
            TransportFactory.create(descriptor, settings)

    def test_register_custom_transport(self, settings):
        class CustomTransport(StdioTransport):
            pass

        TransportFactory.register(TransportType.SSE, CustomTransport)
        try:
            descriptor = ServerDescriptor(name="t", command="x", transport=TransportType.SSE)
            assert isinstance(TransportFactory.create(descriptor, settings), CustomTransport)
            assert TransportFactory.supports("sse") is True
        finally:
            TransportFactory.unregister(TransportType.SSE)


# ============================================================================
# StdioTransport Tests
# ============================================================================


class TestStdioTransport:
    """Tests for StdioTransport against the mock server."""

    @pytest.mark.asyncio
    async def test_spawn_failure(self, settings):
        descriptor = ServerDescriptor(name="missing", command="/nonexistent/mcp-server-binary")
        transport = StdioTransport(descriptor, settings)

        with pytest.raises(MCPSpawnError) as exc_info:
            await transport.start()

        assert "/nonexistent/mcp-server-binary" in str(exc_info.value)
        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_send_when_not_started(self, settings):
        transport = StdioTransport(ServerDescriptor(name="t", command="x"), settings)

        with pytest.raises(MCPTransportClosedError):
            await transport.send({"jsonrpc": "2.0", "method": "ping", "id": 1})

    @pytest.mark.asyncio
    async def test_request_response(self, settings, mock_server_descriptor):
        transport = StdioTransport(mock_server_descriptor(), settings)

        async with transport:
            assert transport.is_open
            assert transport.pid is not None
            await transport.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})
            message = await asyncio.wait_for(transport.receive(), timeout=5)

        assert message.kind == MessageKind.RESPONSE
        assert message.id == 1
        assert message.as_response().result == {}
        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_environment_overrides_reach_server(self, settings, mock_server_descriptor):
        transport = StdioTransport(
            mock_server_descriptor(env={"MOCK_CUSTOM_VALUE": "from-descriptor"}), settings
        )

        async with transport:
            await transport.send(
                {
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "tools/call",
                    "params": {"name": "env", "arguments": {"name": "MOCK_CUSTOM_VALUE"}},
                }
            )
            message = await asyncio.wait_for(transport.receive(), timeout=5)

        assert message.as_response().result["content"][0]["text"] == "from-descriptor"

    @pytest.mark.asyncio
    async def test_process_exit_is_end_of_stream(self, settings, mock_server_descriptor):
        descriptor = mock_server_descriptor(env={"MOCK_MCP_EXIT_ON_START": "1"})
        transport = StdioTransport(descriptor, settings)

        await transport.start()
        try:
            with pytest.raises(MCPTransportClosedError):
                await asyncio.wait_for(transport.receive(), timeout=5)
        finally:
            await transport.stop()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, settings, mock_server_descriptor):
        transport = StdioTransport(mock_server_descriptor(), settings)

        await transport.start()
        await transport.stop()
        await transport.stop()

        assert not transport.is_open
        assert transport.returncode is None  # process handle released
