"""Unit tests for MCP domain models."""

import pytest

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
    parse_content_item,
)
from toolbridge.domain.model.mcp.transport import TransportType
from toolbridge.domain.ports.tool_port import ToolResult


class TestTransportType:
    def test_normalize(self):
        assert TransportType.normalize("STDIO") == TransportType.STDIO
        assert TransportType.normalize(" local ") == TransportType.STDIO
        assert TransportType.normalize("websocket") == TransportType.WEBSOCKET

    def test_normalize_unknown(self):
        with pytest.raises(ValueError):
            TransportType.normalize("smoke-signal")


class TestServerDescriptor:
    def test_argv_and_endpoint(self):
        descriptor = ServerDescriptor(name="fs", command="mcp-fs", args=["--root", "/tmp"])

        assert descriptor.args == ("--root", "/tmp")
        assert descriptor.argv == ["mcp-fs", "--root", "/tmp"]
        assert descriptor.endpoint == "mcp-fs --root /tmp"

    def test_defaults(self):
        descriptor = ServerDescriptor(name="fs", command="mcp-fs")

        assert descriptor.transport == TransportType.STDIO
        assert descriptor.trust_level == TrustLevel.UNTRUSTED
        assert dict(descriptor.env) == {}
        assert descriptor.timeout is None

    def test_to_dict(self):
        descriptor = ServerDescriptor(name="fs", command="mcp-fs", env={"A": "1"})
        data = descriptor.to_dict()

        assert data["env"] == {"A": "1"}
        assert data["transport"] == "stdio"
        assert data["trust_level"] == "untrusted"


class TestToolAnnotations:
    def test_reads_camel_case_hints(self):
        annotations = ToolAnnotations.from_dict(
            {"readOnlyHint": True, "destructiveHint": False, "openWorldHint": True}
        )

        assert annotations.read_only is True
        assert annotations.destructive is False
        assert annotations.idempotent is False
        assert annotations.open_world is True

    def test_missing_or_invalid_defaults_to_false(self):
        assert ToolAnnotations.from_dict(None) == ToolAnnotations()
        assert ToolAnnotations.from_dict({"readOnlyHint": "yes"}).read_only is False


class TestMCPToolSchema:
    def test_from_dict(self):
        tool = MCPToolSchema.from_dict(
            {
                "name": "search",
                "description": "Search the index",
                "inputSchema": {"type": "object", "properties": {"q": {"type": "string"}}},
                "annotations": {"readOnlyHint": True},
            }
        )

        assert tool.name == "search"
        assert tool.description == "Search the index"
        assert tool.input_schema["properties"]["q"]["type"] == "string"
        assert tool.annotations.read_only is True

    def test_from_dict_minimal(self):
        tool = MCPToolSchema.from_dict({"name": "ping"})

        assert tool.description is None
        assert tool.input_schema == {}
        assert tool.annotations == ToolAnnotations()

    def test_from_dict_requires_name(self):
        with pytest.raises(ValueError):
            MCPToolSchema.from_dict({"description": "nameless"})

    def test_round_trip_keys(self):
        data = MCPToolSchema(name="t", input_schema={"type": "object"}).to_dict()
        assert data["inputSchema"] == {"type": "object"}
        assert data["annotations"]["readOnlyHint"] is False


class TestMCPResourceSchema:
    def test_from_dict(self):
        resource = MCPResourceSchema.from_dict(
            {"uri": "file:///a.txt", "name": "a", "mimeType": "text/plain"}
        )
        assert resource.uri == "file:///a.txt"
        assert resource.mime_type == "text/plain"

    def test_name_falls_back_to_uri(self):
        assert MCPResourceSchema.from_dict({"uri": "mem://x"}).name == "mem://x"

    def test_wrongly_typed_optional_fields_dropped(self):
        resource = MCPResourceSchema.from_dict({"uri": "mem://a", "description": 1, "mimeType": 2})
        assert resource.description is None
        assert resource.mime_type is None


class TestContentParsing:
    def test_text(self):
        assert parse_content_item({"type": "text", "text": "hi"}) == TextContent(text="hi")

    def test_image(self):
        item = parse_content_item({"type": "image", "data": "AAAA", "mimeType": "image/png"})
        assert item == ImageContent(data="AAAA", mime_type="image/png")
        assert item.type == "image"

    def test_resource(self):
        item = parse_content_item(
            {"type": "resource", "resource": {"uri": "mem://a", "blob": "AQID"}}
        )
        assert isinstance(item, ResourceContent)
        assert item.uri == "mem://a"
        assert item.blob == "AQID"
        assert item.text is None

    def test_unknown_type_becomes_placeholder(self):
        item = parse_content_item({"type": "audio", "data": "...", "mimeType": "audio/wav"})
        assert item == TextContent(text="[Unsupported content: audio]")

    @pytest.mark.parametrize(
        "item",
        [
            "not an object",
            {"type": "text"},
            {"type": "image", "data": "AAAA"},
            {"type": "resource"},
            {"type": "resource", "resource": {"text": "no uri"}},
            {"type": "resource", "resource": {"uri": "u", "text": 5}},
            {"type": "resource", "resource": {"uri": "u", "blob": 7}},
            {"type": "resource", "resource": {"uri": "u", "blob": [1, 2]}},
            {"type": "resource", "resource": {"uri": "u", "mimeType": 3}},
        ],
    )
    def test_malformed_items_rejected(self, item):
        with pytest.raises(ValueError):
            parse_content_item(item)


class TestMCPToolResult:
    def test_from_dict_keeps_order(self):
        result = MCPToolResult.from_dict(
            {
                "content": [
                    {"type": "text", "text": "one"},
                    {"type": "image", "data": "AA", "mimeType": "image/gif"},
                    {"type": "text", "text": "two"},
                ],
                "isError": False,
            }
        )

        assert [item.type for item in result.content] == ["text", "image", "text"]
        assert result.is_error is False

    def test_is_error_flag(self):
        result = MCPToolResult.from_dict({"content": [], "isError": True})
        assert result.is_error is True
        assert result.content == ()

    def test_missing_content_is_empty(self):
        assert MCPToolResult.from_dict({}).content == ()

    def test_bad_resource_field_rejects_whole_result(self):
        with pytest.raises(ValueError):
            MCPToolResult.from_dict(
                {"content": [{"type": "resource", "resource": {"uri": "u", "text": 5}}]}
            )

    def test_resource_bytes_blob_accepted(self):
        item = ResourceContent.from_dict({"uri": "u", "blob": b"\x01\x02"})
        assert item.blob == b"\x01\x02"

    @pytest.mark.parametrize("data", [None, [], {"content": "text"}])
    def test_malformed_result_rejected(self, data):
        with pytest.raises(ValueError):
            MCPToolResult.from_dict(data)


class TestConnectionStatus:
    def test_factories(self):
        assert ConnectionStatus.connecting().state == ConnectionState.CONNECTING
        assert ConnectionStatus.connected().is_connected is True
        failed = ConnectionStatus.failed("spawn failed")
        assert failed.state == ConnectionState.FAILED
        assert failed.cause == "spawn failed"
        assert str(failed) == "failed (spawn failed)"
        assert str(ConnectionStatus.disconnected()) == "disconnected"

    def test_state_properties(self):
        assert ConnectionState.CONNECTING.is_active
        assert not ConnectionState.FAILED.is_active
        assert ConnectionState.FAILED.is_settled
        assert not ConnectionState.CONNECTING.is_settled

    def test_immutable(self):
        status = ConnectionStatus.connected()
        with pytest.raises(AttributeError):
            status.state = ConnectionState.FAILED


class TestConnectionInfo:
    def test_lifecycle(self):
        info = ConnectionInfo(server_name="fs", endpoint="mcp-fs")
        assert info.state == ConnectionState.DISCONNECTED
        assert info.connection_duration_seconds is None

        connected = info.mark_connected(
            server_info={"name": "fs"}, protocol_version="2025-11-25", tool_count=3
        )
        assert connected.is_connected
        assert connected.tool_count == 3
        assert connected.connected_at is not None
        assert info.state == ConnectionState.DISCONNECTED  # original untouched

        dropped = connected.mark_disconnected("process exited")
        assert dropped.state == ConnectionState.DISCONNECTED
        assert dropped.status.cause == "process exited"
        assert dropped.connection_duration_seconds >= 0

    def test_mark_failed_to_dict(self):
        info = ConnectionInfo(server_name="fs", endpoint="mcp-fs").mark_failed("timeout")
        data = info.to_dict()

        assert data["state"] == "failed"
        assert data["cause"] == "timeout"
        assert data["connected_at"] is None


class TestToolResult:
    def test_success_and_error(self):
        assert ToolResult.success("ok") == ToolResult(output="ok", is_error=False)
        assert ToolResult.error("bad").is_error is True
        assert ToolResult.error("bad").to_dict() == {"output": "bad", "is_error": True}
