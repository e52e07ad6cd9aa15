"""Pytest configuration and shared fixtures for testing."""

import sys
from pathlib import Path
from typing import Any, Callable

import pytest

from toolbridge.configuration.config import Settings
from toolbridge.domain.model.mcp.server import ServerDescriptor
from toolbridge.domain.model.mcp.tool import MCPToolSchema, ToolAnnotations

MOCK_SERVER = Path(__file__).parent / "fixtures" / "mock_mcp_server.py"


@pytest.fixture
def settings() -> Settings:
    """Settings with short timeouts so failure paths finish quickly."""
    return Settings(
        TOOLBRIDGE_MCP_HANDSHAKE_TIMEOUT=5.0,
        TOOLBRIDGE_MCP_REQUEST_TIMEOUT=5.0,
        TOOLBRIDGE_MCP_SHUTDOWN_TIMEOUT=2.0,
    )


@pytest.fixture
def mock_server_config() -> Callable[..., dict[str, Any]]:
    """Build a raw server entry that launches the mock MCP server."""

    def _build(env: dict[str, str] | None = None, **extra: Any) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "command": sys.executable,
            "args": [str(MOCK_SERVER)],
            "env": env or {},
        }
        entry.update(extra)
        return entry

    return _build


@pytest.fixture
def mock_server_descriptor() -> Callable[..., ServerDescriptor]:
    """Build a ServerDescriptor for the mock MCP server."""

    def _build(name: str = "mock", env: dict[str, str] | None = None, **kwargs: Any):
        return ServerDescriptor(
            name=name,
            command=sys.executable,
            args=(str(MOCK_SERVER),),
            env=env or {},
            **kwargs,
        )

    return _build


@pytest.fixture
def sample_tool() -> MCPToolSchema:
    return MCPToolSchema(
        name="read_file",
        description="Read a file",
        input_schema={"type": "object", "properties": {"path": {"type": "string"}}},
        annotations=ToolAnnotations(read_only=True),
    )
