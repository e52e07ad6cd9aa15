"""
MCP Configuration Models.

Defines Pydantic models for the MCP fragment of the agent configuration
and the resolver that turns one server entry into a ServerDescriptor.

Example (as loaded from the host's config file):
    {
        "client_enabled": true,
        "servers": {
            "github": {
                "command": "npx",
                "args": ["-y", "@modelcontextprotocol/server-github"],
                "env": {"GITHUB_TOKEN": "${GITHUB_TOKEN}"},
                "permissions": {"trust_level": "trusted"}
            }
        }
    }
"""

import logging
import os
import re
from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from toolbridge.domain.model.mcp.server import ServerDescriptor, TrustLevel
from toolbridge.domain.model.mcp.transport import TransportType
from toolbridge.infrastructure.mcp.errors import MCPConfigError

logger = logging.getLogger(__name__)

_ENV_TOKEN = re.compile(r"\$\{([^}]*)\}")


def expand_env_vars(template: str, environ: Mapping[str, str] | None = None) -> str:
    """
    Expand ``${NAME}`` tokens using environment variables.

    A variable that is not set leaves its token as-is so the problem shows
    up in the server's output instead of failing startup. Expansion is a
    single pass: substituted values are not scanned again.
    """
    env = os.environ if environ is None else environ

    def _substitute(match: re.Match[str]) -> str:
        value = env.get(match.group(1))
        return match.group(0) if value is None else value

    return _ENV_TOKEN.sub(_substitute, template)


class McpServerPermissions(BaseModel):
    """Per-server permission configuration."""

    trust_level: TrustLevel = Field(
        default=TrustLevel.UNTRUSTED, description="trusted, untrusted or sandbox"
    )

    @field_validator("trust_level", mode="before")
    @classmethod
    def normalize_trust_level(cls, v: Any) -> Any:
        return v.lower().strip() if isinstance(v, str) else v


class McpServerConfig(BaseModel):
    """
    Configuration for a single MCP server.

    Example:
        {
            "command": "npx",
            "args": ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"],
            "env": {"DEBUG": "true"},
            "transport": "stdio",
            "timeout": 30000
        }
    """

    command: str = Field(..., min_length=1, description="Command to launch the server process")
    args: list[str] = Field(default_factory=list, description="Arguments to the command")
    env: dict[str, str] = Field(
        default_factory=dict, description="Environment variables set for the server process"
    )
    transport: TransportType = Field(default=TransportType.STDIO, description="Transport type")
    permissions: McpServerPermissions = Field(default_factory=McpServerPermissions)
    enabled: bool = Field(default=True, description="Enable or disable the server on startup")
    timeout: int | None = Field(
        default=None, gt=0, description="Request timeout in ms (default: settings value)"
    )

    @field_validator("transport", mode="before")
    @classmethod
    def normalize_transport(cls, v: Any) -> Any:
        if isinstance(v, str):
            return TransportType.normalize(v)
        return v


class McpConfig(BaseModel):
    """Top-level MCP configuration block."""

    client_enabled: bool = Field(default=True, description="Consume external MCP servers")
    servers: dict[str, McpServerConfig] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "McpConfig":
        """
        Build the configuration from a raw mapping.

        Each server entry is validated on its own: a malformed entry is
        logged and skipped without affecting the others.

        Raises:
            MCPConfigError: If the block itself (not a server entry) is malformed.
        """
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise MCPConfigError(f"MCP configuration must be a mapping, got {type(raw).__name__}")

        raw_servers = raw.get("servers") or {}
        if not isinstance(raw_servers, Mapping):
            raise MCPConfigError("MCP 'servers' must be a mapping of name to server entry")

        servers: dict[str, McpServerConfig] = {}
        for name, entry in raw_servers.items():
            try:
                servers[str(name)] = McpServerConfig.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"MCP server '{name}': invalid configuration, skipped: {e}")

        try:
            return cls(client_enabled=raw.get("client_enabled", True), servers=servers)
        except ValidationError as e:
            raise MCPConfigError(f"Invalid MCP configuration: {e}") from e


def resolve(
    name: str,
    config: McpServerConfig,
    environ: Mapping[str, str] | None = None,
) -> ServerDescriptor:
    """
    Resolve one server entry into an immutable ServerDescriptor.

    Applies ``${VAR}`` expansion to the command, each argument and each
    environment value. Performs no I/O and does not fail.
    """
    return ServerDescriptor(
        name=name,
        command=expand_env_vars(config.command, environ),
        args=tuple(expand_env_vars(arg, environ) for arg in config.args),
        env={key: expand_env_vars(value, environ) for key, value in config.env.items()},
        transport=config.transport,
        trust_level=config.permissions.trust_level,
        timeout=config.timeout / 1000.0 if config.timeout else None,
    )
