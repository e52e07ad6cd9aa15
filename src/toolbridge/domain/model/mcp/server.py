"""
MCP Server Domain Models.

A ServerDescriptor is the resolved, immutable launch description of one
configured MCP server. It is produced once from raw configuration with
``${VAR}`` expansion already applied.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from toolbridge.domain.model.mcp.transport import TransportType


class TrustLevel(str, Enum):
    """Per-server trust classification consumed by the permission layer."""

    TRUSTED = "trusted"
    UNTRUSTED = "untrusted"
    SANDBOX = "sandbox"


@dataclass(frozen=True)
class ServerDescriptor:
    """
    Resolved MCP server launch description.

    Identity is the server name, unique within one configuration.
    """

    name: str
    command: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    transport: TransportType = TransportType.STDIO
    trust_level: TrustLevel = TrustLevel.UNTRUSTED
    timeout: float | None = None  # seconds, overrides the request timeout

    def __post_init__(self):
        # Freeze the containers so the descriptor cannot drift after resolution.
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    @property
    def argv(self) -> list[str]:
        """Full command line (command followed by args)."""
        return [self.command, *self.args]

    @property
    def endpoint(self) -> str:
        """Human readable endpoint used in logs and connection info."""
        return " ".join(self.argv)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for diagnostics."""
        return {
            "name": self.name,
            "command": self.command,
            "args": list(self.args),
            "env": dict(self.env),
            "transport": self.transport.value,
            "trust_level": self.trust_level.value,
            "timeout": self.timeout,
        }
