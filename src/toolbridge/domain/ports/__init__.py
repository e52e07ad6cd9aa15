"""Domain ports."""

from toolbridge.domain.ports.tool_port import (
    RiskLevel,
    ToolCategory,
    ToolPort,
    ToolRegistryPort,
    ToolResult,
)

__all__ = ["RiskLevel", "ToolCategory", "ToolPort", "ToolRegistryPort", "ToolResult"]
