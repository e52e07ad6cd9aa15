"""
Tool Port - Domain layer interface for agent tools.

Defines the contract shared by built-in tools and tools adapted from
remote MCP servers. The agent only ever sees this interface, so a remote
tool is indistinguishable from a local one at the call site.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class ToolCategory(str, Enum):
    """Coarse classification used by the permission layer."""

    READ_ONLY = "read_only"  # Observes state, changes nothing
    WRITE = "write"  # Local file or state mutation
    EXECUTE = "execute"  # Code or shell execution
    NETWORK = "network"  # Reaches outside the local system


class RiskLevel(str, Enum):
    """How much care a tool invocation deserves before it runs."""

    SAFE = "safe"
    MODERATE = "moderate"
    DANGEROUS = "dangerous"


@dataclass(frozen=True)
class ToolResult:
    """Standard result from tool execution.

    Attributes:
        output: Text the agent reads back
        is_error: Whether the tool reported failure
    """

    output: str
    is_error: bool = False

    @staticmethod
    def success(output: str) -> "ToolResult":
        """Create a success result."""
        return ToolResult(output=output, is_error=False)

    @staticmethod
    def error(output: str) -> "ToolResult":
        """Create a failure result."""
        return ToolResult(output=output, is_error=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"output": self.output, "is_error": self.is_error}


@runtime_checkable
class ToolPort(Protocol):
    """
    Protocol for agent tools.

    Example:
        class WordCountTool:
            def name(self) -> str:
                return "word_count"

            def description(self) -> str:
                return "Count words in a text"

            def category(self) -> ToolCategory:
                return ToolCategory.READ_ONLY

            def parameters_schema(self) -> dict[str, Any]:
                return {"type": "object", "properties": {"text": {"type": "string"}}}

            def risk_level(self) -> RiskLevel:
                return RiskLevel.SAFE

            async def execute(self, arguments: dict[str, Any]) -> ToolResult:
                return ToolResult.success(str(len(arguments["text"].split())))
    """

    def name(self) -> str:
        """Unique tool name."""
        ...

    def description(self) -> str:
        """Human-readable description of what the tool does."""
        ...

    def category(self) -> ToolCategory:
        """Permission category of the tool."""
        ...

    def parameters_schema(self) -> dict[str, Any]:
        """JSON Schema for the tool's arguments."""
        ...

    def risk_level(self) -> RiskLevel:
        """Risk classification of the tool."""
        ...

    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        """
        Execute the tool with given arguments.

        Args:
            arguments: Tool arguments as a JSON object

        Returns:
            ToolResult with output or error text
        """
        ...


@runtime_checkable
class ToolRegistryPort(Protocol):
    """Anything tools can be registered into (owned by the embedding agent)."""

    def register(self, tool: ToolPort) -> None:
        ...
