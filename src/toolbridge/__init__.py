"""
toolbridge: MCP client integration layer.

Connects an agent to external MCP tool servers and presents their tools
through the same ToolPort interface as built-in tools.
"""

__version__ = "0.1.0"
