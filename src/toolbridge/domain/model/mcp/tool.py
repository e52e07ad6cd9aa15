"""
MCP Tool Domain Models.

Defines the tool schema captured at discovery time, the content items a
tool call can return, and the call result value object.
"""

from dataclasses import dataclass, field
from typing import Any, Union


def _hint(data: dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    return value if isinstance(value, bool) else False


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class ToolAnnotations:
    """
    Behaviour hints a server attaches to a tool.

    Each hint is independently optional and defaults to False. They are
    hints only: nothing here verifies what the remote tool actually does.
    """

    read_only: bool = False
    destructive: bool = False
    idempotent: bool = False
    open_world: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ToolAnnotations":
        """Create from the MCP ``annotations`` object (camelCase hint keys)."""
        if not isinstance(data, dict):
            return cls()
        return cls(
            read_only=_hint(data, "readOnlyHint"),
            destructive=_hint(data, "destructiveHint"),
            idempotent=_hint(data, "idempotentHint"),
            open_world=_hint(data, "openWorldHint"),
        )

    def to_dict(self) -> dict[str, bool]:
        return {
            "readOnlyHint": self.read_only,
            "destructiveHint": self.destructive,
            "idempotentHint": self.idempotent,
            "openWorldHint": self.open_world,
        }


@dataclass(frozen=True)
class MCPToolSchema:
    """
    MCP tool schema definition.

    Describes a tool's interface including its name, description,
    JSON Schema for input parameters and behaviour annotations. The input
    schema is kept as an opaque structure; its shape is only known to the
    server that published it.
    """

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = field(default_factory=dict)
    annotations: ToolAnnotations = field(default_factory=ToolAnnotations)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (MCP protocol format)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "annotations": self.annotations.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MCPToolSchema":
        """Create from dictionary (MCP protocol format).

        Raises:
            ValueError: If the entry has no usable tool name.
        """
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError(f"Tool definition without a name: {data!r}")
        description = data.get("description")
        input_schema = data.get("inputSchema", data.get("input_schema"))
        return cls(
            name=name,
            description=description if isinstance(description, str) else None,
            input_schema=input_schema if isinstance(input_schema, dict) else {},
            annotations=ToolAnnotations.from_dict(data.get("annotations")),
        )


@dataclass(frozen=True)
class MCPResourceSchema:
    """An MCP resource descriptor from ``resources/list``."""

    uri: str
    name: str
    description: str | None = None
    mime_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MCPResourceSchema":
        uri = data.get("uri")
        if not isinstance(uri, str):
            raise ValueError(f"Resource definition without a uri: {data!r}")
        return cls(
            uri=uri,
            name=str(data.get("name") or uri),
            description=_optional_str(data.get("description")),
            mime_type=_optional_str(data.get("mimeType")),
        )


# === Tool call content ===


@dataclass(frozen=True)
class TextContent:
    """Plain text content item."""

    text: str
    type: str = field(default="text", init=False)


@dataclass(frozen=True)
class ImageContent:
    """Image content item; ``data`` is the base64 payload as sent on the wire."""

    data: str
    mime_type: str
    type: str = field(default="image", init=False)


@dataclass(frozen=True)
class ResourceContent:
    """Embedded resource content item."""

    uri: str
    mime_type: str | None = None
    text: str | None = None
    blob: str | bytes | None = None
    type: str = field(default="resource", init=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourceContent":
        """Create from an MCP resource contents object.

        Raises:
            ValueError: If the uri is missing or a field has the wrong type.
        """
        uri = data.get("uri")
        if not isinstance(uri, str):
            raise ValueError(f"Resource content without a uri: {data!r}")
        mime_type = data.get("mimeType")
        text = data.get("text")
        blob = data.get("blob")
        if mime_type is not None and not isinstance(mime_type, str):
            raise ValueError(f"Resource mimeType must be a string: {mime_type!r}")
        if text is not None and not isinstance(text, str):
            raise ValueError(f"Resource text must be a string: {text!r}")
        if blob is not None and not isinstance(blob, (str, bytes)):
            raise ValueError(f"Resource blob must be a string: {blob!r}")
        return cls(uri=uri, mime_type=mime_type, text=text, blob=blob)


ToolCallContent = Union[TextContent, ImageContent, ResourceContent]


def parse_content_item(item: Any) -> ToolCallContent:
    """
    Parse one item of a ``tools/call`` result's ``content`` array.

    Content types this client does not model (audio, resource links, ...)
    are kept as a text placeholder so they stay visible in order.

    Raises:
        ValueError: If the item is structurally invalid for its type.
    """
    if not isinstance(item, dict):
        raise ValueError(f"Content item is not an object: {item!r}")

    content_type = item.get("type")
    if content_type == "text":
        text = item.get("text")
        if not isinstance(text, str):
            raise ValueError("Text content without a text field")
        return TextContent(text=text)
    if content_type == "image":
        data = item.get("data")
        mime_type = item.get("mimeType")
        if not isinstance(data, str) or not isinstance(mime_type, str):
            raise ValueError("Image content requires data and mimeType")
        return ImageContent(data=data, mime_type=mime_type)
    if content_type == "resource":
        resource = item.get("resource")
        if not isinstance(resource, dict):
            raise ValueError("Resource content without a resource object")
        return ResourceContent.from_dict(resource)
    return TextContent(text=f"[Unsupported content: {content_type}]")


@dataclass(frozen=True)
class MCPToolResult:
    """
    MCP tool execution result.

    An ordered sequence of content items plus the server's error flag.
    ``is_error`` marks an application-level failure reported by the tool;
    it says nothing about the health of the connection.
    """

    content: tuple[ToolCallContent, ...] = ()
    is_error: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "MCPToolResult":
        """Create from a ``tools/call`` result object.

        Raises:
            ValueError: If the result or one of its content items is malformed.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Tool call result is not an object: {data!r}")
        raw_content = data.get("content", [])
        if not isinstance(raw_content, list):
            raise ValueError("Tool call result content is not an array")
        is_error = data.get("isError", False)
        return cls(
            content=tuple(parse_content_item(item) for item in raw_content),
            is_error=is_error if isinstance(is_error, bool) else False,
        )
