"""
Tool Base Classes (MCP-Aligned).

Synthesized operations are exported to tool-calling hosts through this
small contract:
- Tool: name, description, input_schema, annotations, execute()
- ToolResult: content blocks plus an is_error flag
- ToolAnnotations: advisory behavioral hints
- ContentBlock: one piece of result content

Tools report failures IN the ToolResult rather than raising, so a host
can show the message to whoever invoked the operation.

Usage:
    tool = registry.get_tools()[0]
    result = await tool.execute({"id": "00000000-0000-0000-0000-000000000001"})
    if result.is_error:
        print(result.text)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ContentType(Enum):
    """Type of content in a tool result."""

    TEXT = "text"
    RESOURCE_LINK = "resource_link"


@dataclass(frozen=True, slots=True)
class ContentBlock:
    """
    Content block in a tool result.

    Example:
        ContentBlock.from_text("Record created")
        ContentBlock.from_resource_link(
            "https://contoso.crm.dynamics.com/api/data/v9.2/accounts(1234)",
            name="account",
        )
    """

    type: ContentType
    text_content: str | None = None
    uri: str | None = None
    name: str | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_text(
        cls,
        content: str,
        *,
        annotations: dict[str, Any] | None = None,
    ) -> ContentBlock:
        """Create a text content block."""
        return cls(
            type=ContentType.TEXT,
            text_content=content,
            annotations=annotations or {},
        )

    @classmethod
    def from_resource_link(cls, uri: str, name: str | None = None) -> ContentBlock:
        """Create a link to a remote record."""
        return cls(type=ContentType.RESOURCE_LINK, uri=uri, name=name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {"type": self.type.value}

        if self.text_content is not None:
            result["text"] = self.text_content
        if self.uri is not None:
            result["uri"] = self.uri
        if self.name is not None:
            result["name"] = self.name
        if self.annotations:
            result["annotations"] = self.annotations

        return result


@dataclass(frozen=True, slots=True)
class ToolAnnotations:
    """
    Behavioral hints for tools.

    ADVISORY only. A read-only hint on a list operation does not stop
    anyone from calling a delete.
    """

    title: str | None = None
    read_only_hint: bool = False
    destructive_hint: bool = True
    idempotent_hint: bool = False
    open_world_hint: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization (camelCase keys, defaults omitted)."""
        result: dict[str, Any] = {}

        if self.title is not None:
            result["title"] = self.title
        if self.read_only_hint:
            result["readOnlyHint"] = True
        if not self.destructive_hint:
            result["destructiveHint"] = False
        if self.idempotent_hint:
            result["idempotentHint"] = True
        if self.open_world_hint:
            result["openWorldHint"] = True

        return result


@dataclass(frozen=True, slots=True)
class ToolResult:
    """
    Result from tool execution.

    Example:
        ToolResult.success("Found 3 records", structured={"value": [...]})
        ToolResult.error("Operation 'read_contact' not found")
    """

    content: tuple[ContentBlock, ...]
    is_error: bool = False
    structured_content: dict[str, Any] | None = None

    @classmethod
    def success(
        cls,
        text: str,
        *,
        structured: dict[str, Any] | None = None,
        additional_content: tuple[ContentBlock, ...] | None = None,
    ) -> ToolResult:
        """Create a successful result."""
        content = [ContentBlock.from_text(text)]
        if additional_content:
            content.extend(additional_content)

        return cls(
            content=tuple(content),
            is_error=False,
            structured_content=structured,
        )

    @classmethod
    def error(
        cls,
        message: str,
        *,
        structured: dict[str, Any] | None = None,
    ) -> ToolResult:
        """Create an error result."""
        return cls(
            content=(ContentBlock.from_text(f"Error: {message}"),),
            is_error=True,
            structured_content=structured,
        )

    @property
    def text(self) -> str:
        """Primary text content."""
        for block in self.content:
            if block.type == ContentType.TEXT and block.text_content:
                return block.text_content
        return ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "content": [block.to_dict() for block in self.content],
        }

        if self.is_error:
            result["isError"] = True
        if self.structured_content is not None:
            result["structuredContent"] = self.structured_content

        return result


class Tool(ABC):
    """
    Base class for exported tools.

    Contract:
        - name: Unique identifier (snake_case)
        - description: What the tool does, for whoever selects tools
        - input_schema: JSON Schema object for arguments
        - execute: Async method that performs the action
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for the tool."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what the tool does."""
        ...

    @property
    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        """
        JSON Schema defining expected input arguments.

        Must have type "object", a "properties" dict, and a
        "required" list.
        """
        ...

    @property
    def annotations(self) -> ToolAnnotations:
        """Behavioral hints for the tool."""
        return ToolAnnotations()

    @abstractmethod
    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        """
        Execute the tool with the given arguments.

        Report errors in ToolResult.error(); do not raise.
        """
        ...

    def to_llm_schema(self) -> dict[str, Any]:
        """Schema for LLM tool calling (name, description, input_schema)."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_mcp_schema(self) -> dict[str, Any]:
        """Full MCP tool schema including annotations."""
        schema = self.to_llm_schema()

        annotations = self.annotations.to_dict()
        if annotations:
            schema["annotations"] = annotations

        return schema

    def __repr__(self) -> str:
        return f"<Tool {self.name}>"
