"""Core abstractions: result envelopes, content blocks, and tool descriptors.

Every tool invocation produces a ResultEnvelope: an ordered sequence of
text blocks. A ToolDescriptor binds a unique name to a description, a
pydantic parameter schema, and an async handler.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TextContent(BaseModel):
    """A single text block inside a result envelope."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ResultEnvelope(BaseModel):
    """Uniform result wrapper returned by every tool.

    A failed tool call is still a valid envelope; its text describes the
    failure (``Error: ...``).

    Example:
        >>> env = ResultEnvelope.text("No labels found.")
        >>> env.joined
        'No labels found.'
    """

    model_config = ConfigDict(frozen=True)

    content: tuple[TextContent, ...] = ()

    @classmethod
    def text(cls, *texts: str) -> ResultEnvelope:
        """Build an envelope with one text block per argument."""
        return cls(content=tuple(TextContent(text=t) for t in texts))

    @property
    def joined(self) -> str:
        """All block texts joined by newlines."""
        return "\n".join(block.text for block in self.content)

    def to_mcp(self) -> dict[str, Any]:
        """Wire shape used by MCP and the REST adapter."""
        return self.model_dump(mode="json")


class EmptyParams(BaseModel):
    """Parameter schema for tools with no inputs."""

    model_config = ConfigDict(extra="forbid")


Handler: TypeAlias = Callable[[Any], Awaitable[ResultEnvelope]]


class ToolDescriptor(BaseModel):
    """Immutable registration record for a tool.

    Attributes:
        name: Unique identifier (snake_case, e.g., "search_emails")
        description: What the tool does (shown to the client for selection)
        params_schema: Pydantic model validating raw arguments
        handler: Async callable receiving the validated params model
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    description: str = Field(..., min_length=10)
    params_schema: type[BaseModel] = EmptyParams
    handler: Handler

    @field_validator("params_schema")
    @classmethod
    def _schema_is_model(cls, v: type[BaseModel]) -> type[BaseModel]:
        if not (isinstance(v, type) and issubclass(v, BaseModel)):
            raise ValueError("params_schema must be a pydantic BaseModel subclass")
        return v

    def input_schema(self) -> dict[str, Any]:
        """JSON schema for the tool's parameters, cleaned for MCP clients."""
        schema = self.params_schema.model_json_schema()
        schema.pop("title", None)
        schema.pop("additionalProperties", None)
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema
