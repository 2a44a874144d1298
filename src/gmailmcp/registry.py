"""Tool registry: registration, lookup, validation, and dispatch.

The registry provides:
- Tool registration and lookup by name (duplicates rejected)
- A freeze step fixing the catalog after initialization
- Argument validation against each tool's pydantic schema
- Middleware pipeline around handlers
- Tool listings with JSON input schemas for MCP clients
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from .core import EmptyParams, Handler, ResultEnvelope, ToolDescriptor
from .errors import DuplicateToolError, InvalidArgumentsError, RegistryFrozenError, UnknownToolError
from .middleware import Context, Middleware, Next, compose

logger = logging.getLogger("gmailmcp.registry")


def _error_fields(exc: ValidationError) -> list[str]:
    """Dotted field paths for every validation error, in order, without repeats."""
    fields: list[str] = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ()))
        if path and path not in fields:
            fields.append(path)
    return fields


def _error_detail(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())) or '<root>'}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )


class ToolRegistry:
    """Registry of the tools a session exposes.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register("list_labels", "List all Gmail labels", EmptyParams, handler)
        >>> registry.freeze()
        >>> envelope = await registry.invoke("list_labels", {})
    """

    __slots__ = ("_tools", "_middleware", "_chain", "_frozen")

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._middleware: list[Middleware] = []
        self._chain: Next | None = None
        self._frozen = False

    # ─────────────────────────────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────────────────────────────

    def register(
        self,
        name: str,
        description: str,
        schema: type[BaseModel] = EmptyParams,
        handler: Handler | None = None,
    ) -> ToolDescriptor:
        """Register a tool and return its descriptor.

        Raises:
            DuplicateToolError: name already registered
            RegistryFrozenError: catalog already fixed by freeze()
        """
        if self._frozen:
            raise RegistryFrozenError(name)
        if name in self._tools:
            raise DuplicateToolError(name)
        if handler is None:
            raise ValueError(f"Tool '{name}' needs a handler")
        descriptor = ToolDescriptor(name=name, description=description, params_schema=schema, handler=handler)
        self._tools[name] = descriptor
        logger.debug("registered tool %s", name)
        return descriptor

    def tool(self, name: str, description: str, schema: type[BaseModel] = EmptyParams):
        """Decorator form of register().

        Example:
            >>> @registry.tool("list_labels", "List all Gmail labels")
            ... async def list_labels(params: EmptyParams) -> ResultEnvelope: ...
        """
        def decorator(handler: Handler) -> Handler:
            self.register(name, description, schema, handler)
            return handler
        return decorator

    def freeze(self) -> None:
        """Fix the tool-name set; later register() calls fail."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ─────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def __getitem__(self, name: str) -> ToolDescriptor:
        """Get tool by name, raises UnknownToolError if not found."""
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    # ─────────────────────────────────────────────────────────────────
    # Middleware
    # ─────────────────────────────────────────────────────────────────

    def use(self, middleware: Middleware) -> None:
        """Add middleware to the execution pipeline (first added = outermost)."""
        self._middleware.append(middleware)
        self._chain = None

    def _get_chain(self) -> Next:
        if self._chain is None:
            self._chain = compose(self._middleware)
        return self._chain

    # ─────────────────────────────────────────────────────────────────
    # Dispatch
    # ─────────────────────────────────────────────────────────────────

    def validate(self, name: str, raw_arguments: Mapping[str, Any] | None) -> tuple[ToolDescriptor, BaseModel]:
        """Resolve a tool and validate its arguments without running it."""
        tool = self[name]
        try:
            params = tool.params_schema.model_validate(dict(raw_arguments or {}))
        except ValidationError as e:
            raise InvalidArgumentsError(name, _error_fields(e), _error_detail(e)) from e
        return tool, params

    async def invoke(
        self,
        name: str,
        raw_arguments: Mapping[str, Any] | None = None,
        *,
        ctx: Context | None = None,
    ) -> ResultEnvelope:
        """Look up, validate, and run a tool through the middleware chain.

        Raises:
            UnknownToolError: no tool named ``name``
            InvalidArgumentsError: arguments rejected by the tool's schema
        """
        tool, params = self.validate(name, raw_arguments)
        context = ctx or Context()
        context.tool_name = name
        return await self._get_chain()(tool, params, context)

    # ─────────────────────────────────────────────────────────────────
    # Querying / Formatting
    # ─────────────────────────────────────────────────────────────────

    def list_tools(self) -> list[dict[str, Any]]:
        """Name, description, and JSON input schema for every tool."""
        return [
            {"name": t.name, "description": t.description, "inputSchema": t.input_schema()}
            for t in self._tools.values()
        ]

    def describe(self) -> str:
        """Formatted descriptions of all tools for prompts."""
        return "\n".join(f"- **{t.name}**: {t.description}" for t in self._tools.values())
