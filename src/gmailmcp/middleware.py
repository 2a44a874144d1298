"""Middleware around tool handlers.

A middleware is an async callable ``(tool, params, ctx, next)`` that may
inspect the call, time it, or short-circuit it, and otherwise awaits
``next(tool, params, ctx)``. The registry runs every invocation through
the composed chain; the innermost step awaits the tool's handler.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from .core import ResultEnvelope, ToolDescriptor

logger = logging.getLogger("gmailmcp.middleware")


@dataclass(slots=True)
class Context:
    """Per-invocation state: the tool name and timing set by the pipeline, plus free-form extras."""

    tool_name: str | None = None
    duration_ms: float | None = None
    extras: dict[str, object] = field(default_factory=dict)

    def __getitem__(self, key: str) -> object:
        return self.extras[key]

    def __setitem__(self, key: str, value: object) -> None:
        self.extras[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self.extras

    def get(self, key: str, default: object = None) -> object:
        return self.extras.get(key, default)


Next = Callable[[ToolDescriptor, BaseModel, Context], Awaitable[ResultEnvelope]]


@runtime_checkable
class Middleware(Protocol):
    async def __call__(
        self,
        tool: ToolDescriptor,
        params: BaseModel,
        ctx: Context,
        next: Next,
    ) -> ResultEnvelope: ...


async def _run_handler(tool: ToolDescriptor, params: BaseModel, ctx: Context) -> ResultEnvelope:
    return await tool.handler(params)


async def _step(
    mw: Middleware, downstream: Next, tool: ToolDescriptor, params: BaseModel, ctx: Context
) -> ResultEnvelope:
    return await mw(tool, params, ctx, downstream)


def compose(middleware: Sequence[Middleware]) -> Next:
    """Fold middleware into one callable; the first in the sequence runs outermost."""
    chain: Next = _run_handler
    for mw in reversed(middleware):
        chain = functools.partial(_step, mw, chain)
    return chain


def _is_error(result: ResultEnvelope) -> bool:
    return any(block.text.startswith("Error:") for block in result.content)


@dataclass(slots=True)
class LoggingMiddleware:
    """One INFO line per call with its duration; WARNING when the envelope is an error.

    Params stay out of the log unless ``log_params`` is set, since
    ``authenticate`` carries the token.
    """

    log: logging.Logger = field(default_factory=lambda: logger)
    log_params: bool = False

    async def __call__(
        self,
        tool: ToolDescriptor,
        params: BaseModel,
        ctx: Context,
        next: Next,
    ) -> ResultEnvelope:
        if self.log_params:
            self.log.debug("%s called with %s", tool.name, params.model_dump(exclude_none=True))
        start = time.perf_counter()
        try:
            result = await next(tool, params, ctx)
        except Exception:
            ctx.duration_ms = (time.perf_counter() - start) * 1000
            self.log.exception("%s raised after %.1fms", tool.name, ctx.duration_ms)
            raise

        ctx.duration_ms = (time.perf_counter() - start) * 1000
        failed = _is_error(result)
        self.log.log(
            logging.WARNING if failed else logging.INFO,
            "%s %s in %.1fms",
            tool.name,
            "failed" if failed else "ok",
            ctx.duration_ms,
        )
        return result
