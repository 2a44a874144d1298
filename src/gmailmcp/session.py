"""Per-connection dispatch front.

A Session owns exactly one Credential, one RequestProxy sharing that
credential by reference, and one frozen ToolRegistry holding the full
catalog. Sessions share no mutable state, so several may run concurrently
in one process.

Example:
    >>> async with Session.create() as session:
    ...     await session.invoke("authenticate", {"token": "tok123"})
    ...     envelope = await session.invoke("list_labels")
    ...     print(envelope.joined)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any

import httpx

from .core import ResultEnvelope
from .middleware import Context, LoggingMiddleware
from .proxy import Credential, RequestProxy
from .registry import ToolRegistry
from .settings import GmailMCPSettings, get_settings
from .tools import register_all

logger = logging.getLogger("gmailmcp.session")


def build_registry(proxy: RequestProxy, *, log_calls: bool = True) -> ToolRegistry:
    """Registry with the full catalog bound to ``proxy``, frozen."""
    registry = ToolRegistry()
    if log_calls:
        registry.use(LoggingMiddleware())
    register_all(registry, proxy)
    registry.freeze()
    return registry


class Session:
    """One Credential + RequestProxy + ToolRegistry."""

    __slots__ = ("_credential", "_proxy", "_registry")

    def __init__(self, credential: Credential, proxy: RequestProxy, registry: ToolRegistry) -> None:
        self._credential = credential
        self._proxy = proxy
        self._registry = registry

    @classmethod
    def create(
        cls,
        settings: GmailMCPSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Session:
        """Build a fresh, unauthenticated session from settings."""
        settings = settings or get_settings()
        credential = Credential()
        proxy = RequestProxy.from_settings(credential, settings.base_url, settings.http, transport=transport)
        return cls(credential, proxy, build_registry(proxy))

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def proxy(self) -> RequestProxy:
        return self._proxy

    @property
    def authenticated(self) -> bool:
        return self._credential.is_set

    async def invoke(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        ctx: Context | None = None,
    ) -> ResultEnvelope:
        """Dispatch one tool call.

        Raises:
            UnknownToolError: no tool named ``name``
            InvalidArgumentsError: arguments rejected by the tool's schema
        """
        return await self._registry.invoke(name, arguments, ctx=ctx)

    def list_tools(self) -> list[dict[str, Any]]:
        return self._registry.list_tools()

    async def aclose(self) -> None:
        await self._proxy.aclose()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
