"""Server adapters exposing sessions over the network.

1. **MCP** - full MCP protocol over SSE (``/sse``) and streamable HTTP
   (``/mcp`` and ``/``). Each connected MCP client gets its own Session, so
   credentials never cross connections.
2. **HTTP/REST** - plain endpoints for simple web backends and tests:
   - GET  /tools               → list tools with schemas
   - POST /tools/{name}        → invoke tool with JSON body
   - GET  /tools/{name}/schema → one tool's schema
   The REST adapter is single-tenant: one Session per app.

Example - MCP (Claude Desktop, Cursor, etc.):
    >>> from gmailmcp.server import serve_mcp
    >>> serve_mcp(port=8787)

Example - embed the MCP app in a larger ASGI app:
    >>> app = create_app(settings)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import weakref
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

import httpx
import uvicorn
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.shared.exceptions import McpError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Mount, Route
from starlette.types import Receive, Scope, Send

from .errors import InvalidArgumentsError, UnknownToolError
from .proxy import Credential, RequestProxy
from .session import Session, build_registry
from .settings import GmailMCPSettings, get_settings

logger = logging.getLogger("gmailmcp.server")


# ═══════════════════════════════════════════════════════════════════════════════
# Abstract Server
# ═══════════════════════════════════════════════════════════════════════════════


class ToolServer(ABC):
    """Shared session construction and catalog listing for server adapters."""

    __slots__ = ("_settings", "_transport", "_catalog")

    def __init__(
        self,
        settings: GmailMCPSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        # Schemas don't depend on the credential; one unbound registry serves listings
        template = RequestProxy(Credential(), self._settings.base_url)
        self._catalog = build_registry(template, log_calls=False).list_tools()

    @property
    def settings(self) -> GmailMCPSettings:
        return self._settings

    def new_session(self) -> Session:
        return Session.create(self._settings, transport=self._transport)

    def list_tools(self) -> list[dict[str, Any]]:
        """Name, description, and input schema for every tool."""
        return list(self._catalog)

    @property
    @abstractmethod
    def app(self) -> Starlette:
        """ASGI application."""
        ...

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Start serving (blocking)."""
        host = host or self._settings.server.host
        port = port or self._settings.server.port
        logger.info("serving %s on %s:%d", type(self).__name__, host, port)
        uvicorn.run(self.app, host=host, port=port, log_config=None)


# ═══════════════════════════════════════════════════════════════════════════════
# MCP Adapter
# ═══════════════════════════════════════════════════════════════════════════════


class _StreamableHTTPApp:
    """ASGI app forwarding to the streamable HTTP session manager, usable as a Route endpoint."""

    __slots__ = ("_manager",)

    def __init__(self, manager: StreamableHTTPSessionManager) -> None:
        self._manager = manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._manager.handle_request(scope, receive, send)


class MCPServer(ToolServer):
    """MCP low-level server with one gmailmcp Session per MCP client session.

    A Session lives as long as its MCP client session: when the client
    session is garbage collected, the Session's HTTP client is closed on
    the loop that created it. ``aclose()`` closes whatever is still open.
    """

    __slots__ = ("_sessions", "_closing", "_server", "_app")

    def __init__(
        self,
        settings: GmailMCPSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(settings, transport=transport)
        self._sessions: weakref.WeakKeyDictionary[object, Session] = weakref.WeakKeyDictionary()
        self._closing: set[asyncio.Task[None]] = set()
        self._server = self._create_server()
        self._app: Starlette | None = None

    # ─────────────────────────────────────────────────────────────────
    # Sessions
    # ─────────────────────────────────────────────────────────────────

    def session_for(self, client: object) -> Session:
        """Session bound to an MCP client session, created on first use.

        Must be called from a running event loop.
        """
        session = self._sessions.get(client)
        if session is None:
            session = self._sessions[client] = self.new_session()
            weakref.finalize(client, self._release, session, asyncio.get_running_loop())
            logger.info("new session (%d active)", len(self._sessions))
        return session

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def _release(self, session: Session, loop: asyncio.AbstractEventLoop) -> None:
        # Runs from the garbage collector; hop back onto the owning loop
        if loop.is_closed():
            return
        loop.call_soon_threadsafe(self._schedule_close, session)

    def _schedule_close(self, session: Session) -> None:
        task = asyncio.ensure_future(session.aclose())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def aclose(self) -> None:
        """Close every live Session and wait for pending releases."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.aclose()
        if self._closing:
            await asyncio.gather(*self._closing)

    # ─────────────────────────────────────────────────────────────────
    # MCP
    # ─────────────────────────────────────────────────────────────────

    def _create_server(self) -> Server:
        server: Server = Server(self._settings.server.name, version=self._settings.server.version)

        @server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return [
                types.Tool(name=t["name"], description=t["description"], inputSchema=t["inputSchema"])
                for t in self.list_tools()
            ]

        async def call_tool(request: types.CallToolRequest) -> types.ServerResult:
            # Installed directly so dispatch errors reach the client as JSON-RPC errors
            name = request.params.name
            session = self.session_for(server.request_context.session)
            try:
                envelope = await session.invoke(name, request.params.arguments or {})
            except UnknownToolError as e:
                raise McpError(types.ErrorData(code=types.METHOD_NOT_FOUND, message=str(e))) from e
            except InvalidArgumentsError as e:
                raise McpError(
                    types.ErrorData(code=types.INVALID_PARAMS, message=str(e), data={"fields": e.fields})
                ) from e
            content = [types.TextContent(type="text", text=block.text) for block in envelope.content]
            return types.ServerResult(types.CallToolResult(content=content, isError=False))

        server.request_handlers[types.CallToolRequest] = call_tool
        return server

    @property
    def server(self) -> Server:
        """Underlying MCP low-level server."""
        return self._server

    async def run_stdio(self) -> None:
        """Serve a single client over stdin/stdout."""
        try:
            async with stdio_server() as (read, write):
                await self._server.run(read, write, self._server.create_initialization_options())
        finally:
            await self.aclose()

    def _create_app(self) -> Starlette:
        sse = SseServerTransport("/sse/message/")
        manager = StreamableHTTPSessionManager(app=self._server)
        streamable_http = _StreamableHTTPApp(manager)

        async def handle_sse(request: Request) -> Response:
            async with sse.connect_sse(request.scope, request.receive, request._send) as (read, write):
                await self._server.run(read, write, self._server.create_initialization_options())
            return Response()

        async def not_found(request: Request, exc: Exception) -> Response:
            return PlainTextResponse("Not found", status_code=404)

        @contextlib.asynccontextmanager
        async def lifespan(app: Starlette) -> AsyncIterator[None]:
            async with manager.run():
                yield
            await self.aclose()

        routes = [
            Route("/sse", handle_sse, methods=["GET"]),
            Mount("/sse/message/", app=sse.handle_post_message),
            Mount("/mcp", app=streamable_http),
            Route("/", streamable_http),
        ]
        return Starlette(routes=routes, lifespan=lifespan, exception_handlers={404: not_found})

    @property
    def app(self) -> Starlette:
        if self._app is None:
            self._app = self._create_app()
        return self._app


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP REST Adapter
# ═══════════════════════════════════════════════════════════════════════════════


class HTTPToolServer(ToolServer):
    """REST endpoints over a single Session."""

    __slots__ = ("_session", "_app")

    def __init__(
        self,
        settings: GmailMCPSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(settings, transport=transport)
        self._session = self.new_session()
        self._app = self._create_app()

    @property
    def session(self) -> Session:
        return self._session

    def _create_app(self) -> Starlette:
        async def list_tools(request: Request) -> JSONResponse:
            return JSONResponse({"server": self._settings.server.name, "tools": self.list_tools()})

        async def invoke_tool(request: Request) -> JSONResponse:
            tool_name = request.path_params["name"]
            try:
                body = await request.json()
            except ValueError:
                body = {}

            try:
                envelope = await self._session.invoke(tool_name, body if isinstance(body, dict) else {})
            except UnknownToolError as e:
                return JSONResponse({"error": str(e)}, status_code=404)
            except InvalidArgumentsError as e:
                return JSONResponse({"error": str(e), "field": e.field}, status_code=400)

            return JSONResponse(envelope.to_mcp())

        async def get_tool_schema(request: Request) -> JSONResponse:
            tool_name = request.path_params["name"]
            tool = next((t for t in self._catalog if t["name"] == tool_name), None)
            if tool is None:
                return JSONResponse({"error": f"Tool '{tool_name}' not found"}, status_code=404)
            return JSONResponse(tool)

        @contextlib.asynccontextmanager
        async def lifespan(app: Starlette) -> AsyncIterator[None]:
            yield
            await self._session.aclose()

        routes = [
            Route("/tools", list_tools, methods=["GET"]),
            Route("/tools/{name}", invoke_tool, methods=["POST"]),
            Route("/tools/{name}/schema", get_tool_schema, methods=["GET"]),
        ]
        return Starlette(routes=routes, lifespan=lifespan)

    @property
    def app(self) -> Starlette:
        return self._app


# ═══════════════════════════════════════════════════════════════════════════════
# Factory Functions
# ═══════════════════════════════════════════════════════════════════════════════


def build_mcp_server(
    settings: GmailMCPSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Server:
    """MCP low-level server with list_tools / call_tool handlers, not bound to any transport."""
    return MCPServer(settings, transport=transport).server


def create_app(settings: GmailMCPSettings | None = None) -> Starlette:
    """MCP ASGI app (``/sse``, ``/mcp``, ``/``) without running it."""
    return MCPServer(settings).app


def create_rest_app(
    settings: GmailMCPSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Starlette:
    """REST ASGI app without running it."""
    return HTTPToolServer(settings, transport=transport).app


def serve_mcp(settings: GmailMCPSettings | None = None, *, host: str | None = None, port: int | None = None) -> None:
    MCPServer(settings).run(host, port)


def serve_http(settings: GmailMCPSettings | None = None, *, host: str | None = None, port: int | None = None) -> None:
    HTTPToolServer(settings).run(host, port)
