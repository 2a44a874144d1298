"""gmailmcp - Gmail, Calendar, Classroom, and Drive tools over MCP.

Exposes a fixed catalog of tools that proxy to one backend API with a
per-session bearer token, reshaping JSON responses into readable text.

Quick Start (in-process):
    >>> from gmailmcp import Session
    >>>
    >>> async with Session.create() as session:
    ...     env = await session.invoke("authenticate")          # prints the auth URL
    ...     await session.invoke("authenticate", {"token": "..."})
    ...     env = await session.invoke("search_emails", {"query": "is:unread"})
    ...     print(env.joined)

MCP server (SSE at /sse, streamable HTTP at /mcp):
    >>> from gmailmcp.server import serve_mcp
    >>> serve_mcp(port=8787)

Configuration comes from GMAILMCP_* environment variables; see
gmailmcp.settings.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .core import EmptyParams, ResultEnvelope, TextContent, ToolDescriptor
from .errors import (
    AuthenticationRequiredError,
    BackendRequestError,
    BackendResponseParseError,
    DuplicateToolError,
    ErrorCode,
    GmailMCPError,
    InvalidArgumentsError,
    RegistryFrozenError,
    UnknownToolError,
)
from .handlers import fetch_and_detail, fetch_and_transform, list_and_summarize, safe_invoke
from .log import configure_logging
from .middleware import Context, LoggingMiddleware, Middleware, compose
from .proxy import BearerAuth, Credential, RequestProxy
from .registry import ToolRegistry
from .session import Session, build_registry
from .settings import GmailMCPSettings, clear_settings_cache, get_settings
from .tools import TOOL_NAMES, register_all

__all__ = [
    "__version__",
    # Core
    "ResultEnvelope",
    "TextContent",
    "ToolDescriptor",
    "EmptyParams",
    # Errors
    "ErrorCode",
    "GmailMCPError",
    "AuthenticationRequiredError",
    "BackendRequestError",
    "BackendResponseParseError",
    "DuplicateToolError",
    "InvalidArgumentsError",
    "RegistryFrozenError",
    "UnknownToolError",
    # Registry / middleware
    "ToolRegistry",
    "Middleware",
    "Context",
    "compose",
    "LoggingMiddleware",
    # Proxy
    "Credential",
    "BearerAuth",
    "RequestProxy",
    # Handler shapes
    "safe_invoke",
    "list_and_summarize",
    "fetch_and_detail",
    "fetch_and_transform",
    # Session
    "Session",
    "build_registry",
    "TOOL_NAMES",
    "register_all",
    # Settings / logging
    "GmailMCPSettings",
    "get_settings",
    "clear_settings_cache",
    "configure_logging",
]
