"""Command-line entry point: ``python -m gmailmcp`` or ``gmailmcp``."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

from .log import configure_from_settings
from .server import HTTPToolServer, MCPServer
from .settings import GmailMCPSettings, get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gmailmcp", description="Gmail / Calendar / Classroom / Drive MCP server")
    parser.add_argument("--transport", choices=["http", "stdio", "rest"], default="http",
                        help="http: /sse + /mcp endpoints; stdio: single local client; rest: plain JSON endpoints")
    parser.add_argument("--host", help="Bind address (default from GMAILMCP_SERVER_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (default from GMAILMCP_SERVER_PORT)")
    parser.add_argument("--base-url", help="Backend API base URL (default from GMAILMCP_BASE_URL)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Log level (default from GMAILMCP_LOG_LEVEL)")
    return parser


def resolve_settings(args: argparse.Namespace) -> GmailMCPSettings:
    """Environment settings with command-line overrides applied."""
    settings = get_settings()
    if not (args.base_url or args.log_level):
        return settings
    data = settings.model_dump()
    if args.base_url:
        data["base_url"] = args.base_url
    if args.log_level:
        data["logging"]["level"] = args.log_level
    return GmailMCPSettings.model_validate(data)


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args)
    configure_from_settings(settings.logging)

    match args.transport:
        case "stdio":
            asyncio.run(MCPServer(settings).run_stdio())
        case "rest":
            HTTPToolServer(settings).run(args.host, args.port)
        case _:
            MCPServer(settings).run(args.host, args.port)


if __name__ == "__main__":
    main()
