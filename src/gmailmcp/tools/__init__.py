"""Tool catalog, grouped by backend service.

``register_all`` populates a registry with every tool, bound to one proxy.
"""

from __future__ import annotations

from ..proxy import RequestProxy
from ..registry import ToolRegistry
from . import auth, calendar, classroom, drive, gmail

TOOL_NAMES: tuple[str, ...] = (
    "authenticate",
    "search_emails",
    "get_email",
    "list_labels",
    "get_profile",
    "list_events",
    "create_event",
    "list_courses",
    "list_coursework",
    "list_announcements",
    "get_coursework",
    "get_assignment_materials",
    "download_file",
    "read_document",
)


def register_all(registry: ToolRegistry, proxy: RequestProxy) -> ToolRegistry:
    """Register the full catalog in TOOL_NAMES order."""
    for module in (auth, gmail, calendar, classroom, drive):
        module.register(registry, proxy)
    return registry


__all__ = ["TOOL_NAMES", "register_all"]
