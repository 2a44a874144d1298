"""Classroom tools: courses, coursework, announcements, assignment details and materials."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core import EmptyParams
from ..handlers import (
    endpoint,
    fetch_and_detail,
    fetch_and_transform,
    field_line,
    list_and_summarize,
    to_json,
)
from ..materials import (
    dump_materials,
    parse_materials,
    render_material_lines,
    render_material_summary,
)
from ..proxy import RequestProxy
from ..registry import ToolRegistry


class CourseParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    courseId: str = Field(..., description="The ID of the course")


class CourseworkParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    courseId: str = Field(..., description="The ID of the course containing the assignment")
    courseworkId: str = Field(..., description="The ID of the specific coursework/assignment")


# ─────────────────────────────────────────────────────────────────────────────
# Formatting
# ─────────────────────────────────────────────────────────────────────────────

def format_timestamp(value: str) -> str:
    """RFC3339 → ``YYYY-MM-DD HH:MM:SS`` (with UTC offset); unparseable input is returned as-is."""
    try:
        dt = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return str(value)
    offset = dt.strftime("%z")
    stamp = dt.strftime("%Y-%m-%d %H:%M:%S")
    return f"{stamp} UTC" if offset in ("+0000", "") else f"{stamp} {offset}"


def format_due(work: dict[str, Any]) -> str | None:
    due = work.get("dueDate") or {}
    year, month, day = due.get("year"), due.get("month"), due.get("day")
    if not (year and month and day):
        return None
    time = work.get("dueTime") or {}
    return f"{year}-{month}-{day} {time.get('hours', 0)}:{time.get('minutes', 0)}"


def render_course(course: dict[str, Any]) -> str:
    text = field_line("Name", course.get("name"))
    text += f"ID: {course['id']}\n"
    text += field_line("Section", course.get("section"))
    text += field_line("Description", course.get("description"))
    return text + "---\n"


def render_coursework_summary(work: dict[str, Any]) -> str:
    text = field_line("Title", work.get("title"))
    text += f"ID: {work['id']}\n"
    text += field_line("Description", work.get("description"))
    text += field_line("Due", format_due(work))
    if work.get("maxPoints"):
        text += f"Max Points: {work['maxPoints']}\n"
    return text + "---\n"


def render_announcement(announcement: dict[str, Any]) -> str:
    text = f"ID: {announcement['id']}\n"
    if announcement.get("creationTime"):
        text += f"Posted: {format_timestamp(announcement['creationTime'])}\n"
    text += field_line("Text", announcement.get("text"))
    lines = [s for m in parse_materials(announcement.get("materials")) if (s := render_material_summary(m))]
    if lines:
        text += "Materials:\n" + "".join(f"{line}\n" for line in lines)
    return text + "---\n"


def render_coursework(work: dict[str, Any]) -> str:
    text = field_line("Title", work.get("title"))
    text += field_line("ID", work.get("id"))
    text += field_line("Course ID", work.get("courseId"))
    text += field_line("Description", work.get("description"))
    text += field_line("State", work.get("state"))
    if work.get("creationTime"):
        text += f"Created: {format_timestamp(work['creationTime'])}\n"
    if work.get("updateTime"):
        text += f"Updated: {format_timestamp(work['updateTime'])}\n"
    if due := format_due(work):
        text += f"Due: {due}\n"
    if work.get("maxPoints"):
        text += f"Max Points: {work['maxPoints']}\n"
    if work.get("workType"):
        text += f"Work Type: {work['workType']}\n"
    materials = parse_materials(work.get("materials"))
    if materials:
        text += "Materials:\n"
        text += "".join(f"{line}\n" for m in materials for line in render_material_lines(m))
    return text


def render_assignment_materials(work: dict[str, Any], materials: list[dict[str, Any]]) -> str:
    title = work.get("title")
    header = f'Assignment Materials for "{title}":' if title else "Assignment Materials:"
    return f"{header}\n\n{to_json(materials)}"


# ─────────────────────────────────────────────────────────────────────────────
# Registration
# ─────────────────────────────────────────────────────────────────────────────

def _details_path(p: CourseworkParams) -> str:
    return endpoint("/classroom/coursework/details", courseId=p.courseId, courseworkId=p.courseworkId)


def register(registry: ToolRegistry, proxy: RequestProxy) -> None:
    registry.register(
        "list_courses",
        "List all Google Classroom courses available to the user",
        EmptyParams,
        list_and_summarize(
            proxy,
            lambda _: "/classroom/courses",
            key="courses",
            empty="No courses found.",
            noun="courses",
            render=render_course,
        ),
    )

    registry.register(
        "list_coursework",
        "List coursework for a specific Google Classroom course",
        CourseParams,
        list_and_summarize(
            proxy,
            lambda p: endpoint("/classroom/coursework", courseId=p.courseId),
            key="courseWork",
            empty="No coursework found for this course.",
            noun="coursework items",
            render=render_coursework_summary,
        ),
    )

    registry.register(
        "list_announcements",
        "List announcements for a specific Google Classroom course",
        CourseParams,
        list_and_summarize(
            proxy,
            lambda p: endpoint("/classroom/announcements", courseId=p.courseId),
            key="announcements",
            empty="No announcements found for this course.",
            noun="announcements",
            render=render_announcement,
        ),
    )

    registry.register(
        "get_coursework",
        "Get detailed content of a specific coursework/assignment",
        CourseworkParams,
        fetch_and_detail(
            proxy,
            _details_path,
            render=render_coursework,
            not_found="Assignment not found or could not be accessed.",
        ),
    )

    registry.register(
        "get_assignment_materials",
        "Get direct access to files attached to a classroom assignment",
        CourseworkParams,
        fetch_and_transform(
            proxy,
            _details_path,
            transform=lambda work: dump_materials(parse_materials(work.get("materials"))),
            render=render_assignment_materials,
            empty="No materials found for this assignment.",
        ),
    )
