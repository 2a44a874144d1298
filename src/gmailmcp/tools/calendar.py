"""Calendar tools: list and create events."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from ..handlers import endpoint, field_line, list_and_summarize, safe_invoke
from ..proxy import RequestProxy
from ..registry import ToolRegistry


class ListEventsParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeMin: str | None = Field(default=None, description="Start time for listing events (RFC3339 timestamp)")
    timeMax: str | None = Field(default=None, description="End time for listing events (RFC3339 timestamp)")
    maxResults: PositiveInt | None = Field(default=None, description="Maximum number of events to return")


class EventTime(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dateTime: str = Field(..., description="Time (RFC3339 timestamp)")
    timeZone: str | None = Field(default=None, description="Timezone for the time")


class Attendee(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., description="Email address of the attendee")


class CreateEventParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    summary: str = Field(..., description="Title of the event")
    description: str | None = Field(default=None, description="Description of the event")
    start: EventTime = Field(..., description="Start time of the event")
    end: EventTime = Field(..., description="End time of the event")
    attendees: list[Attendee] | None = Field(default=None, description="List of attendees")


def _when(point: dict[str, Any] | None) -> str | None:
    point = point or {}
    return point.get("dateTime") or point.get("date")


def render_event(event: dict[str, Any]) -> str:
    text = field_line("Title", event.get("summary"))
    text += field_line("Description", event.get("description"))
    text += field_line("Start", _when(event.get("start")))
    text += field_line("End", _when(event.get("end")))
    attendees = [a["email"] for a in event.get("attendees") or () if a.get("email")]
    if attendees:
        text += "Attendees:\n"
        text += "".join(f"  - {email}\n" for email in attendees)
    return text + "---\n"


def event_body(params: CreateEventParams) -> dict[str, Any]:
    """The arguments exactly as given; optional fields left unset are omitted."""
    return params.model_dump(exclude_unset=True)


def register(registry: ToolRegistry, proxy: RequestProxy) -> None:
    registry.register(
        "list_events",
        "List calendar events within a specified time range",
        ListEventsParams,
        list_and_summarize(
            proxy,
            lambda p: endpoint("/calendar/events", timeMin=p.timeMin, timeMax=p.timeMax, maxResults=p.maxResults),
            key="items",
            empty="No events found.",
            noun="events",
            render=render_event,
        ),
    )

    async def create_event(params: CreateEventParams) -> str:
        created = await proxy.request(
            "/calendar/events",
            method="POST",
            headers={"Content-Type": "application/json"},
            body=event_body(params),
        )
        return (
            "Event created successfully!\n"
            f"ID: {created['id']}\n"
            + field_line("Title", created.get("summary"))
            + field_line("Start", _when(created.get("start")))
            + field_line("End", _when(created.get("end")))
        ).rstrip("\n")

    registry.register(
        "create_event",
        "Create a new event in Google Calendar",
        CreateEventParams,
        safe_invoke(create_event),
    )
