"""Gmail tools: search, message detail, labels, profile."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core import EmptyParams
from ..handlers import endpoint, fetch_and_detail, field_line, list_and_summarize, safe_invoke, to_json
from ..proxy import RequestProxy
from ..registry import ToolRegistry


class SearchEmailsParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = Field(
        ...,
        description='Gmail search query (e.g., "from:example@gmail.com", "subject:important", "is:unread")',
    )


class GetEmailParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    messageId: str = Field(..., description="The Gmail message ID")


def render_message_summary(msg: dict[str, Any]) -> str:
    text = f"ID: {msg['id']}\n"
    text += field_line("Thread ID", msg.get("threadId"))
    text += field_line("Snippet", msg.get("snippet"))
    return text + "---"


def render_message(message: dict[str, Any]) -> str:
    text = f"Message ID: {message['id']}\n"
    if message.get("threadId"):
        text += f"Thread ID: {message['threadId']}\n"
    if message.get("snippet"):
        text += f"Snippet: {message['snippet']}\n\n"
    headers = (message.get("payload") or {}).get("headers")
    if headers:
        text += "Headers:\n"
        text += "".join(f"{h['name']}: {h['value']}\n" for h in headers)
    return text


def render_label(label: dict[str, Any]) -> str:
    text = f"{label.get('name') or label['id']} ({label['id']})"
    return f"{text} - {label['type']}" if label.get("type") else text


def register(registry: ToolRegistry, proxy: RequestProxy) -> None:
    registry.register(
        "search_emails",
        "Search for emails in Gmail using Gmail search syntax",
        SearchEmailsParams,
        list_and_summarize(
            proxy,
            lambda p: endpoint("/gmail/search", q=p.query),
            key="messages",
            empty="No messages found matching the search query.",
            noun="messages",
            render=render_message_summary,
        ),
    )

    registry.register(
        "get_email",
        "Retrieve a specific email by its message ID",
        GetEmailParams,
        fetch_and_detail(
            proxy,
            lambda p: endpoint("/gmail/message", messageId=p.messageId, decode="true"),
            render=render_message,
            not_found="Message not found.",
        ),
    )

    registry.register(
        "list_labels",
        "List all Gmail labels in the user's account",
        EmptyParams,
        list_and_summarize(
            proxy,
            lambda _: "/gmail/labels",
            key="labels",
            empty="No labels found.",
            header="Gmail Labels:",
            render=render_label,
        ),
    )

    async def get_profile(params: EmptyParams) -> str:
        profile = await proxy.request("/gmail/list")
        return f"Gmail Profile:\n{to_json(profile)}"

    registry.register(
        "get_profile",
        "Get information about the user's Gmail profile",
        EmptyParams,
        safe_invoke(get_profile),
    )
