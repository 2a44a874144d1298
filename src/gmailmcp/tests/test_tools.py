"""End-to-end tool behaviour through a Session against a fake backend."""

from __future__ import annotations

import httpx
import orjson
import pytest

from gmailmcp import TOOL_NAMES, GmailMCPSettings, InvalidArgumentsError, Session, UnknownToolError
from gmailmcp.tests.conftest import FakeBackend

REQUIRED_ARGS: dict[str, dict[str, object]] = {
    "search_emails": {"query": "is:unread"},
    "get_email": {"messageId": "m1"},
    "list_labels": {},
    "get_profile": {},
    "list_events": {},
    "create_event": {
        "summary": "Standup",
        "start": {"dateTime": "2025-01-01T10:00:00Z"},
        "end": {"dateTime": "2025-01-01T10:15:00Z"},
    },
    "list_courses": {},
    "list_coursework": {"courseId": "c1"},
    "list_announcements": {"courseId": "c1"},
    "get_coursework": {"courseId": "c1", "courseworkId": "w1"},
    "get_assignment_materials": {"courseId": "c1", "courseworkId": "w1"},
    "download_file": {"fileId": "f1"},
    "read_document": {"fileId": "f1"},
}


# ═════════════════════════════════════════════════════════════════════════════
# Catalog and Authentication
# ═════════════════════════════════════════════════════════════════════════════


def test_catalog_is_fixed(session: Session) -> None:
    assert session.registry.names() == list(TOOL_NAMES)
    assert session.registry.frozen
    assert set(REQUIRED_ARGS) == set(TOOL_NAMES) - {"authenticate"}


@pytest.mark.asyncio
@pytest.mark.parametrize("name", sorted(REQUIRED_ARGS))
async def test_every_tool_requires_authentication(session: Session, backend: FakeBackend, name: str) -> None:
    """Before authenticate, every backend tool answers with the auth error and sends nothing."""
    envelope = await session.invoke(name, REQUIRED_ARGS[name])
    assert envelope.joined.startswith("Error: Authentication required")
    assert backend.requests == []


@pytest.mark.asyncio
async def test_authenticate_flow(session: Session) -> None:
    prompt = await session.invoke("authenticate")
    assert "/google/auth/gmail?redirect_url=" in prompt.joined
    assert not session.authenticated

    done = await session.invoke("authenticate", {"token": "tok123"})
    assert done.joined == "Authentication successful! You can now use Gmail tools."
    assert session.authenticated


@pytest.mark.asyncio
async def test_unknown_tool_propagates(authed: Session) -> None:
    with pytest.raises(UnknownToolError):
        await authed.invoke("delete_everything", {})


@pytest.mark.asyncio
async def test_missing_required_argument(authed: Session, backend: FakeBackend) -> None:
    with pytest.raises(InvalidArgumentsError) as exc:
        await authed.invoke("get_email", {})
    assert exc.value.field == "messageId"
    assert backend.requests == []


@pytest.mark.asyncio
async def test_backend_status_error_is_rendered(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/message", status=404, text="not found")
    envelope = await authed.invoke("get_email", {"messageId": "m1"})
    assert envelope.joined == "Error: API request failed (404): Not Found. not found"


@pytest.mark.asyncio
async def test_network_error_is_rendered(authed: Session, backend: FakeBackend) -> None:
    backend.fail("/gmail/labels", httpx.ConnectError("unreachable"))
    envelope = await authed.invoke("list_labels")
    assert envelope.joined == "Error: Network error: unreachable"


# ═════════════════════════════════════════════════════════════════════════════
# Gmail
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_search_emails(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/search", json={"messages": [
        {"id": "m1", "threadId": "t1", "snippet": "Hello"},
        {"id": "m2", "threadId": "t2"},
    ]})

    text = (await authed.invoke("search_emails", {"query": "from:a@b.com is:unread"})).joined

    assert backend.last.url.params["q"] == "from:a@b.com is:unread"
    assert text.startswith("Found 2 messages:\n\n")
    assert "ID: m1\nThread ID: t1\nSnippet: Hello\n---" in text
    assert "ID: m2\nThread ID: t2\n---" in text


@pytest.mark.asyncio
async def test_search_emails_empty(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/search", json={"messages": []})
    text = (await authed.invoke("search_emails", {"query": "nothing"})).joined
    assert text == "No messages found matching the search query."


@pytest.mark.asyncio
async def test_get_email(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/message", json={
        "id": "m1",
        "threadId": "t1",
        "snippet": "Hi",
        "payload": {"headers": [{"name": "Subject", "value": "Greetings"}]},
    })

    text = (await authed.invoke("get_email", {"messageId": "m1"})).joined

    assert backend.last.url.params["decode"] == "true"
    assert text == "Message ID: m1\nThread ID: t1\nSnippet: Hi\n\nHeaders:\nSubject: Greetings\n"


@pytest.mark.asyncio
async def test_get_email_not_found(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/message", text="null")
    assert (await authed.invoke("get_email", {"messageId": "gone"})).joined == "Message not found."


@pytest.mark.asyncio
async def test_list_labels(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/labels", json={"labels": [
        {"id": "INBOX", "name": "INBOX", "type": "system"},
        {"id": "Label_1", "name": "Work", "type": "user"},
    ]})
    text = (await authed.invoke("list_labels")).joined
    assert text == "Gmail Labels:\n\nINBOX (INBOX) - system\nWork (Label_1) - user"


@pytest.mark.asyncio
async def test_list_labels_empty(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/labels", json={})
    assert (await authed.invoke("list_labels")).joined == "No labels found."


@pytest.mark.asyncio
async def test_get_profile(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/list", json={"emailAddress": "me@example.com"})
    text = (await authed.invoke("get_profile")).joined
    assert text.startswith("Gmail Profile:\n")
    assert orjson.loads(text.removeprefix("Gmail Profile:\n")) == {"emailAddress": "me@example.com"}


# ═════════════════════════════════════════════════════════════════════════════
# Calendar
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_events_forwards_only_given_filters(authed: Session, backend: FakeBackend) -> None:
    backend.on("/calendar/events", json={"items": [{
        "summary": "Review",
        "start": {"date": "2025-01-02"},
        "end": {"date": "2025-01-03"},
        "attendees": [{"email": "a@b.com"}],
    }]})

    text = (await authed.invoke("list_events", {"maxResults": 5})).joined

    assert dict(backend.last.url.params) == {"maxResults": "5"}
    assert text == (
        "Found 1 events:\n\n"
        "Title: Review\nStart: 2025-01-02\nEnd: 2025-01-03\nAttendees:\n  - a@b.com\n---\n"
    )


@pytest.mark.asyncio
async def test_list_events_rejects_non_positive_limit(authed: Session) -> None:
    with pytest.raises(InvalidArgumentsError) as exc:
        await authed.invoke("list_events", {"maxResults": 0})
    assert exc.value.field == "maxResults"


@pytest.mark.asyncio
async def test_create_event_sends_arguments_verbatim(authed: Session, backend: FakeBackend) -> None:
    backend.on("/calendar/events", method="POST", json={
        "id": "e1",
        "summary": "Standup",
        "start": {"dateTime": "2025-01-01T10:00:00Z"},
        "end": {"dateTime": "2025-01-01T10:15:00Z"},
    })
    args = {
        "summary": "Standup",
        "start": {"dateTime": "2025-01-01T10:00:00Z", "timeZone": "UTC"},
        "end": {"dateTime": "2025-01-01T10:15:00Z"},
        "attendees": [{"email": "a@b.com"}],
    }

    text = (await authed.invoke("create_event", args)).joined

    assert backend.last.method == "POST"
    assert backend.last.headers["Content-Type"] == "application/json"
    assert orjson.loads(backend.last.content) == args
    assert text == (
        "Event created successfully!\nID: e1\nTitle: Standup\n"
        "Start: 2025-01-01T10:00:00Z\nEnd: 2025-01-01T10:15:00Z"
    )


# ═════════════════════════════════════════════════════════════════════════════
# Classroom
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_courses(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/courses", json={"courses": [
        {"id": "c1", "name": "Algebra", "section": "A"},
        {"id": "c2", "name": "Biology"},
    ]})
    text = (await authed.invoke("list_courses")).joined
    assert text.startswith("Found 2 courses:\n\n")
    assert "Name: Algebra\nID: c1\nSection: A\n---\n" in text
    assert "Name: Biology\nID: c2\n---\n" in text


@pytest.mark.asyncio
async def test_list_courses_empty(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/courses", json={"courses": []})
    assert (await authed.invoke("list_courses")).joined == "No courses found."


@pytest.mark.asyncio
async def test_list_coursework(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/coursework", json={"courseWork": [{
        "id": "w1",
        "title": "Homework 1",
        "dueDate": {"year": 2025, "month": 3, "day": 4},
        "dueTime": {"hours": 23, "minutes": 59},
        "maxPoints": 100,
    }]})

    text = (await authed.invoke("list_coursework", {"courseId": "c1"})).joined

    assert backend.last.url.params["courseId"] == "c1"
    assert text == (
        "Found 1 coursework items:\n\n"
        "Title: Homework 1\nID: w1\nDue: 2025-3-4 23:59\nMax Points: 100\n---\n"
    )


@pytest.mark.asyncio
async def test_list_coursework_empty(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/coursework", json={})
    text = (await authed.invoke("list_coursework", {"courseId": "c1"})).joined
    assert text == "No coursework found for this course."


@pytest.mark.asyncio
async def test_list_announcements(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/announcements", json={"announcements": [{
        "id": "a1",
        "text": "Quiz Friday",
        "creationTime": "2025-01-05T09:30:00Z",
        "materials": [
            {"link": {"url": "https://example.com", "title": "Syllabus"}},
            {"form": {"formUrl": "https://forms.example.com/1", "title": "Survey"}},
        ],
    }]})

    text = (await authed.invoke("list_announcements", {"courseId": "c1"})).joined

    assert text == (
        "Found 1 announcements:\n\n"
        "ID: a1\nPosted: 2025-01-05 09:30:00 UTC\nText: Quiz Friday\n"
        "Materials:\n  - Link: https://example.com (Syllabus)\n---\n"
    )


@pytest.mark.asyncio
async def test_get_coursework(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/coursework/details", json={
        "id": "w1",
        "courseId": "c1",
        "title": "Essay",
        "state": "PUBLISHED",
        "workType": "ASSIGNMENT",
        "materials": [
            {"driveFile": {"driveFile": {"id": "d1", "title": "Prompt", "alternateLink": "https://drive/d1"}}},
            {"youtubeVideo": {"id": "y1", "title": "Lecture", "alternateLink": "https://yt/y1"}},
        ],
    })

    text = (await authed.invoke("get_coursework", {"courseId": "c1", "courseworkId": "w1"})).joined

    assert dict(backend.last.url.params) == {"courseId": "c1", "courseworkId": "w1"}
    assert text == (
        "Title: Essay\nID: w1\nCourse ID: c1\nState: PUBLISHED\nWork Type: ASSIGNMENT\n"
        "Materials:\n"
        "  - Drive File: Prompt\n    ID: d1\n    Link: https://drive/d1\n"
        "  - YouTube: Lecture\n    Link: https://yt/y1\n"
    )


@pytest.mark.asyncio
async def test_get_coursework_not_found(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/coursework/details", json={})
    text = (await authed.invoke("get_coursework", {"courseId": "c1", "courseworkId": "w9"})).joined
    assert text == "Assignment not found or could not be accessed."


@pytest.mark.asyncio
async def test_get_assignment_materials(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/coursework/details", json={
        "id": "w1",
        "title": "Essay",
        "materials": [
            {"driveFile": {"id": "d1", "name": "Draft.docx", "webViewLink": "https://drive/d1"}},
            {"link": {"url": "https://example.com"}},
        ],
    })

    text = (await authed.invoke("get_assignment_materials", {"courseId": "c1", "courseworkId": "w1"})).joined

    header = 'Assignment Materials for "Essay":\n\n'
    assert text.startswith(header)
    assert orjson.loads(text.removeprefix(header)) == [
        {"type": "drive_file", "id": "d1", "title": "Draft.docx", "url": "https://drive/d1"},
        {"type": "link", "url": "https://example.com", "title": "https://example.com"},
    ]


@pytest.mark.asyncio
async def test_get_assignment_materials_empty(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/coursework/details", json={"id": "w1", "title": "Essay", "materials": []})
    text = (await authed.invoke("get_assignment_materials", {"courseId": "c1", "courseworkId": "w1"})).joined
    assert text == "No materials found for this assignment."


# ═════════════════════════════════════════════════════════════════════════════
# Drive
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_download_file_returns_content(authed: Session, backend: FakeBackend) -> None:
    backend.on("/drive/files/download", json={"content": "plain text body"})
    text = (await authed.invoke("download_file", {"fileId": "f1"})).joined
    assert backend.last.url.params["format"] == "text"
    assert text == "plain text body"


@pytest.mark.asyncio
async def test_download_file_falls_back_to_metadata(authed: Session, backend: FakeBackend) -> None:
    backend.on("/drive/files/download", json={"content": ""})
    backend.on("/drive/files", json={"name": "deck.pptx", "webViewLink": "https://drive/f1"})

    text = (await authed.invoke("download_file", {"fileId": "f1"})).joined

    assert [r.url.path for r in backend.requests] == ["/drive/files/download", "/drive/files"]
    assert text.startswith("File metadata retrieved:\n")
    assert "https://drive/f1" in text


@pytest.mark.asyncio
async def test_download_file_error_carries_hint(authed: Session, backend: FakeBackend) -> None:
    backend.on("/drive/files/download", status=500, text="boom")
    text = (await authed.invoke("download_file", {"fileId": "f1"})).joined
    assert text.startswith("Error: API request failed (500): Internal Server Error. boom\n\n")
    assert "read_document" in text


@pytest.mark.asyncio
async def test_read_document(authed: Session, backend: FakeBackend) -> None:
    backend.on("/drive/files/read", json={"title": "Notes", "content": "Line one"})
    text = (await authed.invoke("read_document", {"fileId": "f1", "fileType": "doc"})).joined
    assert backend.last.url.params["fileType"] == "doc"
    assert text == "Document Title: Notes\n\nLine one"


@pytest.mark.asyncio
async def test_read_document_without_content(authed: Session, backend: FakeBackend) -> None:
    backend.on("/drive/files/read", json={"title": "Scan"})
    text = (await authed.invoke("read_document", {"fileId": "f1"})).joined
    assert text == "Could not extract readable content from this document."


# ═════════════════════════════════════════════════════════════════════════════
# Sparse Payloads
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_label_without_type(authed: Session, backend: FakeBackend) -> None:
    backend.on("/gmail/labels", json={"labels": [{"id": "L1", "name": "Work"}, {"id": "L2"}]})
    text = (await authed.invoke("list_labels")).joined
    assert text == "Gmail Labels:\n\nWork (L1)\nL2 (L2)"


@pytest.mark.asyncio
async def test_untitled_event_without_times(authed: Session, backend: FakeBackend) -> None:
    backend.on("/calendar/events", json={"items": [
        {"start": {"date": "2025-03-01"}, "attendees": [{"displayName": "No Email"}]},
        {"summary": "Floating"},
    ]})

    text = (await authed.invoke("list_events")).joined

    assert "None" not in text
    assert text == "Found 2 events:\n\nStart: 2025-03-01\n---\n\nTitle: Floating\n---\n"


@pytest.mark.asyncio
async def test_created_event_echo_without_summary(authed: Session, backend: FakeBackend) -> None:
    backend.on("/calendar/events", method="POST", json={"id": "e2", "start": {"dateTime": "2025-03-01T09:00:00Z"}})
    text = (await authed.invoke("create_event", {
        "summary": "Offsite",
        "start": {"dateTime": "2025-03-01T09:00:00Z"},
        "end": {"dateTime": "2025-03-01T17:00:00Z"},
    })).joined
    assert text == "Event created successfully!\nID: e2\nStart: 2025-03-01T09:00:00Z"


@pytest.mark.asyncio
async def test_course_and_coursework_without_optional_fields(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/courses", json={"courses": [{"id": "c1"}]})
    backend.on("/classroom/coursework", json={"courseWork": [{"id": "w1", "dueDate": {"year": 2025}}]})

    courses = (await authed.invoke("list_courses")).joined
    work = (await authed.invoke("list_coursework", {"courseId": "c1"})).joined

    assert courses == "Found 1 courses:\n\nID: c1\n---\n"
    assert work == "Found 1 coursework items:\n\nID: w1\n---\n"


@pytest.mark.asyncio
async def test_coursework_material_without_link(authed: Session, backend: FakeBackend) -> None:
    backend.on("/classroom/coursework/details", json={
        "id": "w1",
        "materials": [{"driveFile": {"driveFile": {"id": "d1", "title": "Prompt"}}}],
    })

    text = (await authed.invoke("get_coursework", {"courseId": "c1", "courseworkId": "w1"})).joined

    assert "None" not in text
    assert text == "ID: w1\nMaterials:\n  - Drive File: Prompt\n    ID: d1\n"


# ═════════════════════════════════════════════════════════════════════════════
# Isolation
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sessions_do_not_share_credentials(settings: GmailMCPSettings, backend: FakeBackend) -> None:
    backend.on("/gmail/labels", json={"labels": []})
    async with (
        Session.create(settings, transport=backend.transport) as a,
        Session.create(settings, transport=backend.transport) as b,
    ):
        await a.invoke("authenticate", {"token": "alpha"})

        assert (await a.invoke("list_labels")).joined == "No labels found."
        assert (await b.invoke("list_labels")).joined.startswith("Error: Authentication required")
