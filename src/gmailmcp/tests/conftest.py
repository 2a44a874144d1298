"""Shared fixtures: an in-memory backend behind httpx.MockTransport."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
import pytest_asyncio

from gmailmcp import GmailMCPSettings, Session

BASE_URL = "https://backend.test"


@dataclass
class FakeBackend:
    """Routes (method, path) to canned responses and records every request."""

    routes: dict[tuple[str, str], Callable[[], httpx.Response] | Exception] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def on(
        self,
        path: str,
        *,
        method: str = "GET",
        json: Any = None,
        status: int = 200,
        text: str | None = None,
    ) -> None:
        if text is not None:
            self.routes[(method, path)] = lambda: httpx.Response(status, text=text)
        else:
            self.routes[(method, path)] = lambda: httpx.Response(status, json=json)

    def fail(self, path: str, exc: Exception, *, method: str = "GET") -> None:
        self.routes[(method, path)] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.routes.get((request.method, request.url.path))
        if outcome is None:
            return httpx.Response(404, text=f"no route for {request.method} {request.url.path}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome()

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> GmailMCPSettings:
    return GmailMCPSettings(base_url=BASE_URL)


@pytest_asyncio.fixture
async def session(settings: GmailMCPSettings, backend: FakeBackend) -> AsyncIterator[Session]:
    async with Session.create(settings, transport=backend.transport) as s:
        yield s


@pytest_asyncio.fixture
async def authed(session: Session) -> Session:
    await session.invoke("authenticate", {"token": "tok123"})
    return session
