"""Authenticated request proxy to the backend API.

A RequestProxy holds a reference to its session's Credential cell and
turns (path, method, body) into one outbound httpx call against a fixed
base URL, attaching ``Authorization: Bearer <token>``.

There is no retry and, unless configured, no timeout: one best-effort call
per invocation.

Example:
    >>> credential = Credential()
    >>> proxy = RequestProxy(credential, base_url="https://backend.example.com")
    >>> proxy.authenticate("tok123")
    >>> labels = await proxy.request("/gmail/labels")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import orjson
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .core import ResultEnvelope
from .errors import AuthenticationRequiredError, BackendRequestError, BackendResponseParseError

if TYPE_CHECKING:
    from .settings import HttpSettings

logger = logging.getLogger("gmailmcp.proxy")

AUTH_SUCCESS_MESSAGE = "Authentication successful! You can now use Gmail tools."


# ─────────────────────────────────────────────────────────────────────────────
# Credential
# ─────────────────────────────────────────────────────────────────────────────

class BearerAuth(BaseModel):
    """Bearer token authentication. Token is a SecretStr so it never shows in reprs."""

    model_config = ConfigDict(frozen=True, extra="forbid")
    token: SecretStr = Field(..., description="Bearer token value")

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        headers["Authorization"] = f"Bearer {self.token.get_secret_value()}"
        return headers


@dataclass(slots=True)
class Credential:
    """Mutable, session-scoped holder for the bearer token.

    Shared by reference between a Session and its RequestProxy, so a token
    set through authenticate() is visible to every later request.
    """

    _auth: BearerAuth | None = field(default=None, repr=False)

    @property
    def is_set(self) -> bool:
        return self._auth is not None

    def set(self, token: str) -> None:
        """Store (or replace) the token."""
        self._auth = BearerAuth(token=SecretStr(token))

    def clear(self) -> None:
        self._auth = None

    def require(self) -> BearerAuth:
        """Return the auth strategy or raise AuthenticationRequiredError."""
        if self._auth is None:
            raise AuthenticationRequiredError()
        return self._auth


# ─────────────────────────────────────────────────────────────────────────────
# Proxy
# ─────────────────────────────────────────────────────────────────────────────

class RequestProxy:
    """Translate tool calls into authenticated backend requests.

    Args:
        credential: Session credential cell (shared by reference)
        base_url: Backend base URL, no trailing slash
        timeout: Seconds before giving up on a call; None waits indefinitely
        verify_ssl: Whether to verify TLS certificates
        user_agent: Value of the User-Agent header
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    __slots__ = ("_credential", "_base_url", "_timeout", "_verify_ssl", "_user_agent", "_transport", "_client")

    def __init__(
        self,
        credential: Credential,
        base_url: str,
        *,
        timeout: float | None = None,
        verify_ssl: bool = True,
        user_agent: str = "gmailmcp/0.1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credential = credential
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._user_agent = user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        credential: Credential,
        base_url: str,
        http: HttpSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> RequestProxy:
        return cls(
            credential,
            base_url,
            timeout=http.timeout,
            verify_ssl=http.verify_ssl,
            user_agent=http.user_agent,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def authorization_url(self) -> str:
        return f"{self._base_url}/google/auth/gmail?redirect_url={self._base_url}/token-helper"

    # ─────────────────────────────────────────────────────────────────
    # Authentication
    # ─────────────────────────────────────────────────────────────────

    def authenticate(self, token: str | None = None) -> ResultEnvelope:
        """Store a token, or explain how to obtain one when none is given."""
        if not token:
            return ResultEnvelope.text(
                f"Please visit this URL to authorize the application:\n{self.authorization_url}\n\n"
                "After authorization, you'll receive a token. "
                "Please provide that token to complete authentication."
            )
        replaced = self._credential.is_set
        self._credential.set(token)
        logger.info("credential %s", "replaced" if replaced else "set")
        return ResultEnvelope.text(AUTH_SUCCESS_MESSAGE)

    # ─────────────────────────────────────────────────────────────────
    # HTTP Client
    # ─────────────────────────────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                verify=self._verify_ssl,
                transport=self._transport,
                headers={"User-Agent": self._user_agent},
            )
        return self._client

    @property
    def is_open(self) -> bool:
        """Whether an httpx client has been created and not yet closed."""
        return self._client is not None

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ─────────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────────

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> Any:
        """Send one authenticated request and return the parsed JSON body.

        ``body`` is sent verbatim when it is str/bytes, otherwise JSON-encoded
        with ``Content-Type: application/json``.

        Raises:
            AuthenticationRequiredError: no credential set
            BackendRequestError: non-2xx status (kind="status") or transport failure (kind="network")
            BackendResponseParseError: 2xx body is not valid JSON
        """
        auth = self._credential.require()

        merged = dict(headers or {})
        auth.apply(merged)

        content: str | bytes | None = None
        if isinstance(body, (str, bytes)):
            content = body
        elif body is not None:
            content = orjson.dumps(body)
            if not any(k.lower() == "content-type" for k in merged):
                merged["Content-Type"] = "application/json"

        method = method.upper()
        url = f"{self._base_url}{path}"
        logger.debug("%s %s", method, path)

        try:
            response = await self._get_client().request(method, url, headers=merged, content=content)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise BackendRequestError.from_network(e) from e

        if not response.is_success:
            logger.warning("%s %s -> %d", method, path, response.status_code)
            raise BackendRequestError.from_status(response.status_code, response.reason_phrase, response.text)

        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise BackendResponseParseError(path, str(e)) from e
