"""Error taxonomy for tool dispatch and backend proxying.

Two families of failures exist:

- Dispatch errors (unknown tool, bad arguments, registration mistakes)
  propagate to the caller as protocol-level failures.
- Handler errors (missing credential, backend failures) are caught at the
  handler boundary and rendered as ``Error: {message}`` text.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal


class ErrorCode(StrEnum):
    """Standard error codes attached to every gmailmcp exception."""
    AUTH_REQUIRED = "AUTH_REQUIRED"
    DUPLICATE_TOOL = "DUPLICATE_TOOL"
    REGISTRY_FROZEN = "REGISTRY_FROZEN"
    NOT_FOUND = "NOT_FOUND"
    INVALID_PARAMS = "INVALID_PARAMS"
    NETWORK_ERROR = "NETWORK_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN = "UNKNOWN"


class GmailMCPError(Exception):
    """Base class for all gmailmcp errors."""

    code: ErrorCode = ErrorCode.UNKNOWN

    @property
    def message(self) -> str:
        return str(self)


# ─────────────────────────────────────────────────────────────────────────────
# Registry / Dispatch
# ─────────────────────────────────────────────────────────────────────────────

class DuplicateToolError(GmailMCPError):
    """A tool with the same name is already registered."""

    code = ErrorCode.DUPLICATE_TOOL

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' already registered")


class RegistryFrozenError(GmailMCPError):
    """Registration attempted after the catalog was fixed."""

    code = ErrorCode.REGISTRY_FROZEN

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Cannot register '{name}': registry is frozen")


class UnknownToolError(GmailMCPError):
    """No tool with the requested name exists."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' not found")


class InvalidArgumentsError(GmailMCPError):
    """Arguments failed schema validation.

    Attributes:
        tool_name: Tool whose schema rejected the arguments
        field: First offending field (dotted path), or None for root errors
        fields: Every offending field, in validation order
    """

    code = ErrorCode.INVALID_PARAMS

    def __init__(self, tool_name: str, fields: list[str], detail: str) -> None:
        self.tool_name = tool_name
        self.fields = fields
        self.field = fields[0] if fields else None
        where = f" ({', '.join(fields)})" if fields else ""
        super().__init__(f"Invalid arguments for '{tool_name}'{where}: {detail}")


# ─────────────────────────────────────────────────────────────────────────────
# Proxy
# ─────────────────────────────────────────────────────────────────────────────

AUTH_REQUIRED_MESSAGE = (
    "Authentication required. Please use the authenticate tool first with no parameters "
    "to get the authorization URL. After visiting that URL and completing authentication, "
    "call authenticate again with the token you receive."
)


class AuthenticationRequiredError(GmailMCPError):
    """A backend call was attempted before any credential was set."""

    code = ErrorCode.AUTH_REQUIRED

    def __init__(self, message: str = AUTH_REQUIRED_MESSAGE) -> None:
        super().__init__(message)


RequestFailureKind = Literal["status", "network"]


class BackendRequestError(GmailMCPError):
    """Backend answered with a non-2xx status, or could not be reached.

    ``kind`` distinguishes the two: ``"status"`` carries the numeric status,
    status text, and raw body; ``"network"`` leaves those unset.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: RequestFailureKind,
        status: int | None = None,
        status_text: str | None = None,
        body: str | None = None,
    ) -> None:
        self.kind = kind
        self.status = status
        self.status_text = status_text
        self.body = body
        super().__init__(message)

    @property
    def code(self) -> ErrorCode:  # type: ignore[override]
        return ErrorCode.NETWORK_ERROR if self.kind == "network" else ErrorCode.EXTERNAL_SERVICE_ERROR

    @classmethod
    def from_status(cls, status: int, status_text: str, body: str) -> BackendRequestError:
        return cls(
            f"API request failed ({status}): {status_text}. {body}",
            kind="status", status=status, status_text=status_text, body=body,
        )

    @classmethod
    def from_network(cls, exc: Exception) -> BackendRequestError:
        return cls(f"Network error: {exc}", kind="network")


class BackendResponseParseError(GmailMCPError):
    """A 2xx backend response whose body is not valid JSON."""

    code = ErrorCode.PARSE_ERROR

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        super().__init__(f"Could not parse backend response for {path}: {detail}")
