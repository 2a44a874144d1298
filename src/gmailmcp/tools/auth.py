"""The authenticate tool: the only tool usable without a credential."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..core import ResultEnvelope
from ..handlers import safe_invoke
from ..proxy import RequestProxy
from ..registry import ToolRegistry


class AuthenticateParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    token: str | None = Field(default=None, description="The authentication token received from the auth process")


def register(registry: ToolRegistry, proxy: RequestProxy) -> None:
    async def authenticate(params: AuthenticateParams) -> ResultEnvelope:
        return proxy.authenticate(params.token)

    registry.register(
        "authenticate",
        "Authenticate with Google to access Gmail, Calendar, and Classroom services",
        AuthenticateParams,
        safe_invoke(authenticate),
    )
