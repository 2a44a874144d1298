"""Environment-based configuration using pydantic-settings.

Example:
    >>> from gmailmcp.settings import get_settings
    >>> settings = get_settings()
    >>> settings.base_url
    'https://small-mouse-2759.arnabbhowmik019.workers.dev'

    # Or with environment variables:
    # GMAILMCP_BASE_URL=https://backend.example.com
    # GMAILMCP_LOG_LEVEL=DEBUG
    # GMAILMCP_HTTP_TIMEOUT=30
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, PositiveFloat, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://small-mouse-2759.arnabbhowmik019.workers.dev"


class HttpSettings(BaseSettings):
    """Outbound HTTP client configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GMAILMCP_HTTP_",
        extra="ignore",
    )

    # None waits indefinitely
    timeout: PositiveFloat | None = Field(default=None, description="Backend request timeout in seconds")
    verify_ssl: bool = True
    user_agent: str = "gmailmcp/0.1"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GMAILMCP_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ServerSettings(BaseSettings):
    """Inbound transport configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GMAILMCP_SERVER_",
        extra="ignore",
    )

    name: str = "Gmail MCP"
    version: str = "0.1.0"
    host: str = "127.0.0.1"
    port: int = Field(default=8787, ge=1, le=65535)


class GmailMCPSettings(BaseSettings):
    """Root settings.

    Loads configuration from environment variables with the GMAILMCP_ prefix
    and an optional ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="GMAILMCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Backend API base URL")

    http: HttpSettings = Field(default_factory=HttpSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @field_validator("base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        """Paths are appended verbatim, so the base must not end with '/'."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v


@lru_cache(maxsize=1)
def get_settings() -> GmailMCPSettings:
    """Get the process-wide settings instance (cached)."""
    return GmailMCPSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
