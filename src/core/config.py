"""Client configuration.

Centralizes environment variables (pydantic-settings) so the CLI and the
adapters read connection settings the same way. Command-line options take
precedence and are applied with `AppSettings.merged`.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core import __version__


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "rtr"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "rtr"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "rtr"
    return Path.home() / ".config" / "rtr"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Connection and client settings.

    Every field can be set through an `RTR_` environment variable or a `.env`
    file; the matching CLI option wins when given.
    """

    model_config = SettingsConfigDict(
        env_prefix="RTR_",
        extra="ignore",
        case_sensitive=False,
        # Project .env first, then the per-user one.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api: str | None = Field(
        default=None,
        description="Endpoint of the routing API.",
    )
    client_id: str | None = Field(
        default=None,
        description="Id of the OAuth client.",
    )
    client_secret: str | None = Field(
        default=None,
        description="Secret of the OAuth client.",
    )
    oauth_url: str | None = Field(
        default=None,
        description="URL of the OAuth (UAA) server.",
    )
    skip_tls_verification: bool = Field(
        default=False,
        description="Skip TLS certificate verification.",
    )
    ca_certs: Path | None = Field(
        default=None,
        description="CA bundle trusted in addition to the system ones.",
    )

    trace: str | None = Field(
        default=None,
        description="RTR_TRACE: 'true' prints request, response and event diagnostics.",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per request (seconds). Event streams have no read timeout.",
    )
    user_agent: str = Field(
        default=f"rtr/{__version__}",
        min_length=1,
        description="User-Agent sent with every request.",
    )
    token_expiration_buffer_seconds: int = Field(
        default=30,
        ge=0,
        description="Refresh the OAuth token this many seconds before it expires.",
    )

    def merged(self, **overrides: Any) -> "AppSettings":
        """Copy with the given non-None values applied (CLI options)."""

        update = {key: value for key, value in overrides.items() if value is not None}
        if not update:
            return self
        return self.model_copy(update=update)
