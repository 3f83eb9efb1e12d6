"""Runtime configuration — env-driven.

Centralized settings using pydantic-settings.  Reads from a ``.env`` file
and ``REPRISE_*`` environment variables; CLI flags override on top.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from reprise.errors import ConfigError


class RepriseSettings(BaseSettings):
    """Client configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export REPRISE_API_TOKEN=xxxxxxxx
        export REPRISE_DEFAULT_APP=0a1b2c3d4e5f
        export REPRISE_LOG_LEVEL=DEBUG

    Or via .env file::

        REPRISE_API_TOKEN=xxxxxxxx
        REPRISE_NOTIFY=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REPRISE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credentials and endpoints
    api_token: str = ""
    api_base_url: str = "https://api.bitrise.io/v0.1"
    web_base_url: str = "https://app.bitrise.io"
    request_timeout: float = 30.0

    # Defaults
    default_app: str | None = None
    output_format: Literal["pretty", "json"] = "pretty"

    # Monitoring
    poll_interval: float = 10.0
    max_retries: int = 5
    notify: bool = False

    # Observability
    log_level: str = "WARNING"

    def require_token(self) -> str:
        """Return the API token or raise ``ConfigError`` if unset."""
        if not self.api_token:
            raise ConfigError(
                "No API token configured. Set REPRISE_API_TOKEN or pass --token."
            )
        return self.api_token

    def require_app(self, app_arg: str | None = None) -> str:
        """Resolve the app slug from an explicit argument or the default."""
        app_slug = app_arg or self.default_app
        if not app_slug:
            raise ConfigError(
                "No app specified. Use --app or set REPRISE_DEFAULT_APP."
            )
        return app_slug


@lru_cache(maxsize=1)
def get_settings() -> RepriseSettings:
    """Return the process-wide settings instance."""
    return RepriseSettings()
