"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token guard and the
background refresh worker share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class SoundCloudSettings(BaseSettings):
    """Configuration required for interacting with the SoundCloud API."""

    model_config = SettingsConfigDict(extra="ignore")

    client_id: str = Field(..., validation_alias="SOUNDCLOUD_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="SOUNDCLOUD_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="SOUNDCLOUD_REDIRECT_URI")
    api_base_url: str = Field(
        "https://api.soundcloud.com", validation_alias="SOUNDCLOUD_API_BASE_URL"
    )
    auth_url: str = Field(
        "https://secure.soundcloud.com/authorize",
        validation_alias="SOUNDCLOUD_AUTH_URL",
    )
    token_url: str = Field(
        "https://api.soundcloud.com/oauth2/token",
        validation_alias="SOUNDCLOUD_TOKEN_URL",
    )
    user_agent: str = Field(
        "SoundWrapped/1.0", validation_alias="SOUNDCLOUD_USER_AGENT"
    )


class TokenSettings(BaseSettings):
    """Token lifecycle tuning.

    The grace window and default TTL are heuristics rather than documented
    provider behavior, so both stay overridable from the environment.
    """

    model_config = SettingsConfigDict(extra="ignore")

    refresh_grace_seconds: int = Field(
        3600,
        validation_alias="TOKEN_REFRESH_GRACE_SECONDS",
        description="Refresh proactively once a token is this close to expiry.",
    )
    default_ttl_seconds: int = Field(
        36000,
        validation_alias="TOKEN_DEFAULT_TTL_SECONDS",
        description="Lifetime assumed when the provider omits expires_in.",
    )
    http_timeout_seconds: float = Field(10.0, validation_alias="TOKEN_HTTP_TIMEOUT_SECONDS")
    refresh_interval_seconds: int = Field(
        21600, validation_alias="TOKEN_REFRESH_INTERVAL_SECONDS"
    )
    verify_interval_seconds: int = Field(
        43200, validation_alias="TOKEN_VERIFY_INTERVAL_SECONDS"
    )
    refresh_worker_enabled: bool = Field(
        True, validation_alias="TOKEN_REFRESH_WORKER_ENABLED"
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    token_db_path: str = Field(
        "data/soundwrapped.db", validation_alias="TOKEN_DB_PATH"
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    tokens: TokenSettings = Field(default_factory=TokenSettings)
    soundcloud: SoundCloudSettings = Field(default_factory=SoundCloudSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SecuritySettings",
    "SoundCloudSettings",
    "TokenSettings",
    "get_settings",
]
