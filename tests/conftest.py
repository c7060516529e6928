"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for rootdir-less collection
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from app.clients.token_store import SQLiteTokenStore
from app.core.config import SoundCloudSettings, TokenSettings
from app.services.token_cipher import TokenCipherService


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="secret-key")


@pytest.fixture
def token_store(tmp_path, cipher) -> SQLiteTokenStore:
    return SQLiteTokenStore(str(tmp_path / "tokens.db"), cipher=cipher)


@pytest.fixture
def soundcloud_settings() -> SoundCloudSettings:
    return SoundCloudSettings(
        SOUNDCLOUD_CLIENT_ID="client",
        SOUNDCLOUD_CLIENT_SECRET="secret",
        SOUNDCLOUD_REDIRECT_URI="https://example.com/callback",
        SOUNDCLOUD_API_BASE_URL="https://api.soundcloud.test",
        SOUNDCLOUD_TOKEN_URL="https://api.soundcloud.test/oauth2/token",
    )


@pytest.fixture
def token_settings() -> TokenSettings:
    return TokenSettings()
