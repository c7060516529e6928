"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Each factory is cached so the process holds exactly one token guard, and with
it one refresh lock, shared by every request handler.
"""

from functools import lru_cache

from app.clients import (
    OAuthStateEncoder,
    SQLiteTokenStore,
    SoundCloudApiClient,
    SoundCloudOAuthClient,
)
from app.core.config import get_settings
from app.services import TokenCipherService, TokenGuard, TokenRefreshWorker


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the SoundCloud client secret."""
    settings = _settings()
    return OAuthStateEncoder(secret_key=settings.soundcloud.client_secret)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    return TokenCipherService.from_settings(_settings())


@lru_cache()
def get_token_store() -> SQLiteTokenStore:
    """Provide the single-row token store."""
    settings = _settings()
    return SQLiteTokenStore(settings.token_db_path, cipher=get_token_cipher_service())


@lru_cache()
def get_soundcloud_oauth_client() -> SoundCloudOAuthClient:
    """Create a singleton SoundCloud OAuth client."""
    settings = _settings()
    return SoundCloudOAuthClient(
        settings.soundcloud, timeout=settings.tokens.http_timeout_seconds
    )


@lru_cache()
def get_token_guard() -> TokenGuard:
    """Provide the process-wide token guard."""
    settings = _settings()
    return TokenGuard(
        store=get_token_store(),
        oauth_client=get_soundcloud_oauth_client(),
        token_settings=settings.tokens,
    )


@lru_cache()
def get_soundcloud_api_client() -> SoundCloudApiClient:
    """Provide the SoundCloud API client bound to the token guard."""
    settings = _settings()
    return SoundCloudApiClient(
        token_guard=get_token_guard(),
        settings=settings.soundcloud,
        timeout=settings.tokens.http_timeout_seconds,
    )


@lru_cache()
def get_token_refresh_worker() -> TokenRefreshWorker:
    """Provide the background refresh worker."""
    settings = _settings()
    return TokenRefreshWorker(
        token_guard=get_token_guard(),
        api_client=get_soundcloud_api_client(),
        refresh_interval_seconds=settings.tokens.refresh_interval_seconds,
        verify_interval_seconds=settings.tokens.verify_interval_seconds,
    )


__all__ = [
    "get_oauth_state_encoder",
    "get_soundcloud_api_client",
    "get_soundcloud_oauth_client",
    "get_token_cipher_service",
    "get_token_guard",
    "get_token_refresh_worker",
    "get_token_store",
]
