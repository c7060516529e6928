"""Expose constructed client wrappers."""

from .soundcloud_api import SoundCloudApiClient
from .soundcloud_auth import (
    OAuthStateEncoder,
    OAuthTokenEndpointError,
    SoundCloudOAuthClient,
    TokenGrant,
)
from .token_store import SQLiteTokenStore

__all__ = [
    "OAuthStateEncoder",
    "OAuthTokenEndpointError",
    "SQLiteTokenStore",
    "SoundCloudApiClient",
    "SoundCloudOAuthClient",
    "TokenGrant",
]
