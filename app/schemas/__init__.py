"""Public schema exports."""

from .auth import (
    AuthorizationUrlResponse,
    OAuthCallbackPayload,
    TokenRefreshResponse,
    TokenStatusResponse,
)

__all__ = [
    "AuthorizationUrlResponse",
    "OAuthCallbackPayload",
    "TokenRefreshResponse",
    "TokenStatusResponse",
]
