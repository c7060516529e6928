"""Schemas related to the SoundCloud OAuth flow and token status."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.token import TokenState


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by SoundCloud.")
    state: str = Field(..., description="Opaque state token issued when starting OAuth.")


class AuthorizationUrlResponse(BaseModel):
    authorization_url: str
    state: str


class TokenStatusResponse(BaseModel):
    """Connection status derived from the stored token record."""

    connected: bool = Field(..., description="True when a non-expired token is stored.")
    state: TokenState
    expires_at: Optional[datetime] = None
    needs_refresh: bool = False


class TokenRefreshResponse(BaseModel):
    status: str = "refreshed"
    expires_at: Optional[datetime] = None


__all__ = [
    "AuthorizationUrlResponse",
    "OAuthCallbackPayload",
    "TokenRefreshResponse",
    "TokenStatusResponse",
]
