"""Typed failures raised by the token lifecycle layer."""

from __future__ import annotations

from typing import Optional


class SoundWrappedError(Exception):
    """Base class for errors the API layer translates into HTTP responses."""

    status_code: int = 500
    title: str = "Unexpected error"


class TokenExchangeError(SoundWrappedError):
    """Authorization code exchange failed (bad code, upstream rejection, network)."""

    status_code = 400
    title = "Token exchange failed"


class TokenRefreshError(SoundWrappedError):
    """Refreshing the access token failed (missing or rejected refresh token)."""

    status_code = 401
    title = "Token refresh failed"


class ApiRequestError(SoundWrappedError):
    """A guarded SoundCloud call failed for good.

    ``upstream_status`` is the status SoundCloud answered with, when there was
    a response at all.
    """

    status_code = 502
    title = "API request failed"

    def __init__(self, message: str, *, upstream_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class StoredTokenUnreadableError(ApiRequestError):
    """The stored token record cannot be decrypted; the user must reconnect."""

    status_code = 401
    title = "Stored token unreadable"


__all__ = [
    "ApiRequestError",
    "SoundWrappedError",
    "StoredTokenUnreadableError",
    "TokenExchangeError",
    "TokenRefreshError",
]
