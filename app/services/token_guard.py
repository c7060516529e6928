"""
Keep the stored SoundCloud token usable for outbound API calls.

Every authenticated request goes through :meth:`TokenGuard.call_with_auto_refresh`,
which refreshes ahead of a predictable expiry, retries once after a 401 and
serializes the refresh-and-persist sequence so concurrent requests never race
each other to overwrite the token record.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

import httpx

from app.clients.soundcloud_auth import OAuthTokenEndpointError
from app.core.config import TokenSettings
from app.models.token import TokenPair, TokenRecord, TokenState
from app.services.errors import ApiRequestError, TokenExchangeError, TokenRefreshError

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.clients.soundcloud_auth import SoundCloudOAuthClient
    from app.clients.token_store import SQLiteTokenStore

logger = logging.getLogger(__name__)

# Receives the bearer token to send and performs one HTTP call with it.
AuthorizedRequest = Callable[[str], Awaitable[httpx.Response]]


class TokenGuard:
    """Owns the SoundCloud token pair and wraps calls that need it."""

    def __init__(
        self,
        store: "SQLiteTokenStore",
        oauth_client: "SoundCloudOAuthClient",
        token_settings: TokenSettings,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._grace = timedelta(seconds=token_settings.refresh_grace_seconds)
        self._default_ttl = timedelta(seconds=token_settings.default_ttl_seconds)
        self._refresh_lock = asyncio.Lock()

    # Read accessors

    def current_record(self) -> Optional[TokenRecord]:
        return self._store.load_current()

    def get_access_token(self) -> Optional[str]:
        record = self._store.load_current()
        return record.access_token if record else None

    def get_refresh_token(self) -> Optional[str]:
        record = self._store.load_current()
        return record.refresh_token if record else None

    def has_valid_token(self) -> bool:
        record = self._store.load_current()
        return record is not None and not record.is_expired()

    def needs_refresh(self) -> bool:
        record = self._store.load_current()
        return record is not None and record.is_expiring_soon(self._grace)

    def token_state(self) -> TokenState:
        record = self._store.load_current()
        if record is None:
            return TokenState.ABSENT
        return record.state(self._grace)

    def disconnect(self) -> None:
        self._store.clear()
        logger.info("SoundCloud token record cleared")

    # OAuth grants

    async def exchange_authorization_code(self, code: Optional[str]) -> TokenPair:
        """Trade a one-time authorization code for a token pair and persist it."""
        if not code or not code.strip():
            raise TokenExchangeError("Authorization code must not be empty.")

        async with self._refresh_lock:
            issued_at = datetime.now(timezone.utc)
            try:
                grant = await self._oauth.exchange_authorization_code(code)
            except OAuthTokenEndpointError as exc:
                raise TokenExchangeError(
                    f"Failed to exchange authorization code: {exc.detail}"
                ) from exc

            expires_at = self._expiry_from(grant.expires_in, issued_at)
            # The client rejects authorization_code grants without a refresh token.
            self._store.save(grant.access_token, grant.refresh_token, expires_at)

        logger.info("Stored SoundCloud tokens; access token expires at %s", expires_at.isoformat())
        return TokenPair(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=expires_at,
        )

    async def refresh_access_token(self, refresh_token: Optional[str]) -> str:
        """Obtain and persist a new access token, returning it."""
        if not refresh_token or not refresh_token.strip():
            raise TokenRefreshError("Missing refresh token; cannot refresh access token.")

        async with self._refresh_lock:
            return await self._refresh_locked(refresh_token)

    async def refresh_stored_token(self, seen_refresh_token: Optional[str] = None) -> str:
        """
        Refresh using whatever refresh token is stored when the lock is acquired.

        ``seen_refresh_token`` is the refresh token the caller read earlier. If
        the stored one differs, a concurrent refresh already rotated it and the
        stored access token is returned without calling SoundCloud again.
        """
        async with self._refresh_lock:
            record = self._store.load_current()
            if record is None:
                raise TokenRefreshError("Missing refresh token; cannot refresh access token.")
            if seen_refresh_token is not None and record.refresh_token != seen_refresh_token:
                logger.debug("Refresh token already rotated by a concurrent refresh")
                return record.access_token
            return await self._refresh_locked(record.refresh_token)

    async def _refresh_locked(self, refresh_token: str) -> str:
        issued_at = datetime.now(timezone.utc)
        try:
            grant = await self._oauth.refresh_token(refresh_token)
        except OAuthTokenEndpointError as exc:
            raise TokenRefreshError(f"Failed to refresh access token: {exc.detail}") from exc

        # Providers may rotate the refresh token or keep it stable.
        next_refresh_token = grant.refresh_token or refresh_token
        expires_at = self._expiry_from(grant.expires_in, issued_at)
        self._store.save(grant.access_token, next_refresh_token, expires_at)
        logger.info(
            "Refreshed SoundCloud access token (refresh token %s); expires at %s",
            "rotated" if grant.refresh_token else "kept",
            expires_at.isoformat(),
        )
        return grant.access_token

    def _expiry_from(self, expires_in: Optional[int], issued_at: datetime) -> datetime:
        if expires_in is None:
            return issued_at + self._default_ttl
        return issued_at + timedelta(seconds=expires_in)

    # Guarded calls

    async def call_with_auto_refresh(self, request: AuthorizedRequest) -> httpx.Response:
        """
        Run ``request`` with a valid bearer token.

        At most one refresh happens per call: either proactively, when the
        stored token is inside the grace window, or reactively after a 401.
        A 401 answered to a token obtained during this call is final.
        """
        record = self._store.load_current()
        if record is None:
            raise ApiRequestError("No access token available. User must authenticate first.")

        access_token = record.access_token
        refreshed = False
        if record.is_expiring_soon(self._grace):
            logger.info("Access token expiring soon; refreshing before the request")
            access_token = await self._replace_stale_token(access_token)
            refreshed = True

        response = await self._send(request, access_token, after_refresh=refreshed)
        if response.status_code != HTTPStatus.UNAUTHORIZED:
            return self._checked(response, after_refresh=refreshed)

        if refreshed:
            raise ApiRequestError(
                "SoundCloud rejected a freshly refreshed access token (401).",
                upstream_status=response.status_code,
            )

        logger.info("SoundCloud answered 401; refreshing access token and retrying once")
        access_token = await self._replace_stale_token(access_token)
        response = await self._send(request, access_token, after_refresh=True)
        if response.status_code == HTTPStatus.UNAUTHORIZED:
            raise ApiRequestError(
                "Request failed after valid refresh: SoundCloud rejected the new access token (401).",
                upstream_status=response.status_code,
            )
        return self._checked(response, after_refresh=True)

    async def _replace_stale_token(self, stale_access_token: str) -> str:
        """Refresh ``stale_access_token`` unless a concurrent caller already replaced it."""
        async with self._refresh_lock:
            record = self._store.load_current()
            if record is None:
                raise ApiRequestError(
                    "Failed to refresh access token: the SoundCloud connection was removed."
                )
            if record.access_token != stale_access_token:
                logger.debug("Reusing access token refreshed by a concurrent request")
                return record.access_token
            try:
                return await self._refresh_locked(record.refresh_token)
            except TokenRefreshError as exc:
                raise ApiRequestError(
                    f"Failed to refresh access token during request: {exc}"
                ) from exc

    @staticmethod
    async def _send(
        request: AuthorizedRequest, access_token: str, *, after_refresh: bool
    ) -> httpx.Response:
        try:
            return await request(access_token)
        except httpx.HTTPStatusError as exc:
            return exc.response
        except httpx.HTTPError as exc:
            prefix = "Request failed after valid refresh" if after_refresh else "Request failed"
            raise ApiRequestError(
                f"{prefix}: SoundCloud API unreachable or timed out ({exc!r})"
            ) from exc

    @staticmethod
    def _checked(response: httpx.Response, *, after_refresh: bool) -> httpx.Response:
        if response.is_success:
            return response
        prefix = "Request failed after valid refresh" if after_refresh else "Request failed"
        raise ApiRequestError(
            f"{prefix}: SoundCloud returned HTTP {response.status_code}: {response.text[:200]}",
            upstream_status=response.status_code,
        )


__all__ = ["AuthorizedRequest", "TokenGuard"]
