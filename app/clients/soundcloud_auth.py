"""
SoundCloud OAuth utilities.

These helpers build the consent URL and talk to the token endpoint for both
the authorization code and refresh token grants.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from fastapi import HTTPException, status

from app.core.config import SoundCloudSettings

logger = logging.getLogger(__name__)


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        return json.loads(serialized)


class OAuthTokenEndpointError(Exception):
    """Raised when the token endpoint fails or returns an unusable payload."""

    def __init__(self, detail: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


@dataclass(slots=True)
class TokenGrant:
    """Parsed token endpoint response."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def _parse_expires_in(value: Any) -> Optional[int]:
    """Accept numbers and numeric strings; anything else means unknown."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


class SoundCloudOAuthClient:
    """Build SoundCloud authorization URLs and call the token endpoint."""

    def __init__(
        self,
        settings: SoundCloudSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    @property
    def client_id(self) -> str:
        return self._settings.client_id

    def build_authorization_url(self, state: str) -> str:
        """Construct the SoundCloud consent URL."""
        params = {
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "response_type": "code",
            "state": state,
        }
        return f"{self._settings.auth_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """
        Exchange an authorization code for tokens.

        SoundCloud always issues a refresh token for this grant, so a payload
        without one is rejected.
        """
        payload = {
            "grant_type": "authorization_code",
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "redirect_uri": str(self._settings.redirect_uri),
            "code": code,
        }
        grant = await self._request_token(payload)
        if not grant.refresh_token:
            raise OAuthTokenEndpointError(
                "Incomplete token payload returned from SoundCloud: missing refresh_token."
            )
        return grant

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "grant_type": "refresh_token",
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "refresh_token": refresh_token,
        }
        return await self._request_token(payload)

    async def _request_token(self, payload: Dict[str, str]) -> TokenGrant:
        headers = {
            "Accept": "application/json",
            "User-Agent": self._settings.user_agent,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._settings.token_url, data=payload, headers=headers
                )
        except httpx.HTTPError as exc:
            logger.warning(
                "Token endpoint unreachable during %s grant", payload["grant_type"]
            )
            raise OAuthTokenEndpointError(
                f"Token endpoint request failed: {exc!r}"
            ) from exc

        if not response.is_success:
            raise OAuthTokenEndpointError(
                response.text or response.reason_phrase,
                status_code=response.status_code,
            )

        try:
            token_payload = response.json()
        except ValueError as exc:
            raise OAuthTokenEndpointError(
                "Token endpoint returned a non-JSON body.",
                status_code=response.status_code,
            ) from exc

        if not isinstance(token_payload, dict) or not token_payload.get("access_token"):
            raise OAuthTokenEndpointError(
                "No access token in token response.",
                status_code=response.status_code,
            )

        return TokenGrant(
            access_token=token_payload["access_token"],
            refresh_token=token_payload.get("refresh_token") or None,
            expires_in=_parse_expires_in(token_payload.get("expires_in")),
        )


__all__ = [
    "OAuthStateEncoder",
    "OAuthTokenEndpointError",
    "SoundCloudOAuthClient",
    "TokenGrant",
]
