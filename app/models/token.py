"""
Domain models for OAuth token persistence.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TokenState(str, Enum):
    """Lifecycle position of the stored token pair."""

    ABSENT = "absent"
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class TokenRecord(BaseModel):
    """The single SoundCloud token pair held by the store."""

    access_token: str
    refresh_token: str
    expires_at: Optional[datetime] = Field(
        None, description="Absolute expiry; unknown for records without a TTL."
    )
    created_at: datetime = Field(default_factory=_utcnow)

    def is_expired(self, *, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        current = now or _utcnow()
        return current >= _as_utc(self.expires_at)

    def is_expiring_soon(
        self,
        grace: timedelta = timedelta(hours=1),
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        """True once the token is inside the grace window before expiry."""
        if self.expires_at is None:
            return False
        current = now or _utcnow()
        return current >= _as_utc(self.expires_at) - grace

    def state(
        self,
        grace: timedelta = timedelta(hours=1),
        *,
        now: Optional[datetime] = None,
    ) -> TokenState:
        current = now or _utcnow()
        if self.is_expired(now=current):
            return TokenState.EXPIRED
        if self.is_expiring_soon(grace, now=current):
            return TokenState.EXPIRING_SOON
        return TokenState.VALID


class TokenPair(BaseModel):
    """Tokens obtained from an authorization code exchange."""

    access_token: str
    refresh_token: str
    expires_at: Optional[datetime] = None


__all__ = ["TokenPair", "TokenRecord", "TokenState"]
