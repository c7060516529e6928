"""Service layer exports."""

from .errors import (
    ApiRequestError,
    SoundWrappedError,
    StoredTokenUnreadableError,
    TokenExchangeError,
    TokenRefreshError,
)
from .token_cipher import TokenCipherService
from .token_guard import TokenGuard
from .token_refresh import TokenRefreshWorker

__all__ = [
    "ApiRequestError",
    "SoundWrappedError",
    "StoredTokenUnreadableError",
    "TokenCipherService",
    "TokenExchangeError",
    "TokenGuard",
    "TokenRefreshError",
    "TokenRefreshWorker",
]
