"""Background worker that keeps the SoundCloud token fresh between requests."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Optional

from app.services.errors import (
    ApiRequestError,
    StoredTokenUnreadableError,
    TokenRefreshError,
)

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.clients.soundcloud_api import SoundCloudApiClient
    from app.services.token_guard import TokenGuard

logger = logging.getLogger(__name__)


class TokenRefreshWorker:
    """Refresh on a fixed cadence and periodically verify the token against ``/me``."""

    def __init__(
        self,
        token_guard: "TokenGuard",
        api_client: "SoundCloudApiClient",
        *,
        refresh_interval_seconds: float = 21600,
        verify_interval_seconds: float = 43200,
    ) -> None:
        self._guard = token_guard
        self._api = api_client
        self._refresh_interval = refresh_interval_seconds
        self._verify_interval = verify_interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def refresh_once(self) -> bool:
        """Refresh the stored token; returns whether it is fresh afterwards."""
        try:
            refresh_token = self._guard.get_refresh_token()
            if not refresh_token:
                logger.debug("No refresh token stored; skipping scheduled refresh")
                return False
            await self._guard.refresh_stored_token(refresh_token)
        except (TokenRefreshError, StoredTokenUnreadableError) as exc:
            # Retried on the next cycle.
            logger.warning("Scheduled token refresh failed: %s", exc)
            return False
        logger.info("Token refreshed by scheduled task")
        return True

    async def verify_once(self) -> bool:
        """Make a lightweight API call; refresh when it fails."""
        try:
            if self._guard.current_record() is None:
                logger.debug("No token stored; skipping verification")
                return False
        except StoredTokenUnreadableError as exc:
            logger.warning("Token verification skipped: %s", exc)
            return False

        try:
            await self._api.get_user_profile()
        except ApiRequestError as exc:
            logger.warning("Token verification failed: %s", exc)
            await self.refresh_once()
            return False
        logger.info("Stored SoundCloud token is still valid")
        return True

    async def run_forever(self) -> None:
        loop = asyncio.get_running_loop()
        next_refresh = loop.time() + self._refresh_interval
        next_verify = loop.time() + self._verify_interval

        while True:
            now = loop.time()
            if now >= next_refresh:
                await self._run_step(self.refresh_once, "refresh")
                next_refresh = now + self._refresh_interval
            if now >= next_verify:
                await self._run_step(self.verify_once, "verification")
                next_verify = now + self._verify_interval
            await asyncio.sleep(max(0.0, min(next_refresh, next_verify) - loop.time()))

    async def _run_step(self, step, name: str) -> None:
        try:
            await step()
        except Exception:  # pragma: no cover - keep the loop alive
            logger.exception("Unexpected error in scheduled token %s", name)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="token-refresh-worker")
            logger.info("Token refresh worker started")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Token refresh worker stopped")


__all__ = ["TokenRefreshWorker"]
