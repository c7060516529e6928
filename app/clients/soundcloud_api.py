"""SoundCloud REST client whose every call is authorized through the token guard."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import SoundCloudSettings
from app.services.errors import ApiRequestError

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.services.token_guard import TokenGuard

logger = logging.getLogger(__name__)


class SoundCloudApiClient:
    """Read the authenticated user's SoundCloud data."""

    MAX_PAGES = 10
    PAGE_SIZE = 50

    def __init__(
        self,
        token_guard: "TokenGuard",
        settings: SoundCloudSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._guard = token_guard
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    async def get_user_profile(self) -> Dict[str, Any]:
        body = await self.get_json(self._url("/me"))
        if not isinstance(body, dict):
            raise ApiRequestError("Unexpected profile payload returned by SoundCloud.")
        return body

    async def get_user_tracks(self) -> List[Dict[str, Any]]:
        return await self.fetch_paginated(self._url("/me/tracks", limit=self.PAGE_SIZE))

    async def get_user_likes(self) -> List[Dict[str, Any]]:
        return await self.fetch_paginated(self._url("/me/favorites", limit=self.PAGE_SIZE))

    async def get_user_playlists(self) -> List[Dict[str, Any]]:
        return await self.fetch_paginated(self._url("/me/playlists", limit=self.PAGE_SIZE))

    async def get_user_followers(self) -> List[Dict[str, Any]]:
        return await self.fetch_paginated(self._url("/me/followers", limit=self.PAGE_SIZE))

    async def get_user_followings(self) -> List[Dict[str, Any]]:
        return await self.fetch_paginated(self._url("/me/followings", limit=self.PAGE_SIZE))

    async def get_json(self, url: str) -> Any:
        """GET ``url`` with a valid bearer token and decode the JSON body."""

        async def _request(access_token: str) -> httpx.Response:
            headers = {
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json; charset=utf-8",
                "User-Agent": self._settings.user_agent,
            }
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                return await client.get(url, headers=headers)

        response = await self._guard.call_with_auto_refresh(_request)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiRequestError(
                f"SoundCloud returned a non-JSON body for {url}."
            ) from exc

    async def fetch_paginated(self, url: str) -> List[Dict[str, Any]]:
        """
        Follow ``next_href`` links, collecting ``collection`` items.

        A failure after the first page returns what was gathered so far; a
        failure on the first page propagates.
        """
        results: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        pages = 0

        while next_url and pages < self.MAX_PAGES:
            try:
                body = await self.get_json(next_url)
            except ApiRequestError:
                if pages == 0:
                    raise
                logger.warning(
                    "Pagination stopped at page %d; returning %d items", pages, len(results)
                )
                break

            if isinstance(body, list):
                items, next_url = body, None
            elif isinstance(body, dict):
                items = body.get("collection") or []
                next_url = body.get("next_href")
            else:
                logger.warning("Unexpected page payload from %s; stopping pagination", next_url)
                break
            results.extend(item for item in items if isinstance(item, dict))
            pages += 1

        return results

    def _url(self, path: str, **params: Any) -> str:
        base = f"{self._settings.api_base_url.rstrip('/')}{path}"
        if params:
            params.setdefault("linked_partitioning", "true")
            return f"{base}?{urlencode(params)}"
        return base


__all__ = ["SoundCloudApiClient"]
