from __future__ import annotations

import asyncio

import pytest

from app.services.errors import ApiRequestError, StoredTokenUnreadableError, TokenRefreshError
from app.services.token_refresh import TokenRefreshWorker


class StubGuard:
    def __init__(self, *, refresh_token: str | None = "valid", fail: bool = False) -> None:
        self._refresh_token = refresh_token
        self._fail = fail
        self.refreshed_with: list[str] = []

    def get_refresh_token(self) -> str | None:
        return self._refresh_token

    def current_record(self):
        return object() if self._refresh_token else None

    async def refresh_stored_token(self, seen_refresh_token: str | None = None) -> str:
        self.refreshed_with.append(seen_refresh_token)
        if self._fail:
            raise TokenRefreshError("invalid_grant")
        return "new"


class StubApi:
    def __init__(self, *, fail: bool = False) -> None:
        self._fail = fail
        self.calls = 0

    async def get_user_profile(self) -> dict:
        self.calls += 1
        if self._fail:
            raise ApiRequestError("Request failed: SoundCloud returned HTTP 500")
        return {"username": "testuser"}


@pytest.mark.asyncio
async def test_refresh_once_skips_without_tokens() -> None:
    guard = StubGuard(refresh_token=None)
    worker = TokenRefreshWorker(guard, StubApi())

    assert await worker.refresh_once() is False
    assert guard.refreshed_with == []


@pytest.mark.asyncio
async def test_refresh_once_refreshes_stored_token() -> None:
    guard = StubGuard()
    worker = TokenRefreshWorker(guard, StubApi())

    assert await worker.refresh_once() is True
    assert guard.refreshed_with == ["valid"]


@pytest.mark.asyncio
async def test_refresh_failure_is_logged_not_raised(caplog) -> None:
    worker = TokenRefreshWorker(StubGuard(fail=True), StubApi())

    assert await worker.refresh_once() is False
    assert "Scheduled token refresh failed" in caplog.text


@pytest.mark.asyncio
async def test_verify_refreshes_when_profile_call_fails() -> None:
    guard = StubGuard()
    api = StubApi(fail=True)
    worker = TokenRefreshWorker(guard, api)

    assert await worker.verify_once() is False
    assert api.calls == 1
    assert guard.refreshed_with == ["valid"]


@pytest.mark.asyncio
async def test_verify_leaves_valid_token_alone() -> None:
    guard = StubGuard()
    worker = TokenRefreshWorker(guard, StubApi())

    assert await worker.verify_once() is True
    assert guard.refreshed_with == []


@pytest.mark.asyncio
async def test_worker_runs_on_schedule_and_stops() -> None:
    guard = StubGuard()
    api = StubApi()
    worker = TokenRefreshWorker(
        guard, api, refresh_interval_seconds=0.01, verify_interval_seconds=0.02
    )

    worker.start()
    await asyncio.sleep(0.1)
    await worker.stop()

    assert guard.refreshed_with
    assert api.calls >= 1


class UnreadableGuard(StubGuard):
    def get_refresh_token(self) -> str | None:
        raise StoredTokenUnreadableError("Stored SoundCloud token is unreadable; re-authenticate.")

    def current_record(self):
        raise StoredTokenUnreadableError("Stored SoundCloud token is unreadable; re-authenticate.")


@pytest.mark.asyncio
async def test_unreadable_token_is_logged_not_raised(caplog) -> None:
    guard = UnreadableGuard()
    api = StubApi()
    worker = TokenRefreshWorker(guard, api)

    assert await worker.refresh_once() is False
    assert await worker.verify_once() is False
    assert api.calls == 0
    assert "re-authenticate" in caplog.text
