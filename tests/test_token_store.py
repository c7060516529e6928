from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.clients.token_store import SQLiteTokenStore
from app.models.token import TokenRecord, TokenState
from app.services.errors import SoundWrappedError, StoredTokenUnreadableError
from app.services.token_cipher import TokenCipherService


def test_save_then_load_returns_same_tokens(token_store: SQLiteTokenStore) -> None:
    expires_at = datetime.now(timezone.utc) + timedelta(hours=10)

    token_store.save("access-1", "refresh-1", expires_at)
    record = token_store.load_current()

    assert record is not None
    assert record.access_token == "access-1"
    assert record.refresh_token == "refresh-1"
    assert record.expires_at == expires_at


def test_second_save_replaces_first(token_store: SQLiteTokenStore) -> None:
    token_store.save("A_access", "A_refresh")
    token_store.save("B_access", "B_refresh")

    record = token_store.load_current()
    assert record is not None
    assert (record.access_token, record.refresh_token) == ("B_access", "B_refresh")
    assert token_store.count() == 1


def test_tokens_are_encrypted_at_rest(token_store: SQLiteTokenStore) -> None:
    token_store.save("plain-access", "plain-refresh")

    with token_store._connect() as conn:
        row = conn.execute("SELECT * FROM oauth_tokens").fetchone()

    assert row["access_token_encrypted"] != "plain-access"
    assert row["refresh_token_encrypted"] != "plain-refresh"


def test_clear_removes_record(token_store: SQLiteTokenStore) -> None:
    token_store.save("access", "refresh")
    token_store.clear()

    assert token_store.load_current() is None
    assert token_store.count() == 0


def test_load_without_record_returns_none(token_store: SQLiteTokenStore) -> None:
    assert token_store.load_current() is None


@pytest.mark.parametrize("access, refresh", [("", "refresh"), ("access", "  ")])
def test_save_rejects_blank_tokens(
    token_store: SQLiteTokenStore, access: str, refresh: str
) -> None:
    with pytest.raises(ValueError):
        token_store.save(access, refresh)


def test_record_persists_across_store_instances(tmp_path, cipher) -> None:
    db_path = str(tmp_path / "nested" / "tokens.db")
    SQLiteTokenStore(db_path, cipher=cipher).save("access", "refresh")

    record = SQLiteTokenStore(db_path, cipher=cipher).load_current()
    assert record is not None
    assert record.access_token == "access"


def test_record_state_follows_wall_clock() -> None:
    now = datetime.now(timezone.utc)
    grace = timedelta(hours=1)

    fresh = TokenRecord(access_token="a", refresh_token="r", expires_at=now + timedelta(hours=5))
    closing = TokenRecord(access_token="a", refresh_token="r", expires_at=now + timedelta(minutes=30))
    expired = TokenRecord(access_token="a", refresh_token="r", expires_at=now - timedelta(seconds=1))
    unknown = TokenRecord(access_token="a", refresh_token="r", expires_at=None)

    assert fresh.state(grace, now=now) is TokenState.VALID
    assert closing.state(grace, now=now) is TokenState.EXPIRING_SOON
    assert expired.state(grace, now=now) is TokenState.EXPIRED
    assert expired.is_expiring_soon(grace, now=now)
    assert unknown.state(grace, now=now) is TokenState.VALID
    assert not unknown.is_expired(now=now)


def test_load_with_changed_secret_raises_typed_error(tmp_path) -> None:
    db_path = str(tmp_path / "tokens.db")
    SQLiteTokenStore(db_path, cipher=TokenCipherService(secret="old")).save("a", "r")
    rotated = SQLiteTokenStore(db_path, cipher=TokenCipherService(secret="new"))

    with pytest.raises(StoredTokenUnreadableError) as excinfo:
        rotated.load_current()

    assert isinstance(excinfo.value, SoundWrappedError)
    assert excinfo.value.status_code == 401
