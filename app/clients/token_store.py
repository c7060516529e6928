"""SQLite-backed single-row storage for the SoundCloud token pair."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from app.models.token import TokenRecord
from app.services.errors import StoredTokenUnreadableError
from app.services.token_cipher import TokenCipherService


class SQLiteTokenStore:
    """Persist at most one encrypted token record.

    ``save`` replaces whatever is stored inside one transaction, so readers
    never observe zero or two records mid-update.
    """

    def __init__(self, db_path: str, cipher: TokenCipherService) -> None:
        self._db_path = Path(db_path)
        self._cipher = cipher
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_tokens (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    access_token_encrypted TEXT NOT NULL,
                    refresh_token_encrypted TEXT NOT NULL,
                    expires_at TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )

    def save(
        self,
        access_token: str,
        refresh_token: str,
        expires_at: Optional[datetime] = None,
    ) -> TokenRecord:
        if not access_token or not access_token.strip():
            raise ValueError("Access token must not be blank.")
        if not refresh_token or not refresh_token.strip():
            raise ValueError("Refresh token must not be blank.")

        record = TokenRecord(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            created_at=datetime.now(timezone.utc),
        )
        with self._connect() as conn:
            conn.execute("DELETE FROM oauth_tokens")
            conn.execute(
                """
                INSERT INTO oauth_tokens (
                    id, access_token_encrypted, refresh_token_encrypted,
                    expires_at, created_at
                )
                VALUES (1, ?, ?, ?, ?)
                """,
                (
                    self._cipher.encrypt(access_token),
                    self._cipher.encrypt(refresh_token),
                    expires_at.isoformat() if expires_at else None,
                    record.created_at.isoformat(),
                ),
            )
        return record

    def load_current(self) -> Optional[TokenRecord]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT access_token_encrypted, refresh_token_encrypted,
                       expires_at, created_at
                FROM oauth_tokens
                WHERE id = 1
                """
            ).fetchone()
        if not row:
            return None
        try:
            access_token = self._cipher.decrypt(row["access_token_encrypted"])
            refresh_token = self._cipher.decrypt(row["refresh_token_encrypted"])
        except ValueError as exc:
            raise StoredTokenUnreadableError(
                f"Stored SoundCloud token is unreadable; re-authenticate. ({exc})"
            ) from exc
        expires_at = row["expires_at"]
        return TokenRecord(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM oauth_tokens")

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM oauth_tokens").fetchone()
        return int(row["total"])


__all__ = ["SQLiteTokenStore"]
