"""Test helper that normalizes sys.path and environment defaults."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


_DEFAULT_ENV_VARS: dict[str, str] = {
    "SOUNDCLOUD_CLIENT_ID": "test-client-id",
    "SOUNDCLOUD_CLIENT_SECRET": "test-client-secret",
    "SOUNDCLOUD_REDIRECT_URI": "https://example.com/callback",
    "TOKEN_ENCRYPTION_SECRET": "test-secret",
    "TOKEN_DB_PATH": str(Path(tempfile.gettempdir()) / "soundwrapped-test.db"),
    "TOKEN_REFRESH_WORKER_ENABLED": "false",
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)
