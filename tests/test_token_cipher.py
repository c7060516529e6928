try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from app.core.config import get_settings
from app.services.token_cipher import TokenCipherService


def test_token_cipher_roundtrip() -> None:
    cipher = TokenCipherService(secret="super-secret-key")

    encrypted = cipher.encrypt("soundcloud-access-token")
    assert encrypted != "soundcloud-access-token"
    assert cipher.decrypt(encrypted) == "soundcloud-access-token"


def test_token_cipher_rejects_ciphertext_from_another_secret() -> None:
    encrypted = TokenCipherService(secret="old-secret").encrypt("token")

    with pytest.raises(ValueError, match="rotated"):
        TokenCipherService(secret="new-secret").decrypt(encrypted)


def test_token_cipher_requires_secret() -> None:
    with pytest.raises(ValueError):
        TokenCipherService(secret="")


def test_from_settings_falls_back_to_client_secret() -> None:
    settings = get_settings().model_copy(deep=True)
    settings.security.token_encryption_secret = None

    from_settings = TokenCipherService.from_settings(settings)
    from_client_secret = TokenCipherService(secret=settings.soundcloud.client_secret)

    assert from_client_secret.decrypt(from_settings.encrypt("token")) == "token"
