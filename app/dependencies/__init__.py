"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_oauth_state_encoder,
    get_soundcloud_api_client,
    get_soundcloud_oauth_client,
    get_token_cipher_service,
    get_token_guard,
    get_token_refresh_worker,
    get_token_store,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_oauth_state_encoder",
    "get_soundcloud_api_client",
    "get_soundcloud_oauth_client",
    "get_token_cipher_service",
    "get_token_guard",
    "get_token_refresh_worker",
    "get_token_store",
]
