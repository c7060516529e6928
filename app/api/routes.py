"""
FastAPI routes for the SoundWrapped backend.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from app.dependencies import (
    get_app_settings,
    get_oauth_state_encoder,
    get_soundcloud_api_client,
    get_soundcloud_oauth_client,
    get_token_guard,
)
from app.schemas import (
    AuthorizationUrlResponse,
    OAuthCallbackPayload,
    TokenRefreshResponse,
    TokenStatusResponse,
)
from app.services.errors import TokenExchangeError, TokenRefreshError

router = APIRouter()
logger = logging.getLogger(__name__)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


def _with_auth_flag(target: str, outcome: str) -> str:
    return str(httpx.URL(target).copy_merge_params({"auth": outcome}))


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/soundcloud/authorize", status_code=HTTPStatus.OK)
async def start_soundcloud_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_soundcloud_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to on successful authentication.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the SoundCloud consent screen.",
    ),
) -> Any:
    """
    Kick off the OAuth flow by generating a state token and authorization URL.
    """
    state_payload = {
        "nonce": uuid.uuid4().hex,
        "redirect_to": redirect_to,
        "issued_at": datetime.now(timezone.utc).isoformat(),
    }
    state = state_encoder.encode(state_payload)
    authorization_url = oauth_client.build_authorization_url(state=state)

    if redirect or _wants_html(request):
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return AuthorizationUrlResponse(authorization_url=authorization_url, state=state)


@router.post("/auth/soundcloud/callback", status_code=HTTPStatus.OK)
async def handle_soundcloud_oauth_callback(
    payload: OAuthCallbackPayload,
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_guard: Annotated[Any, Depends(get_token_guard)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Validate the state token, exchange the code and persist the tokens."""
    state_data = state_encoder.decode(payload.state)

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )

    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc

    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    now = datetime.now(timezone.utc)
    if now - issued_at > timedelta(seconds=settings.oauth.state_ttl_seconds):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    pair = await token_guard.exchange_authorization_code(payload.code)
    logger.info("SoundCloud account connected")

    return {
        "status": "connected",
        "expires_at": pair.expires_at.isoformat() if pair.expires_at else None,
        "redirect_to": state_data.get("redirect_to"),
    }


@router.get("/auth/soundcloud/callback", status_code=HTTPStatus.OK)
async def handle_soundcloud_oauth_callback_get(
    request: Request,
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_guard: Annotated[Any, Depends(get_token_guard)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str | None = Query(default=None, description="OAuth state token."),
    code: str | None = Query(
        default=None, description="Authorization code returned by SoundCloud."
    ),
    error: str | None = Query(
        default=None, description="Error reported by SoundCloud when consent was not granted."
    ),
    error_description: str | None = Query(default=None),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    browser_redirect = redirect or _wants_html(request)
    fallback_target = str(settings.frontend_base_url) if settings.frontend_base_url else None

    try:
        if error:
            raise TokenExchangeError(
                f"SoundCloud authorization failed: {error_description or error}"
            )
        if not state:
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST, detail="Missing OAuth state token."
            )
        result = await handle_soundcloud_oauth_callback(
            payload=OAuthCallbackPayload(state=state, code=code or ""),
            state_encoder=state_encoder,
            token_guard=token_guard,
            settings=settings,
        )
    except (TokenExchangeError, HTTPException) as exc:
        if browser_redirect and fallback_target:
            logger.warning("OAuth callback failed; redirecting to front-end: %s", exc)
            return RedirectResponse(
                url=_with_auth_flag(fallback_target, "error"),
                status_code=HTTPStatus.TEMPORARY_REDIRECT,
            )
        raise

    redirect_target = result.get("redirect_to") or fallback_target
    if redirect_target and browser_redirect:
        return RedirectResponse(
            url=_with_auth_flag(redirect_target, "success"),
            status_code=HTTPStatus.TEMPORARY_REDIRECT,
        )

    return JSONResponse(content=result)


@router.get(
    "/auth/soundcloud/status",
    response_model=TokenStatusResponse,
    status_code=HTTPStatus.OK,
)
async def soundcloud_token_status(
    token_guard: Annotated[Any, Depends(get_token_guard)],
) -> TokenStatusResponse:
    """Report whether a usable token is stored, without calling SoundCloud."""
    record = token_guard.current_record()
    return TokenStatusResponse(
        connected=token_guard.has_valid_token(),
        state=token_guard.token_state(),
        expires_at=record.expires_at if record else None,
        needs_refresh=token_guard.needs_refresh(),
    )


@router.post(
    "/auth/soundcloud/refresh",
    response_model=TokenRefreshResponse,
    status_code=HTTPStatus.OK,
)
async def refresh_soundcloud_token(
    token_guard: Annotated[Any, Depends(get_token_guard)],
) -> TokenRefreshResponse:
    """Force a refresh with the stored refresh token."""
    refresh_token = token_guard.get_refresh_token()
    if not refresh_token:
        raise TokenRefreshError("Missing refresh token; cannot refresh access token.")
    await token_guard.refresh_stored_token(refresh_token)
    record = token_guard.current_record()
    return TokenRefreshResponse(expires_at=record.expires_at if record else None)


@router.post("/auth/soundcloud/disconnect", status_code=HTTPStatus.OK)
async def disconnect_soundcloud(
    token_guard: Annotated[Any, Depends(get_token_guard)],
) -> dict:
    token_guard.disconnect()
    return {"status": "disconnected"}


@router.get("/soundcloud/profile", status_code=HTTPStatus.OK)
async def soundcloud_profile(
    api_client: Annotated[Any, Depends(get_soundcloud_api_client)],
) -> dict:
    return await api_client.get_user_profile()


@router.get("/soundcloud/tracks", status_code=HTTPStatus.OK)
async def soundcloud_tracks(
    api_client: Annotated[Any, Depends(get_soundcloud_api_client)],
) -> list:
    return await api_client.get_user_tracks()


@router.get("/soundcloud/favorites", status_code=HTTPStatus.OK)
async def soundcloud_favorites(
    api_client: Annotated[Any, Depends(get_soundcloud_api_client)],
) -> list:
    return await api_client.get_user_likes()


@router.get("/soundcloud/playlists", status_code=HTTPStatus.OK)
async def soundcloud_playlists(
    api_client: Annotated[Any, Depends(get_soundcloud_api_client)],
) -> list:
    return await api_client.get_user_playlists()


@router.get("/soundcloud/followers", status_code=HTTPStatus.OK)
async def soundcloud_followers(
    api_client: Annotated[Any, Depends(get_soundcloud_api_client)],
) -> list:
    return await api_client.get_user_followers()


@router.get("/soundcloud/followings", status_code=HTTPStatus.OK)
async def soundcloud_followings(
    api_client: Annotated[Any, Depends(get_soundcloud_api_client)],
) -> list:
    return await api_client.get_user_followings()


__all__ = ["router"]
