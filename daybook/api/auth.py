"""Google account linking endpoints."""

from __future__ import annotations

import logging
from typing import Annotated, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx
from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse, RedirectResponse

from daybook.api.schemas import (
    AccountSessionSchema,
    AuthUrlResponse,
    LogoutResponse,
    SessionResponse,
)
from daybook.core.config import Settings, get_settings
from daybook.core.dependencies import get_google_auth_service
from daybook.core.services.google_auth_service import GoogleAuthService, UpstreamAuthError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["google-auth"])


def _with_query(url: str, extra: dict[str, str]) -> str:
    parsed = urlparse(url)
    current_qs = dict(parse_qsl(parsed.query, keep_blank_values=True))
    current_qs.update(extra)
    new_query = urlencode(current_qs, doseq=True)
    return urlunparse(parsed._replace(query=new_query))


@router.get("/login", response_class=Response, response_model=None)
async def login(
    auth_service: Annotated[GoogleAuthService, Depends(get_google_auth_service)],
    return_url: bool = Query(
        False, description="Return JSON with the consent URL instead of redirecting."
    ),
) -> Response:
    """Send the browser to the Google consent screen."""
    consent_url = auth_service.build_authorization_url()
    if return_url:
        return JSONResponse(AuthUrlResponse(auth_url=consent_url).model_dump())
    return RedirectResponse(consent_url)


@router.get("/callback", response_class=Response, response_model=None)
async def callback(
    auth_service: Annotated[GoogleAuthService, Depends(get_google_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    code: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
) -> Response:
    """Handle the Google OAuth callback: exchange the code, resolve the email, store tokens."""
    home = settings.base_url

    if error:
        return RedirectResponse(_with_query(home, {"auth_error": error}))
    if not code:
        return RedirectResponse(_with_query(home, {"auth_error": "no_code"}))

    try:
        tokens = await auth_service.exchange_code_for_tokens(code)
        email = await auth_service.resolve_account_email(tokens.access_token)
        if not email:
            logger.warning("Account email unresolved; storing credential under the legacy key")
        await auth_service.save_credential(tokens, email)
        await auth_service.migrate_legacy_record()
    except (UpstreamAuthError, httpx.HTTPError) as exc:
        logger.error("Auth callback error: %s", exc)
        return RedirectResponse(_with_query(home, {"auth_error": "token_exchange_failed"}))
    except Exception as exc:
        logger.exception("Failed to store Google credential: %s", exc)
        return RedirectResponse(_with_query(home, {"auth_error": "token_exchange_failed"}))

    return RedirectResponse(_with_query(home, {"auth_success": "true"}))


@router.get("/session", response_model=SessionResponse)
async def session_status(
    auth_service: Annotated[GoogleAuthService, Depends(get_google_auth_service)],
) -> SessionResponse:
    """List linked Google accounts."""
    await auth_service.migrate_legacy_record()
    sessions = await auth_service.get_all_sessions()
    return SessionResponse(
        connected=bool(sessions),
        accounts=[AccountSessionSchema.model_validate(item) for item in sessions],
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    auth_service: Annotated[GoogleAuthService, Depends(get_google_auth_service)],
    account: Optional[str] = Query(
        default=None, description="Account key to disconnect; all accounts when omitted."
    ),
) -> LogoutResponse:
    """Disconnect one Google account, or all of them."""
    await auth_service.delete_credential(account)
    return LogoutResponse(success=True)
