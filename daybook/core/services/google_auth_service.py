"""Google OAuth credential store and refresh manager.

Owns every read and write of the ``google_tokens`` table and every call to the
Google token and user-info endpoints. Callers get live bearer tokens through
:meth:`GoogleAuthService.get_valid_access_token` (one account) or
:meth:`GoogleAuthService.get_all_valid_access_tokens` (every linked account);
expired tokens are refreshed on the way out.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from daybook.core.config import GoogleSettings
from daybook.core.models.google_token import LEGACY_ACCOUNT_KEY, GoogleToken
from daybook.core.repositories.google_token_repository import GoogleTokenRepository

logger = logging.getLogger(__name__)


class UpstreamAuthError(Exception):
    """Raised when Google rejects a code exchange or token refresh."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(f"{message}: {body}" if body else message)
        self.status_code = status_code
        self.body = body


@dataclass
class TokenResponse:
    access_token: str
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "TokenResponse":
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or None,
            token_type=data.get("token_type") or None,
            expires_in=int(expires_in) if expires_in else None,
            scope=data.get("scope"),
        )


@dataclass
class AccountAccessToken:
    email: Optional[str]
    access_token: str


@dataclass
class AccountSession:
    account_key: str
    email: Optional[str]
    connected_at: datetime


class GoogleAuthService:
    """Persist per-account Google credentials and keep their access tokens fresh."""

    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
    SCOPES = (
        "https://www.googleapis.com/auth/calendar.readonly",
        "https://www.googleapis.com/auth/calendar.events",
        "https://www.googleapis.com/auth/userinfo.email",
    )
    DEFAULT_EXPIRES_IN = 3600
    EXPIRY_BUFFER_MS = 300_000

    def __init__(
        self,
        repo: GoogleTokenRepository,
        settings: GoogleSettings,
        http_client: type[httpx.AsyncClient] = httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ):
        self.repo = repo
        self.settings = settings
        self._http_client = http_client
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # Upstream calls
    # ------------------------------------------------------------------

    def build_authorization_url(self) -> str:
        """Build the Google consent screen URL (offline access, forced consent)."""
        params = {
            "client_id": self.settings.client_id,
            "redirect_uri": self.settings.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            "access_type": "offline",
            "prompt": "consent",
        }
        query = str(httpx.QueryParams(params))
        return f"{self.AUTH_URL}?{query}"

    async def exchange_code_for_tokens(self, code: str) -> TokenResponse:
        """
        Trade an authorization code for tokens.

        Raises:
            UpstreamAuthError: when Google answers with a non-success status
                or a body that is not a usable token response
        """
        payload = {
            "code": code,
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "redirect_uri": self.settings.redirect_uri,
            "grant_type": "authorization_code",
        }
        return await self._request_tokens(payload, "Token exchange failed")

    async def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """
        Obtain a new access token. Nothing is persisted here.

        Raises:
            UpstreamAuthError: when Google answers with a non-success status
                or a body that is not a usable token response
        """
        payload = {
            "refresh_token": refresh_token,
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "grant_type": "refresh_token",
        }
        return await self._request_tokens(payload, "Token refresh failed")

    async def resolve_account_email(self, access_token: str) -> Optional[str]:
        """Return the email behind ``access_token``, or None when Google won't say."""
        async with self._http_client(timeout=self.settings.http_timeout) as client:
            resp = await client.get(
                self.USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        if not resp.is_success:
            logger.warning("Failed to resolve account email: %s %s", resp.status_code, resp.text)
            return None
        try:
            email = resp.json().get("email")
        except (ValueError, AttributeError):
            logger.warning("Unreadable user-info response: %s", resp.text)
            return None
        return email or None

    async def _request_tokens(self, payload: dict[str, str], failure: str) -> TokenResponse:
        async with self._http_client(timeout=self.settings.http_timeout) as client:
            resp = await client.post(self.TOKEN_URL, data=payload)
        if not resp.is_success:
            raise UpstreamAuthError(failure, status_code=resp.status_code, body=resp.text)

        try:
            data = resp.json()
            if not data.get("access_token"):
                raise UpstreamAuthError(
                    f"{failure}: no access token returned",
                    status_code=resp.status_code,
                    body=resp.text,
                )
            return TokenResponse.from_payload(data)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise UpstreamAuthError(
                f"{failure}: malformed token response",
                status_code=resp.status_code,
                body=resp.text,
            ) from exc

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    async def save_credential(self, tokens: TokenResponse, email: Optional[str]) -> None:
        """Upsert tokens under ``email``, or under the legacy key when the email is unknown."""
        await self._store(email or LEGACY_ACCOUNT_KEY, tokens, email)

    async def _store(self, account_key: str, tokens: TokenResponse, email: Optional[str]) -> None:
        expires_in = tokens.expires_in or self.DEFAULT_EXPIRES_IN
        await self.repo.upsert(
            account_key=account_key,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type or "Bearer",
            expiry_date=self._now_ms() + expires_in * 1000,
            email=email or None,
        )
        await self.repo.commit()

    async def get_valid_access_token(self, account_key: str) -> Optional[str]:
        """Return a live access token for one account, refreshing it if needed."""
        record = await self.repo.get(account_key)
        if record is None:
            return None
        return await self._ensure_fresh(record)

    async def get_all_valid_access_tokens(self) -> list[AccountAccessToken]:
        """
        Return live access tokens for every linked account, oldest first.

        Accounts whose token is dead or cannot be refreshed are left out.
        """
        tokens: list[AccountAccessToken] = []
        for record in await self.repo.list_ordered():
            access_token = await self._ensure_fresh(record)
            if access_token:
                tokens.append(AccountAccessToken(email=record.email, access_token=access_token))
        return tokens

    async def _ensure_fresh(self, record: GoogleToken) -> Optional[str]:
        if record.expiry_date is None or self._now_ms() <= record.expiry_date - self.EXPIRY_BUFFER_MS:
            return record.access_token

        if not record.refresh_token:
            logger.info("Credential for %s expired without a refresh token", record.id)
            return None

        # Keep the record on failure; the next access retries the refresh.
        try:
            refreshed = await self.refresh_access_token(record.refresh_token)
        except (UpstreamAuthError, httpx.HTTPError) as exc:
            logger.error("Failed to refresh token for %s: %s", record.id, exc)
            return None

        await self._store(record.id, refreshed, record.email)
        logger.debug("Refreshed access token for %s", record.id)
        return refreshed.access_token

    async def get_all_sessions(self) -> list[AccountSession]:
        """List linked accounts, oldest first. Tokens are neither returned nor refreshed."""
        return [
            AccountSession(
                account_key=record.id,
                email=record.email,
                connected_at=record.updated_at,
            )
            for record in await self.repo.list_ordered()
        ]

    async def delete_credential(self, account_key: Optional[str] = None) -> None:
        """Delete one account's credential, or every credential when no key is given."""
        if account_key is None:
            removed = await self.repo.delete_all()
        else:
            removed = await self.repo.delete(account_key)
        await self.repo.commit()
        logger.info("Deleted %s Google credential(s) for %s", removed, account_key or "all accounts")

    async def migrate_legacy_record(self, discard_unresolved: bool = False) -> None:
        """
        Fold the single-account ``default`` row into the email-keyed layout.

        An existing email-keyed row always wins over the legacy one. Without an
        email the legacy row is kept unless ``discard_unresolved`` is set.
        Running this again after it has acted does nothing.
        """
        legacy = await self.repo.get(LEGACY_ACCOUNT_KEY)
        if legacy is None:
            return

        if not legacy.email:
            if discard_unresolved:
                await self.repo.delete(LEGACY_ACCOUNT_KEY)
                await self.repo.commit()
                logger.info("Discarded legacy Google credential without an email")
            return

        if await self.repo.get(legacy.email) is None:
            await self.repo.rekey(LEGACY_ACCOUNT_KEY, legacy.email)
            logger.info("Migrated legacy Google credential to %s", legacy.email)
        else:
            await self.repo.delete(LEGACY_ACCOUNT_KEY)
            logger.info("Dropped legacy Google credential; %s is already linked", legacy.email)
        await self.repo.commit()
