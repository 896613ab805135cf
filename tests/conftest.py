"""
Pytest configuration and helpers for the Daybook test-suite.

The application expects environment settings and a PostgreSQL database, so the
fixtures below provide an isolated in-memory SQLite database per test and a
fake HTTP client standing in for Google's OAuth endpoints. Lifespan start-up
checks are skipped by the ASGI transport, which keeps tests fast and
deterministic.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, AsyncGenerator, Generator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# Environment bootstrap
# ---------------------------------------------------------------------------

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_AUTO_CREATE"] = "false"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["BASE_URL"] = "http://localhost:3000"
os.environ["GOOGLE_HTTP_TIMEOUT"] = "5"
os.environ["HOST"] = "0.0.0.0"
os.environ["PORT"] = "8100"
os.environ["LOG_LEVEL"] = "DEBUG"

from daybook.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from daybook.core.dependencies import get_google_auth_service  # noqa: E402
from daybook.core.models.base import Base  # noqa: E402
from daybook.core.repositories.google_token_repository import GoogleTokenRepository  # noqa: E402
from daybook.core.services.google_auth_service import GoogleAuthService  # noqa: E402
from daybook.main import app  # noqa: E402


T0 = 1_760_000_000.0


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Settable replacement for time.time."""

    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGoogle:
    """Callable used in place of httpx.AsyncClient; answers like Google's OAuth endpoints."""

    def __init__(self):
        self.token_requests: list[dict[str, Any]] = []
        self.userinfo_requests: list[dict[str, Any]] = []
        self.client_kwargs: list[dict[str, Any]] = []
        self.email: str | None = "user@example.com"
        self.userinfo_status = 200
        self.exchange_status = 200
        self.issue_refresh_token = True
        self.failing_refresh_tokens: set[str] = set()
        self.unreachable_refresh_tokens: set[str] = set()
        self.refresh_responses: dict[str, httpx.Response] = {}
        self.userinfo_response: httpx.Response | None = None
        self._issued = 0

    def __call__(self, *args, **kwargs) -> "_FakeAsyncClient":
        self.client_kwargs.append(kwargs)
        return _FakeAsyncClient(self)

    @property
    def refresh_requests(self) -> list[dict[str, Any]]:
        return [r for r in self.token_requests if r["grant_type"] == "refresh_token"]

    def token(self, data: dict[str, Any]) -> httpx.Response:
        self.token_requests.append(dict(data))
        self._issued += 1

        if data["grant_type"] == "authorization_code":
            if self.exchange_status != 200:
                return httpx.Response(
                    self.exchange_status,
                    json={"error": "invalid_grant", "error_description": "Bad Request"},
                )
            payload = {
                "access_token": f"access-{self._issued}",
                "token_type": "Bearer",
                "expires_in": 3599,
                "scope": "openid",
            }
            if self.issue_refresh_token:
                payload["refresh_token"] = f"refresh-{self._issued}"
            return httpx.Response(200, json=payload)

        refresh_token = data["refresh_token"]
        if refresh_token in self.unreachable_refresh_tokens:
            raise httpx.ConnectError("connection refused")
        if refresh_token in self.refresh_responses:
            return self.refresh_responses[refresh_token]
        if refresh_token in self.failing_refresh_tokens:
            return httpx.Response(
                400,
                json={
                    "error": "invalid_grant",
                    "error_description": "Token has been expired or revoked.",
                },
            )
        # Google does not reissue refresh tokens on refresh.
        return httpx.Response(
            200,
            json={
                "access_token": f"refreshed-{self._issued}",
                "token_type": "Bearer",
                "expires_in": 3599,
            },
        )

    def userinfo(self, headers: dict[str, str]) -> httpx.Response:
        self.userinfo_requests.append(dict(headers))
        if self.userinfo_response is not None:
            return self.userinfo_response
        if self.userinfo_status != 200:
            return httpx.Response(self.userinfo_status, json={"error": "unauthorized"})
        return httpx.Response(200, json={"id": "123", "email": self.email})


class _FakeAsyncClient:
    def __init__(self, google: FakeGoogle):
        self._google = google

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url: str, data=None, **kwargs):
        assert url == GoogleAuthService.TOKEN_URL
        return self._google.token(data or {})

    async def get(self, url: str, headers=None, **kwargs):
        assert url == GoogleAuthService.USERINFO_URL
        return self._google.userinfo(headers or {})


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database with the schema created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    async with factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def token_repo(db_session: AsyncSession) -> GoogleTokenRepository:
    return GoogleTokenRepository(db_session)


@pytest.fixture
def auth_service(
    token_repo: GoogleTokenRepository, fake_google: FakeGoogle, clock: FakeClock
) -> GoogleAuthService:
    return GoogleAuthService(
        token_repo,
        get_settings().google,
        http_client=fake_google,
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------


@pytest.fixture
def override_dependencies(auth_service: GoogleAuthService) -> Generator[None, None, None]:
    """Route API requests to the test service and database."""
    app.dependency_overrides[get_google_auth_service] = lambda: auth_service
    try:
        yield
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(override_dependencies: None) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX client configured for the ASGI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
