import pytest
from pydantic import ValidationError

from daybook.core.config import DatabaseSettings, GoogleSettings


def test_redirect_uri_built_from_base_url(monkeypatch):
    monkeypatch.setenv("BASE_URL", "https://dash.example.com/")

    settings = GoogleSettings()

    assert settings.base_url == "https://dash.example.com"
    assert settings.redirect_uri == "https://dash.example.com/api/auth/callback"


def test_google_credentials_required(monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "")

    with pytest.raises(ValidationError):
        GoogleSettings()


def test_invalid_timeout_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("GOOGLE_HTTP_TIMEOUT", "soon")

    assert GoogleSettings().http_timeout == 20.0


def test_plain_postgres_url_uses_async_driver(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@db/daybook")

    assert DatabaseSettings().url == "postgresql+asyncpg://user:pw@db/daybook"


def test_unsupported_database_url_rejected(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "mysql://db/daybook")

    with pytest.raises(ValidationError):
        DatabaseSettings()
