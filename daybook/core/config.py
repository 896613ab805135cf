"""Environment configuration for the Daybook dashboard."""

from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

load_dotenv()


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class AppSettings(BaseModel):
    name: str = Field(
        default_factory=lambda: os.getenv("APP_NAME", "Daybook").strip() or "Daybook"
    )
    version: str = Field(
        default_factory=lambda: os.getenv("APP_VERSION", "0.1.0").strip() or "0.1.0"
    )
    debug: bool = Field(default_factory=lambda: _bool_env("DEBUG", False))
    log_level: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").strip().upper()
    )

    @model_validator(mode="after")
    def _validate(self) -> "AppSettings":
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(
                "LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL"
            )
        return self


class ServerSettings(BaseModel):
    host: str = Field(
        default_factory=lambda: os.getenv("HOST", "0.0.0.0").strip() or "0.0.0.0"
    )
    port: int = Field(default_factory=lambda: _int_env("PORT", 8000))


class DatabaseSettings(BaseModel):
    url: str = Field(default_factory=lambda: os.getenv("DATABASE_URL", "").strip())
    pool_size: int = Field(default_factory=lambda: _int_env("DATABASE_POOL_SIZE", 20))
    max_overflow: int = Field(
        default_factory=lambda: _int_env("DATABASE_MAX_OVERFLOW", 30)
    )
    auto_create: bool = Field(
        default_factory=lambda: _bool_env("DATABASE_AUTO_CREATE", True)
    )

    @model_validator(mode="after")
    def _validate(self) -> "DatabaseSettings":
        if not self.url:
            raise ValueError("DATABASE_URL environment variable must be set.")
        if self.url.startswith("postgresql://"):
            # The async engine needs an async driver.
            self.url = "postgresql+asyncpg://" + self.url[len("postgresql://"):]
        if not self.url.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql://, postgresql+asyncpg://, or sqlite+aiosqlite://"
            )
        return self


class GoogleSettings(BaseModel):
    client_id: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLIENT_ID", "").strip()
    )
    client_secret: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLIENT_SECRET", "").strip()
    )
    base_url: str = Field(
        default_factory=lambda: os.getenv("BASE_URL", "").strip().rstrip("/")
    )
    http_timeout: float = Field(
        default_factory=lambda: _float_env("GOOGLE_HTTP_TIMEOUT", 20.0)
    )

    @model_validator(mode="after")
    def _validate(self) -> "GoogleSettings":
        if not self.client_id:
            raise ValueError("GOOGLE_CLIENT_ID environment variable must be set.")
        if not self.client_secret:
            raise ValueError("GOOGLE_CLIENT_SECRET environment variable must be set.")
        if not self.base_url:
            raise ValueError("BASE_URL environment variable must be set.")
        if self.http_timeout <= 0:
            raise ValueError("GOOGLE_HTTP_TIMEOUT must be positive.")
        return self

    @property
    def redirect_uri(self) -> str:
        return f"{self.base_url}/api/auth/callback"


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)

    model_config = dict(extra="ignore")

    # Compatibility helpers -------------------------------------------------
    @property
    def app_name(self) -> str:
        return self.app.name

    @property
    def app_version(self) -> str:
        return self.app.version

    @property
    def debug(self) -> bool:
        return self.app.debug

    @property
    def log_level(self) -> str:
        return self.app.log_level

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def base_url(self) -> str:
        return self.google.base_url


@lru_cache
def get_settings() -> Settings:
    return Settings()
