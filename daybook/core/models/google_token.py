"""Google OAuth credentials, one row per linked account."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from daybook.core.models.base import Base

# Key used by the single-account layout, before rows were keyed by email.
LEGACY_ACCOUNT_KEY = "default"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoogleToken(Base):
    """Plaintext OAuth tokens keyed by account (email or the legacy key)."""

    __tablename__ = "google_tokens"

    id: Mapped[str] = mapped_column(
        String(320),
        primary_key=True,
        comment="Account key: the account email, or 'default' for legacy rows",
    )
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    token_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    expiry_date: Mapped[Optional[int]] = mapped_column(
        BigInteger, nullable=True, comment="Access token expiry, epoch milliseconds"
    )
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<GoogleToken(account_key={self.id}, email={self.email})>"
