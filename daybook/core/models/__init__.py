"""Database models for the Daybook dashboard."""

from daybook.core.models.base import Base
from daybook.core.models.google_token import LEGACY_ACCOUNT_KEY, GoogleToken

__all__ = [
    "Base",
    "GoogleToken",
    "LEGACY_ACCOUNT_KEY",
]
