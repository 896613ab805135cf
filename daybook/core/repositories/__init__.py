"""Repository layer for data access."""

from daybook.core.repositories.base import BaseRepository
from daybook.core.repositories.google_token_repository import GoogleTokenRepository

__all__ = [
    "BaseRepository",
    "GoogleTokenRepository",
]
