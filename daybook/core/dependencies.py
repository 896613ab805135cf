"""
FastAPI dependencies for dependency injection.

Wires request-scoped database sessions into repositories and services.
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from daybook.core.config import Settings, get_settings
from daybook.core.models.db_helper import db_helper
from daybook.core.repositories.google_token_repository import GoogleTokenRepository
from daybook.core.services.google_auth_service import GoogleAuthService


logger = logging.getLogger(__name__)


# ============================================================================
# Database Dependencies
# ============================================================================


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get async database session.

    Yields:
        AsyncSession for database operations
    """
    async with db_helper.session_factory() as session:
        yield session


# ============================================================================
# Repository Dependencies
# ============================================================================


def get_google_token_repository(
    session: Annotated[AsyncSession, Depends(get_session)]
) -> GoogleTokenRepository:
    """Get GoogleTokenRepository instance."""
    return GoogleTokenRepository(session)


# ============================================================================
# Service Dependencies
# ============================================================================


def get_google_auth_service(
    repo: Annotated[GoogleTokenRepository, Depends(get_google_token_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> GoogleAuthService:
    """Provide GoogleAuthService bound to the request session."""
    return GoogleAuthService(repo=repo, settings=settings.google)
