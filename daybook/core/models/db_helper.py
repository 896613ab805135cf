"""Database helper for async SQLAlchemy session management."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)

from daybook.core.config import get_settings
from daybook.core.models.base import Base


class DatabaseHelper:
    """Helper for managing database connections and sessions."""

    def __init__(self, url: str, echo: bool = False, pool_size: int = 20, max_overflow: int = 30):
        """
        Initialize database helper.

        Args:
            url: Database connection URL
            echo: Echo SQL queries
            pool_size: Connection pool size
            max_overflow: Max overflow connections
        """
        engine_kwargs = {}
        # SQLite uses a static/null pool that rejects sizing arguments
        if not url.startswith("sqlite"):
            engine_kwargs = {"pool_size": pool_size, "max_overflow": max_overflow}

        self.engine: AsyncEngine = create_async_engine(url=url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    async def create_schema(self) -> None:
        """Create missing tables. Safe to run on every startup."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    async def dispose(self) -> None:
        """Dispose of the engine and close all connections."""
        await self.engine.dispose()


# Global database helper instance
settings = get_settings()
db_helper = DatabaseHelper(
    url=settings.database_url,
    echo=settings.debug,
    pool_size=settings.database.pool_size,
    max_overflow=settings.database.max_overflow,
)
