"""Generic repository over an async SQLAlchemy session."""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from daybook.core.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository class with common functionality."""

    def __init__(self, model: type[ModelT], session: AsyncSession):
        self.model = model
        self.session = session

    async def get_by_id(self, entity_id: Any) -> Optional[ModelT]:
        return await self.session.get(self.model, entity_id, populate_existing=True)

    async def commit(self) -> None:
        await self.session.commit()
