"""Repository for Google OAuth credential persistence."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from daybook.core.models.google_token import GoogleToken
from daybook.core.repositories.base import BaseRepository


class GoogleTokenRepository(BaseRepository[GoogleToken]):
    """Data access for the account-keyed token table."""

    def __init__(self, session: AsyncSession):
        super().__init__(GoogleToken, session)

    async def get(self, account_key: str) -> Optional[GoogleToken]:
        return await self.get_by_id(account_key)

    async def list_ordered(self) -> list[GoogleToken]:
        """All credentials, oldest-linked account first."""
        result = await self.session.execute(
            select(GoogleToken)
            .order_by(GoogleToken.created_at.asc(), GoogleToken.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        *,
        account_key: str,
        access_token: str,
        refresh_token: Optional[str],
        token_type: Optional[str],
        expiry_date: Optional[int],
        email: Optional[str],
    ) -> None:
        """
        Insert or update a credential in one statement.

        On conflict the access token, token type and expiry are overwritten,
        while refresh token and email only change when a new value is given.
        """
        now = datetime.now(timezone.utc)
        insert = self._dialect_insert()
        stmt = insert(GoogleToken).values(
            id=account_key,
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=token_type,
            expiry_date=expiry_date,
            email=email,
            created_at=now,
            updated_at=now,
        )
        table = GoogleToken.__table__
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.id],
            set_={
                "access_token": stmt.excluded.access_token,
                "refresh_token": func.coalesce(
                    stmt.excluded.refresh_token, table.c.refresh_token
                ),
                "token_type": stmt.excluded.token_type,
                "expiry_date": stmt.excluded.expiry_date,
                "email": func.coalesce(stmt.excluded.email, table.c.email),
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.session.execute(stmt)

    async def rekey(self, old_key: str, new_key: str) -> None:
        """Move a row to a new primary key, leaving every other column as is."""
        await self.session.execute(
            update(GoogleToken)
            .where(GoogleToken.id == old_key)
            .values(id=new_key, updated_at=GoogleToken.updated_at)
            .execution_options(synchronize_session=False)
        )

    async def delete(self, account_key: str) -> int:
        result = await self.session.execute(
            delete(GoogleToken)
            .where(GoogleToken.id == account_key)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete_all(self) -> int:
        result = await self.session.execute(
            delete(GoogleToken).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def _dialect_insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql_insert
        if dialect == "sqlite":
            return sqlite_insert
        raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")
