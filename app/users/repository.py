from __future__ import annotations

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from packages.db.models import UserTable

from .models import Role, User


class UserRepository:
    """SQL backed :class:`~app.users.models.UserDirectory`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_user(self, user_id: int) -> User | None:
        async with self._session_factory() as session:
            row = await session.get(UserTable, user_id)
        return None if row is None else self._table_to_user(row)

    async def list_users_by_role(self, role: Role) -> Sequence[User]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserTable)
                .where(UserTable.role == role.value, UserTable.is_active.is_(True))
                .order_by(UserTable.id.asc())
            )
            return [self._table_to_user(row) for row in result.scalars().all()]

    @staticmethod
    def _table_to_user(row: UserTable) -> User:
        return User(
            id=int(row.id),
            username=row.username,
            full_name=row.full_name,
            role=Role(row.role),
            branch_id=row.branch_id,
            email=row.email,
            is_active=bool(row.is_active),
        )
