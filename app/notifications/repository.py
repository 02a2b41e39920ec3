from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.db.session import ensure_datetime
from packages.db.models import NotificationTable

from .models import Notification, NotificationCategory


class NotificationRepository:
    """Persistence for notifications; every read and write is recipient-scoped."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(
        self,
        *,
        recipient_id: int,
        title: str,
        message: str,
        category: NotificationCategory,
    ) -> Notification:
        row = NotificationTable(
            recipient_id=recipient_id,
            title=title,
            message=message,
            category=category.value,
            is_read=False,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            async with session.begin():
                session.add(row)
                await session.flush()
                return self._table_to_notification(row)

    async def list_for_user(self, user_id: int) -> Sequence[Notification]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(NotificationTable)
                .where(NotificationTable.recipient_id == user_id)
                .order_by(NotificationTable.created_at.desc(), NotificationTable.id.desc())
            )
            return [self._table_to_notification(row) for row in result.scalars().all()]

    async def count_unread(self, user_id: int) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(NotificationTable)
                .where(NotificationTable.recipient_id == user_id, NotificationTable.is_read.is_(False))
            )
            return int(result.scalar_one())

    async def mark_read(self, notification_id: int, user_id: int) -> Notification | None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(NotificationTable, notification_id)
                if row is None or row.recipient_id != user_id:
                    return None
                row.is_read = True
            return self._table_to_notification(row)

    async def mark_all_read(self, user_id: int) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(NotificationTable)
                    .where(NotificationTable.recipient_id == user_id, NotificationTable.is_read.is_(False))
                    .values(is_read=True)
                    .execution_options(synchronize_session=False)
                )
            return int(result.rowcount or 0)

    async def delete(self, notification_id: int, user_id: int) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(NotificationTable, notification_id)
                if row is None or row.recipient_id != user_id:
                    return False
                await session.delete(row)
            return True

    @staticmethod
    def _table_to_notification(row: NotificationTable) -> Notification:
        return Notification(
            id=int(row.id),
            recipient_id=row.recipient_id,
            title=row.title,
            message=row.message,
            category=NotificationCategory(row.category),
            is_read=bool(row.is_read),
            created_at=ensure_datetime(row.created_at),
        )
