from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.db.session import ensure_datetime
from packages.db.models import CommentTable

from .models import Comment


class CommentRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_comment(self, *, ticket_id: int, author_id: int, text: str, created_at: datetime) -> Comment:
        row = CommentTable(ticket_id=ticket_id, author_id=author_id, text=text, created_at=created_at)
        async with self._session_factory() as session:
            async with session.begin():
                session.add(row)
                await session.flush()
                return self._table_to_comment(row)

    async def list_for_ticket(self, ticket_id: int) -> list[Comment]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CommentTable)
                .where(CommentTable.ticket_id == ticket_id)
                .order_by(CommentTable.created_at.asc(), CommentTable.id.asc())
            )
            return [self._table_to_comment(row) for row in result.scalars().all()]

    @staticmethod
    def _table_to_comment(row: CommentTable) -> Comment:
        return Comment(
            id=int(row.id),
            ticket_id=row.ticket_id,
            author_id=row.author_id,
            text=row.text,
            created_at=ensure_datetime(row.created_at),
        )
