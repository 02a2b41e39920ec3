from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Collection, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.db.session import ensure_datetime, optional_datetime, transaction
from packages.db.models import TicketImageTable, TicketTable

from .models import Ticket, TicketImage, TicketPriority
from .state import TicketStatus


class TicketRepository:
    """Data access layer for tickets and their images."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[AsyncSession]:
        """Open a transaction that other repositories can join."""

        async with transaction(self._session_factory) as session:
            yield session

    async def create_ticket(
        self,
        *,
        subject: str,
        description: str,
        priority: TicketPriority,
        created_by_id: int,
        category_id: int,
        type_id: int,
        branch_id: int | None,
        asset_id: int | None,
        created_at: datetime,
        code_prefix: str,
        images: Sequence[str] = (),
    ) -> Ticket:
        """Insert the ticket, derive its code from the new id and attach images in one commit."""

        async with self.begin() as session:
            row = TicketTable(
                subject=subject,
                description=description,
                priority=priority.value,
                status=TicketStatus.OPEN.value,
                created_at=created_at,
                created_by_id=created_by_id,
                category_id=category_id,
                type_id=type_id,
                branch_id=branch_id,
                asset_id=asset_id,
            )
            session.add(row)
            await session.flush()
            row.ticket_code = f"{code_prefix}{row.id}"
            for data in images:
                session.add(TicketImageTable(ticket_id=row.id, data=data))
            await session.flush()
            return self._table_to_ticket(row)

    async def get_ticket(self, ticket_id: int, *, session: AsyncSession | None = None) -> Ticket | None:
        if session is not None:
            row = await session.get(TicketTable, ticket_id, populate_existing=True)
            return None if row is None else self._table_to_ticket(row)
        async with self._session_factory() as own_session:
            row = await own_session.get(TicketTable, ticket_id)
        return None if row is None else self._table_to_ticket(row)

    async def compare_and_set_status(
        self,
        ticket_id: int,
        *,
        expected: Collection[TicketStatus],
        new_status: TicketStatus,
        session: AsyncSession,
        **values: Any,
    ) -> bool:
        """Move the ticket to ``new_status`` only if it is currently in ``expected``.

        Runs as a single conditional UPDATE; exactly one of several concurrent
        callers observing the same prior status gets ``True``.
        """

        result = await session.execute(
            update(TicketTable)
            .where(
                TicketTable.id == ticket_id,
                TicketTable.status.in_([status.value for status in expected]),
            )
            .values(status=new_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        statement = select(TicketTable)
        if status is not None:
            statement = statement.where(TicketTable.status == status.value)
        return await self._fetch(statement)

    async def list_for_branch(self, branch_id: int) -> list[Ticket]:
        return await self._fetch(
            select(TicketTable).where(
                TicketTable.branch_id == branch_id,
                TicketTable.status != TicketStatus.CANCELLED.value,
            )
        )

    async def list_created_by(self, user_id: int) -> list[Ticket]:
        return await self._fetch(select(TicketTable).where(TicketTable.created_by_id == user_id))

    async def list_assigned_to(self, user_id: int) -> list[Ticket]:
        return await self._fetch(select(TicketTable).where(TicketTable.assigned_admin_id == user_id))

    async def list_images(self, ticket_id: int) -> list[TicketImage]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketImageTable)
                .where(TicketImageTable.ticket_id == ticket_id)
                .order_by(TicketImageTable.id.asc())
            )
            return [
                TicketImage(id=int(row.id), ticket_id=row.ticket_id, data=row.data)
                for row in result.scalars().all()
            ]

    async def _fetch(self, statement: Any) -> list[Ticket]:
        async with self._session_factory() as session:
            result = await session.execute(
                statement.order_by(TicketTable.created_at.desc(), TicketTable.id.desc())
            )
            return [self._table_to_ticket(row) for row in result.scalars().all()]

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=int(row.id),
            ticket_code=row.ticket_code,
            subject=row.subject,
            description=row.description,
            priority=TicketPriority(row.priority),
            status=TicketStatus(row.status),
            created_at=ensure_datetime(row.created_at),
            created_by_id=row.created_by_id,
            category_id=row.category_id,
            type_id=row.type_id,
            branch_id=row.branch_id,
            assigned_admin_id=row.assigned_admin_id,
            asset_id=row.asset_id,
            resolved_at=optional_datetime(row.resolved_at),
            closed_at=optional_datetime(row.closed_at),
        )
