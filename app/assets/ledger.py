from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.db.session import transaction
from app.errors import ValidationError
from packages.db.models import RepairRecordTable

from .models import RepairRecord

# Matches the NUMERIC(18, 2) column.
_COST_QUANTUM = Decimal("0.01")
_MAX_COST_EXPONENT = 16


class RepairLedger:
    """Append-only store of repair actions.

    The ledger never merges or deduplicates entries; callers guarantee that a
    ticket produces at most one record.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        asset_id: int,
        ticket_id: int | None,
        action_text: str,
        repair_date: date,
        cost: Decimal,
        *,
        session: AsyncSession | None = None,
    ) -> RepairRecord:
        if not cost.is_finite() or cost.adjusted() >= _MAX_COST_EXPONENT:
            raise ValidationError("Repair cost is out of range")
        if cost < 0:
            raise ValidationError("Repair cost must be non-negative")
        row = RepairRecordTable(
            asset_id=asset_id,
            ticket_id=ticket_id,
            action_taken=action_text,
            repair_date=repair_date,
            cost=cost.quantize(_COST_QUANTUM),
        )
        async with transaction(self._session_factory, session) as active:
            active.add(row)
            await active.flush()
            return self._table_to_record(row)

    async def list_for_asset(self, asset_id: int) -> Sequence[RepairRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(RepairRecordTable)
                .where(RepairRecordTable.asset_id == asset_id)
                .order_by(RepairRecordTable.repair_date.asc(), RepairRecordTable.id.asc())
            )
            return [self._table_to_record(row) for row in result.scalars().all()]

    async def get_for_ticket(self, ticket_id: int) -> RepairRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(RepairRecordTable)
                .where(RepairRecordTable.ticket_id == ticket_id)
                .order_by(RepairRecordTable.id.asc())
            )
            row = result.scalars().first()
        return None if row is None else self._table_to_record(row)

    @staticmethod
    def _table_to_record(row: RepairRecordTable) -> RepairRecord:
        return RepairRecord(
            id=int(row.id),
            asset_id=row.asset_id,
            ticket_id=row.ticket_id,
            action_taken=row.action_taken,
            repair_date=row.repair_date,
            cost=Decimal(str(row.cost)).quantize(_COST_QUANTUM),
        )
