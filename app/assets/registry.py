from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.db.session import transaction
from app.errors import ConflictError, NotFoundError, ValidationError
from packages.db.models import AssetTable, BranchTable, RepairRecordTable

from .ledger import RepairLedger
from .models import Asset, AssetDetails, AssetStatus, RepairRecord


class AssetRegistry:
    """Asset records and their atomic single-row state writes.

    Holds no business rules: the ticket lifecycle decides when an asset goes
    into repair, back to service or out of inventory.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        ledger: RepairLedger | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._ledger = ledger or RepairLedger(session_factory)

    async def set_status(
        self,
        asset_id: int,
        status: AssetStatus,
        *,
        session: AsyncSession | None = None,
    ) -> Asset | None:
        return await self._apply(asset_id, {"status": status.value}, session=session)

    async def increment_repair_count(
        self,
        asset_id: int,
        *,
        session: AsyncSession | None = None,
    ) -> Asset | None:
        return await self._apply(
            asset_id, {"repair_count": AssetTable.repair_count + 1}, session=session
        )

    async def find_by_id(self, asset_id: int, *, session: AsyncSession | None = None) -> Asset | None:
        if session is not None:
            row = await session.get(AssetTable, asset_id, populate_existing=True)
            return None if row is None else self._table_to_asset(row)
        async with self._session_factory() as own_session:
            row = await own_session.get(AssetTable, asset_id)
        return None if row is None else self._table_to_asset(row)

    async def find_by_branch(self, branch_id: int) -> Sequence[Asset]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AssetTable).where(AssetTable.branch_id == branch_id).order_by(AssetTable.code.asc())
            )
            return [self._table_to_asset(row) for row in result.scalars().all()]

    async def list_assets(self) -> Sequence[Asset]:
        async with self._session_factory() as session:
            result = await session.execute(select(AssetTable).order_by(AssetTable.code.asc()))
            return [self._table_to_asset(row) for row in result.scalars().all()]

    async def register(self, details: AssetDetails) -> Asset:
        """Add a new asset in service with no repairs on record."""

        values = self._editable_values(details)
        async with transaction(self._session_factory) as session:
            await self._check_details(session, values)
            row = AssetTable(**values, status=AssetStatus.ACTIVE.value, repair_count=0)
            session.add(row)
            await self._flush_unique(session, values["code"])
            return self._table_to_asset(row)

    async def update_details(self, asset_id: int, details: AssetDetails) -> Asset:
        """Overwrite descriptive fields. ``status`` and ``repair_count`` stay as they are."""

        values = self._editable_values(details)
        async with transaction(self._session_factory) as session:
            row = await session.get(AssetTable, asset_id)
            if row is None:
                raise NotFoundError(f"Asset {asset_id} not found")
            await self._check_details(session, values, asset_id=asset_id)
            for field, value in values.items():
                setattr(row, field, value)
            await self._flush_unique(session, values["code"])
            return self._table_to_asset(row)

    async def repair_history(self, asset_id: int) -> Sequence[RepairRecord]:
        return await self._ledger.list_for_asset(asset_id)

    async def total_repair_cost(self, asset_id: int) -> Decimal:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.coalesce(func.sum(RepairRecordTable.cost), 0)).where(
                    RepairRecordTable.asset_id == asset_id
                )
            )
            total = result.scalar_one()
        return Decimal(str(total)).quantize(Decimal("0.01"))

    async def _apply(
        self,
        asset_id: int,
        values: dict[str, Any],
        *,
        session: AsyncSession | None,
    ) -> Asset | None:
        async with transaction(self._session_factory, session) as active:
            result = await active.execute(
                update(AssetTable)
                .where(AssetTable.id == asset_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            row = await active.get(AssetTable, asset_id, populate_existing=True)
            return None if row is None else self._table_to_asset(row)

    @staticmethod
    def _editable_values(details: AssetDetails) -> dict[str, Any]:
        values = asdict(details)
        values["code"] = (details.code or "").strip()
        if not values["code"]:
            raise ValidationError("Asset code must not be empty")
        return values

    @staticmethod
    async def _check_details(
        session: AsyncSession,
        values: dict[str, Any],
        *,
        asset_id: int | None = None,
    ) -> None:
        if await session.get(BranchTable, values["branch_id"]) is None:
            raise ValidationError(f"Branch {values['branch_id']} not found")
        query = select(AssetTable.id).where(AssetTable.code == values["code"])
        if asset_id is not None:
            query = query.where(AssetTable.id != asset_id)
        if (await session.execute(query)).first() is not None:
            raise ConflictError(f"Asset code {values['code']} is already registered")

    @staticmethod
    async def _flush_unique(session: AsyncSession, code: str) -> None:
        try:
            await session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Asset code {code} is already registered") from exc

    @staticmethod
    def _table_to_asset(row: AssetTable) -> Asset:
        return Asset(
            id=int(row.id),
            code=row.code,
            branch_id=row.branch_id,
            status=AssetStatus(row.status),
            repair_count=int(row.repair_count),
            brand=row.brand,
            model=row.model,
            device_type=row.device_type,
            serial_number=row.serial_number,
            purchase_date=row.purchase_date,
            warranty_expiry=row.warranty_expiry,
        )
