from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from packages.db.models import ErrorCategoryTable, ErrorTypeTable


@dataclass(slots=True)
class ErrorCategory:
    id: int
    name: str


@dataclass(slots=True)
class ErrorType:
    id: int
    name: str
    category_id: int


class ErrorCatalog:
    """Read access to the error category/type master data."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_category(self, category_id: int) -> ErrorCategory | None:
        async with self._session_factory() as session:
            row = await session.get(ErrorCategoryTable, category_id)
        return None if row is None else ErrorCategory(id=int(row.id), name=row.name)

    async def get_type(self, type_id: int) -> ErrorType | None:
        async with self._session_factory() as session:
            row = await session.get(ErrorTypeTable, type_id)
        if row is None:
            return None
        return ErrorType(id=int(row.id), name=row.name, category_id=row.category_id)
