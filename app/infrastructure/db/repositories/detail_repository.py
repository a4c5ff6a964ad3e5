"""
Adjustment Detail Repository
Shared CRUD for rows grouped by adjustment record (benchmarks, constituents)
"""

from dataclasses import fields
from typing import Generic, Iterable, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.database import Base

M = TypeVar("M", bound=Base)
D = TypeVar("D")


class AdjustmentDetailRepository(Generic[M, D]):
    """
    Base repository for detail rows of one adjustment record.

    Domain dataclass fields map 1:1 onto model columns.
    Writes are flushed, never committed; the caller owns the transaction.
    """

    model: Type[M]
    domain: Type[D]

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session
        self._columns = [f.name for f in fields(self.domain) if f.name != "id"]

    async def get(self, row_id: int) -> Optional[D]:
        model = await self.session.get(self.model, row_id)
        return self._to_domain(model) if model else None

    async def get_many(self, ids: Iterable[int]) -> List[D]:
        """Rows with the given ids, ordered by id; unknown ids are skipped"""
        models = await self._load(ids)
        return [self._to_domain(m) for m in models]

    async def find_by_adjustment_record_id(self, adjustment_record_id: int) -> List[D]:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.adjustment_record_id == adjustment_record_id)
            .order_by(self.model.id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def find_by_adjustment_record_ids(self, adjustment_record_ids: Sequence[int]) -> List[D]:
        if not adjustment_record_ids:
            return []
        result = await self.session.execute(
            select(self.model)
            .where(self.model.adjustment_record_id.in_(list(adjustment_record_ids)))
            .order_by(self.model.adjustment_record_id, self.model.id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def add_all(self, rows: Sequence[D]) -> List[D]:
        models = [self.model(**{c: getattr(row, c) for c in self._columns}) for row in rows]
        self.session.add_all(models)
        await self.session.flush()
        return [self._to_domain(m) for m in models]

    async def save_all(self, rows: Sequence[D]) -> List[D]:
        """
        Write every column of existing rows.

        Returns:
            Saved rows in input order
        """
        by_id = {m.id: m for m in await self._load(row.id for row in rows)}
        saved = []
        for row in rows:
            model = by_id.get(row.id)
            if model is None:
                raise LookupError(f"{self.model.__name__} {row.id} does not exist")
            for column in self._columns:
                setattr(model, column, getattr(row, column))
            saved.append(model)
        await self.session.flush()
        return [self._to_domain(m) for m in saved]

    async def delete_by_ids(self, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        result = await self.session.execute(
            delete(self.model).where(self.model.id.in_(list(ids)))
        )
        return result.rowcount

    async def delete_by_adjustment_record_ids(self, adjustment_record_ids: Sequence[int]) -> int:
        if not adjustment_record_ids:
            return 0
        result = await self.session.execute(
            delete(self.model).where(self.model.adjustment_record_id.in_(list(adjustment_record_ids)))
        )
        return result.rowcount

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

    async def _load(self, ids: Iterable[int]) -> List[M]:
        id_list = [i for i in ids if i is not None]
        if not id_list:
            return []
        result = await self.session.execute(
            select(self.model).where(self.model.id.in_(id_list)).order_by(self.model.id)
        )
        return list(result.scalars().all())

    def _to_domain(self, model: M) -> D:
        """Convert database model to domain entity"""
        values = {c: getattr(model, c) for c in self._columns}
        return self.domain(id=model.id, **values)
