"""
Performance Repository
Access to the per-adjustment-record Performance aggregate
"""

from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import Performance
from app.infrastructure.db.models import PerformanceModel


class PerformanceRepository:
    """Repository for Performance"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_adjustment_record_id(self, adjustment_record_id: int) -> Optional[Performance]:
        model = await self._get_model(adjustment_record_id)
        return self._to_domain(model) if model else None

    async def get_by_adjustment_record_ids(self, adjustment_record_ids: Sequence[int]) -> List[Performance]:
        if not adjustment_record_ids:
            return []
        result = await self.session.execute(
            select(PerformanceModel)
            .where(PerformanceModel.adjustment_record_id.in_(list(adjustment_record_ids)))
            .order_by(PerformanceModel.adjustment_record_id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def save(self, performance: Performance) -> Performance:
        """
        Insert or update the group's Performance row.

        Rows are matched by adjustment record id (unique), so an unsaved
        Performance for a group that already has a row updates that row.
        """
        model = await self._get_model(performance.adjustment_record_id)
        if model is None:
            model = PerformanceModel(adjustment_record_id=performance.adjustment_record_id)
            self.session.add(model)

        model.portfolio_earnings_yield = performance.portfolio_earnings_yield
        model.benchmark_earnings_yield = performance.benchmark_earnings_yield
        model.alpha = performance.alpha

        await self.session.flush()
        return self._to_domain(model)

    async def delete_by_adjustment_record_ids(self, adjustment_record_ids: Sequence[int]) -> int:
        if not adjustment_record_ids:
            return 0
        result = await self.session.execute(
            delete(PerformanceModel)
            .where(PerformanceModel.adjustment_record_id.in_(list(adjustment_record_ids)))
        )
        return result.rowcount

    async def _get_model(self, adjustment_record_id: int) -> Optional[PerformanceModel]:
        result = await self.session.execute(
            select(PerformanceModel)
            .where(PerformanceModel.adjustment_record_id == adjustment_record_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(model: PerformanceModel) -> Performance:
        """Convert database model to domain entity"""
        return Performance(
            id=model.id,
            adjustment_record_id=model.adjustment_record_id,
            portfolio_earnings_yield=model.portfolio_earnings_yield,
            benchmark_earnings_yield=model.benchmark_earnings_yield,
            alpha=model.alpha,
        )
