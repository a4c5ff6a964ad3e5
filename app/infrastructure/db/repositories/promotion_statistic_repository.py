"""
Promotion Statistic Repository
Access to the per-(pact, promoter) PromotionStatistic aggregate
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import PromotionGroupKey, PromotionStatistic
from app.infrastructure.db.models import PromotionStatisticModel

_AGGREGATE_COLUMNS = (
    "total_count",
    "open_count",
    "win_count",
    "loss_count",
    "win_rate",
    "cumulative_earnings_yield",
    "average_earnings_yield",
    "cumulative_performance_score",
    "average_performance_score",
)


class PromotionStatisticRepository:
    """Repository for PromotionStatistic"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, statistic_id: int) -> Optional[PromotionStatistic]:
        model = await self.session.get(PromotionStatisticModel, statistic_id)
        return self._to_domain(model) if model else None

    async def get_by_group(
        self,
        key: PromotionGroupKey,
        for_update: bool = False,
    ) -> Optional[PromotionStatistic]:
        model = await self._get_model(key, for_update=for_update)
        return self._to_domain(model) if model else None

    async def get_or_default(self, key: PromotionGroupKey, for_update: bool = False) -> PromotionStatistic:
        """
        Stored statistic of the group, or a fresh unsaved one.

        The caller persists it with ``save``.
        """
        existing = await self.get_by_group(key, for_update=for_update)
        if existing is not None:
            return existing
        return PromotionStatistic(
            id=None,
            promotion_pact_name=key.promotion_pact_name,
            promoter_email=key.promoter_email,
        )

    async def find_by_pact_name(self, promotion_pact_name: str) -> List[PromotionStatistic]:
        result = await self.session.execute(
            select(PromotionStatisticModel)
            .where(PromotionStatisticModel.promotion_pact_name == promotion_pact_name)
            .order_by(PromotionStatisticModel.id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def find_by_promoter_email(self, promoter_email: str) -> List[PromotionStatistic]:
        result = await self.session.execute(
            select(PromotionStatisticModel)
            .where(PromotionStatisticModel.promoter_email == promoter_email)
            .order_by(PromotionStatisticModel.id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def find_all(self) -> List[PromotionStatistic]:
        result = await self.session.execute(
            select(PromotionStatisticModel).order_by(PromotionStatisticModel.id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def count_by_pact_name(self, promotion_pact_name: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(PromotionStatisticModel)
            .where(PromotionStatisticModel.promotion_pact_name == promotion_pact_name)
        )
        return result.scalar_one()

    async def save(self, statistic: PromotionStatistic) -> PromotionStatistic:
        """Insert or update the statistic of its group"""
        model = await self._get_model(statistic.group_key)
        if model is None:
            model = PromotionStatisticModel(
                promotion_pact_name=statistic.promotion_pact_name,
                promoter_email=statistic.promoter_email,
            )
            self.session.add(model)

        for column in _AGGREGATE_COLUMNS:
            setattr(model, column, getattr(statistic, column))

        await self.session.flush()
        return self._to_domain(model)

    async def _get_model(
        self,
        key: PromotionGroupKey,
        for_update: bool = False,
    ) -> Optional[PromotionStatisticModel]:
        stmt = select(PromotionStatisticModel).where(
            PromotionStatisticModel.promotion_pact_name == key.promotion_pact_name,
            PromotionStatisticModel.promoter_email == key.promoter_email,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(model: PromotionStatisticModel) -> PromotionStatistic:
        """Convert database model to domain entity"""
        return PromotionStatistic(
            id=model.id,
            promotion_pact_name=model.promotion_pact_name,
            promoter_email=model.promoter_email,
            **{column: getattr(model, column) for column in _AGGREGATE_COLUMNS},
        )
