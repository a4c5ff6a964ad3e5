"""
Promotion Record Repository
CRUD operations for promotion records
"""

from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import Direction, PromotionGroupKey, PromotionRecord
from app.infrastructure.db.models import DirectionEnum, PromotionRecordModel

_MUTABLE_COLUMNS = (
    "promotion_pact_name",
    "promoter_email",
    "symbol",
    "abbreviation",
    "industry",
    "open_time",
    "open_price",
    "close_time",
    "close_price",
    "adjust_factor",
    "earnings_yield",
    "performance_score",
    "is_archived",
)


class PromotionRecordRepository:
    """Repository for PromotionRecord"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, record_id: int) -> Optional[PromotionRecord]:
        model = await self.session.get(PromotionRecordModel, record_id)
        return self._to_domain(model) if model else None

    async def find_by_group(self, key: PromotionGroupKey) -> List[PromotionRecord]:
        """All records of one (pact, promoter) group"""
        result = await self.session.execute(
            select(PromotionRecordModel)
            .where(
                PromotionRecordModel.promotion_pact_name == key.promotion_pact_name,
                PromotionRecordModel.promoter_email == key.promoter_email,
            )
            .order_by(PromotionRecordModel.id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def list_page(self, page: int, size: int) -> List[PromotionRecord]:
        result = await self.session.execute(
            select(PromotionRecordModel)
            .order_by(PromotionRecordModel.id)
            .offset(page * size)
            .limit(size)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def add(self, record: PromotionRecord) -> PromotionRecord:
        model = PromotionRecordModel(direction=DirectionEnum(Direction(record.direction).value))
        self._apply(model, record)
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def save(self, record: PromotionRecord) -> PromotionRecord:
        """Write every mutable column of an existing record"""
        model = await self.session.get(PromotionRecordModel, record.id)
        if model is None:
            raise LookupError(f"PromotionRecord {record.id} does not exist")
        model.direction = DirectionEnum(Direction(record.direction).value)
        self._apply(model, record)
        await self.session.flush()
        return self._to_domain(model)

    async def delete(self, record_id: int) -> int:
        result = await self.session.execute(
            delete(PromotionRecordModel).where(PromotionRecordModel.id == record_id)
        )
        return result.rowcount

    async def count(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(PromotionRecordModel)
        )
        return result.scalar_one()

    @staticmethod
    def _apply(model: PromotionRecordModel, record: PromotionRecord) -> None:
        for column in _MUTABLE_COLUMNS:
            setattr(model, column, getattr(record, column))

    @staticmethod
    def _to_domain(model: PromotionRecordModel) -> PromotionRecord:
        """Convert database model to domain entity"""
        return PromotionRecord(
            id=model.id,
            promotion_pact_name=model.promotion_pact_name,
            promoter_email=model.promoter_email,
            symbol=model.symbol,
            abbreviation=model.abbreviation,
            industry=model.industry,
            direction=Direction(model.direction.value),
            open_time=model.open_time,
            open_price=model.open_price,
            close_time=model.close_time,
            close_price=model.close_price,
            adjust_factor=model.adjust_factor,
            earnings_yield=model.earnings_yield,
            performance_score=model.performance_score,
            is_archived=model.is_archived,
        )
