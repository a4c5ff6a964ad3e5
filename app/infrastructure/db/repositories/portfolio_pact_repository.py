"""
Portfolio Pact Repository
Portfolio pacts and their adjustment records (the portfolio groups)
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import AdjustmentRecord, PortfolioPact
from app.infrastructure.db.models import AdjustmentRecordModel, PortfolioPactModel


class PortfolioPactRepository:
    """Repository for PortfolioPact"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, pact_id: int) -> Optional[PortfolioPact]:
        model = await self.session.get(PortfolioPactModel, pact_id)
        return self._to_domain(model) if model else None

    async def create(
        self,
        alias: str,
        industry_name: str,
        promoter_email: str,
        description: Optional[str] = None,
    ) -> PortfolioPact:
        model = PortfolioPactModel(
            alias=alias,
            industry_name=industry_name,
            promoter_email=promoter_email,
            description=description,
        )
        self.session.add(model)
        await self.session.flush()
        # Load the joined promoter for the nickname
        await self.session.refresh(model, attribute_names=["promoter"])
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: PortfolioPactModel) -> PortfolioPact:
        """Convert database model to domain entity"""
        return PortfolioPact(
            id=model.id,
            alias=model.alias,
            industry_name=model.industry_name,
            promoter_email=model.promoter_email,
            promoter_nickname=model.promoter.nickname if model.promoter else None,
            description=model.description,
        )


class AdjustmentRecordRepository:
    """Repository for AdjustmentRecord"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, record_id: int) -> Optional[AdjustmentRecord]:
        model = await self.session.get(AdjustmentRecordModel, record_id)
        return self._to_domain(model) if model else None

    async def lock(self, record_id: int) -> Optional[AdjustmentRecord]:
        """
        Fetch the record with SELECT ... FOR UPDATE.

        Holding this row lock serializes recalculations of the same group
        across processes until the surrounding transaction ends.
        """
        result = await self.session.execute(
            select(AdjustmentRecordModel)
            .where(AdjustmentRecordModel.id == record_id)
            .with_for_update()
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def find_by_pact_id(self, portfolio_pact_id: int) -> List[AdjustmentRecord]:
        result = await self.session.execute(
            select(AdjustmentRecordModel)
            .where(AdjustmentRecordModel.portfolio_pact_id == portfolio_pact_id)
            .order_by(AdjustmentRecordModel.adjust_date, AdjustmentRecordModel.adjust_version)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def create(
        self,
        portfolio_pact_id: int,
        adjust_date: date,
        adjust_version: int = 1,
    ) -> AdjustmentRecord:
        model = AdjustmentRecordModel(
            portfolio_pact_id=portfolio_pact_id,
            adjust_date=adjust_date,
            adjust_version=adjust_version,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: AdjustmentRecordModel) -> AdjustmentRecord:
        """Convert database model to domain entity"""
        return AdjustmentRecord(
            id=model.id,
            portfolio_pact_id=model.portfolio_pact_id,
            adjust_date=model.adjust_date,
            adjust_version=model.adjust_version,
        )
