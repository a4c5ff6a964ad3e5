"""
Promoter Repository
Lookups for promoters and promotion pacts referenced by promotion records
"""

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import Promoter, PromotionPact
from app.infrastructure.db.models import PromoterModel, PromotionPactModel


class PromoterRepository:
    """Repository for Promoter"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[Promoter]:
        result = await self.session.execute(
            select(PromoterModel).where(PromoterModel.email == email)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def get_email_by_nickname(self, nickname: str) -> Optional[str]:
        result = await self.session.execute(
            select(PromoterModel.email).where(PromoterModel.nickname == nickname)
        )
        return result.scalar_one_or_none()

    async def create(self, email: str, nickname: str) -> Promoter:
        model = PromoterModel(email=email, nickname=nickname)
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: PromoterModel) -> Promoter:
        return Promoter(id=model.id, email=model.email, nickname=model.nickname)


class PromotionPactRepository:
    """Repository for PromotionPact"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_name(self, name: str) -> Optional[PromotionPact]:
        result = await self.session.execute(
            select(PromotionPactModel).where(PromotionPactModel.name == name)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def create(
        self,
        name: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> PromotionPact:
        model = PromotionPactModel(
            name=name,
            start_date=start_date,
            end_date=end_date,
            description=description,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: PromotionPactModel) -> PromotionPact:
        return PromotionPact(
            id=model.id,
            name=model.name,
            start_date=model.start_date,
            end_date=model.end_date,
            description=model.description,
        )
