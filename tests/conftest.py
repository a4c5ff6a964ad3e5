from datetime import date
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from app.domain.models import AdjustmentRecord, PromotionGroupKey
from app.infrastructure.db.database import Base, build_session_factory
from app.infrastructure.db import models  # noqa: F401
from app.infrastructure.db.repositories.portfolio_pact_repository import (
    AdjustmentRecordRepository,
    PortfolioPactRepository,
)
from app.infrastructure.db.repositories.promoter_repository import (
    PromoterRepository,
    PromotionPactRepository,
)
from app.services.portfolio_service import PortfolioService
from app.services.promotion_service import PromotionService


PROMOTER_EMAIL = "jacob@example.com"
PROMOTER_NICKNAME = "Jacob"
PACT_NAME = "2026-spring"


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        future=True,
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def portfolio_service(session_factory) -> PortfolioService:
    return PortfolioService(session_factory)


@pytest.fixture()
def promotion_service(session_factory) -> PromotionService:
    return PromotionService(session_factory)


@pytest.fixture()
async def promoter(session_factory):
    async with session_factory() as session, session.begin():
        return await PromoterRepository(session).create(PROMOTER_EMAIL, PROMOTER_NICKNAME)


@pytest.fixture()
async def portfolio_pact(session_factory, promoter):
    async with session_factory() as session, session.begin():
        return await PortfolioPactRepository(session).create(
            alias="Semis Long Only",
            industry_name="Semiconductors",
            promoter_email=promoter.email,
        )


async def _new_adjustment_record(session_factory, pact_id: int, version: int) -> AdjustmentRecord:
    async with session_factory() as session, session.begin():
        return await AdjustmentRecordRepository(session).create(
            portfolio_pact_id=pact_id,
            adjust_date=date(2026, 3, 11),
            adjust_version=version,
        )


@pytest.fixture()
async def adjustment_record(session_factory, portfolio_pact) -> AdjustmentRecord:
    return await _new_adjustment_record(session_factory, portfolio_pact.id, 1)


@pytest.fixture()
async def other_adjustment_record(session_factory, portfolio_pact) -> AdjustmentRecord:
    return await _new_adjustment_record(session_factory, portfolio_pact.id, 2)


@pytest.fixture()
async def promotion_group(session_factory, promoter) -> PromotionGroupKey:
    async with session_factory() as session, session.begin():
        await PromotionPactRepository(session).create(PACT_NAME, start_date=date(2026, 3, 1))
    return PromotionGroupKey(PACT_NAME, promoter.email)
