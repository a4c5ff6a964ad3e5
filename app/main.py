"""
Engine entrypoint
Wires logging, the database and the recalculation services together
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.locking import GroupLockRegistry
from app.core.logging import setup_logging
from app.services.portfolio_service import PortfolioService
from app.services.promotion_service import PromotionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    portfolio: PortfolioService
    promotion: PromotionService


@asynccontextmanager
async def lifespan(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[Services, None]:
    """
    Startup and shutdown of the engine.

    Without an explicit session factory the configured database is used and
    its connections are closed on exit.
    """
    setup_logging(settings.LOG_LEVEL, redact_emails=settings.REDACT_EMAILS_IN_LOGS)

    owns_database = session_factory is None
    if owns_database:
        from app.infrastructure.db.database import async_session_factory, init_db

        await init_db()
        session_factory = async_session_factory
        logger.info("Database initialized (%s)", settings.APP_ENV)

    locks = GroupLockRegistry()
    services = Services(
        portfolio=PortfolioService(session_factory, locks),
        promotion=PromotionService(session_factory, locks),
    )
    logger.info("Recalculation engine started")
    try:
        yield services
    finally:
        if owns_database:
            from app.infrastructure.db.database import close_db

            await close_db()
        logger.info("Recalculation engine stopped")
