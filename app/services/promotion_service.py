"""
PROMOTION SERVICE

Business logic for promotion records. Every create / update / delete of a
record rebuilds the PromotionStatistic of its (pact, promoter) group in the
same transaction.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import AsyncIterator, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.locking import GroupLockRegistry
from app.domain.exceptions import EngineError, InvalidArgumentError, NotFoundError
from app.domain.models import (
    PromotionGroupKey,
    PromotionRecord,
    PromotionStatistic,
    StatisticMode,
)
from app.domain.services.promotion_calculation import affect_statistic, with_earnings_yield
from app.infrastructure.db.repositories.promoter_repository import (
    PromoterRepository,
    PromotionPactRepository,
)
from app.infrastructure.db.repositories.promotion_record_repository import PromotionRecordRepository
from app.infrastructure.db.repositories.promotion_statistic_repository import PromotionStatisticRepository

logger = logging.getLogger(__name__)


def _group_lock_key(key: PromotionGroupKey):
    return ("promotion", key.promotion_pact_name, key.promoter_email)


class PromotionService:
    """Orchestrates promotion record mutations and statistic recalculation"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: Optional[GroupLockRegistry] = None,
    ) -> None:
        self.session_factory = session_factory
        self.locks = locks if locks is not None else GroupLockRegistry()

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    async def get_promotion_record(self, record_id: int) -> Optional[PromotionRecord]:
        async with self.session_factory() as session:
            return await PromotionRecordRepository(session).get(record_id)

    async def get_promotion_records(self, page: int = 0, size: Optional[int] = None) -> List[PromotionRecord]:
        size = settings.DEFAULT_PAGE_SIZE if size is None else size
        if page < 0 or size <= 0:
            raise InvalidArgumentError("Page must be >= 0 and size must be positive")
        size = min(size, settings.MAX_PAGE_SIZE)
        async with self.session_factory() as session:
            return await PromotionRecordRepository(session).list_page(page, size)

    async def count_promotion_records(self) -> int:
        async with self.session_factory() as session:
            return await PromotionRecordRepository(session).count()

    async def get_promotion_statistic(self, statistic_id: int) -> PromotionStatistic:
        async with self.session_factory() as session:
            statistic = await PromotionStatisticRepository(session).get(statistic_id)
        if statistic is None:
            raise NotFoundError("PromotionStatistic", statistic_id)
        return statistic

    async def get_promotion_statistics(
        self,
        promotion_pact_name: Optional[str] = None,
        promoter_nickname: Optional[str] = None,
    ) -> List[PromotionStatistic]:
        """
        Statistics filtered by pact name or by promoter nickname (not both).
        """
        if promotion_pact_name is not None and promoter_nickname is not None:
            raise InvalidArgumentError("Filter by promotion pact name or promoter name, not both")

        async with self.session_factory() as session:
            statistics = PromotionStatisticRepository(session)
            if promotion_pact_name is not None:
                return await statistics.find_by_pact_name(promotion_pact_name)
            if promoter_nickname is not None:
                email = await PromoterRepository(session).get_email_by_nickname(promoter_nickname)
                if email is None:
                    raise NotFoundError("Promoter", promoter_nickname)
                return await statistics.find_by_promoter_email(email)
            return await statistics.find_all()

    async def count_promotion_statistics(self, promotion_pact_name: str) -> int:
        async with self.session_factory() as session:
            return await PromotionStatisticRepository(session).count_by_pact_name(promotion_pact_name)

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------

    async def create_promotion_record(self, record: PromotionRecord) -> PromotionRecord:
        record = with_earnings_yield(replace(record, id=None))
        key = record.group_key

        async with self._unit_of_work("create PromotionRecord", [key]) as session:
            await self._validate_group(session, key)
            await self._recalculate(session, StatisticMode.CREATE, record, key)
            created = await PromotionRecordRepository(session).add(record)

        logger.info("Created promotion record %s for %s", created.id, key)
        return created

    async def update_promotion_record(self, record_id: int, record: PromotionRecord) -> PromotionRecord:
        """
        Replace a record's fields and rebuild the affected statistics.

        A change of pact or promoter moves the record between groups; the
        statistics of both the old and the new group are rebuilt.
        """
        record = with_earnings_yield(replace(record, id=record_id))
        new_key = record.group_key

        async with self.session_factory() as session:
            stored = await PromotionRecordRepository(session).get(record_id)
        if stored is None:
            raise NotFoundError("PromotionRecord", record_id)
        old_key = stored.group_key

        async with self._unit_of_work("update PromotionRecord", [old_key, new_key]) as session:
            records = PromotionRecordRepository(session)
            stored = await records.get(record_id)
            if stored is None:
                raise NotFoundError("PromotionRecord", record_id)
            if stored.group_key != old_key:
                raise InvalidArgumentError(
                    f"PromotionRecord {record_id} changed group concurrently",
                    {"id": record_id},
                )

            await self._validate_group(session, new_key)
            # Fixed order so concurrent moves take statistic row locks consistently
            for key in sorted({old_key, new_key}):
                if key == new_key:
                    await self._recalculate(session, StatisticMode.UPDATE, record, new_key)
                else:
                    await self._recalculate(session, StatisticMode.DELETE, stored, old_key)
            updated = await records.save(record)

        logger.info("Updated promotion record %s (%s -> %s)", record_id, old_key, new_key)
        return updated

    async def delete_promotion_record(self, record_id: int) -> None:
        async with self.session_factory() as session:
            stored = await PromotionRecordRepository(session).get(record_id)
        if stored is None:
            raise NotFoundError("PromotionRecord", record_id)
        key = stored.group_key

        async with self._unit_of_work("delete PromotionRecord", [key]) as session:
            records = PromotionRecordRepository(session)
            stored = await records.get(record_id)
            if stored is None:
                raise NotFoundError("PromotionRecord", record_id)
            await self._recalculate(session, StatisticMode.DELETE, stored, key)
            await records.delete(record_id)

        logger.info("Deleted promotion record %s from %s", record_id, key)

    # ------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------

    async def _recalculate(
        self,
        session: AsyncSession,
        mode: StatisticMode,
        record: PromotionRecord,
        key: PromotionGroupKey,
    ) -> PromotionStatistic:
        statistics = PromotionStatisticRepository(session)
        current = await statistics.get_or_default(key, for_update=True)
        siblings = await PromotionRecordRepository(session).find_by_group(key)

        statistic = affect_statistic(mode, record, current, siblings)
        saved = await statistics.save(statistic)
        logger.debug(
            "%s %s: total=%d win=%d loss=%d",
            mode.value, key, saved.total_count, saved.win_count, saved.loss_count,
        )
        return saved

    @staticmethod
    async def _validate_group(session: AsyncSession, key: PromotionGroupKey) -> None:
        if not key.promotion_pact_name or not key.promoter_email:
            raise InvalidArgumentError("Promotion pact name and promoter email are required")
        if await PromotionPactRepository(session).get_by_name(key.promotion_pact_name) is None:
            raise InvalidArgumentError(
                f"Unknown promotion pact {key.promotion_pact_name}",
                {"promotion_pact_name": key.promotion_pact_name},
            )
        if await PromoterRepository(session).get_by_email(key.promoter_email) is None:
            raise InvalidArgumentError(
                f"Unknown promoter {key.promoter_email}",
                {"promoter_email": key.promoter_email},
            )

    @asynccontextmanager
    async def _unit_of_work(self, action: str, keys: Sequence[PromotionGroupKey]) -> AsyncIterator[AsyncSession]:
        async with self.locks.hold(*(_group_lock_key(k) for k in keys)):
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        yield session
            except EngineError as exc:
                logger.warning("%s rejected: %s", action, exc)
                raise
