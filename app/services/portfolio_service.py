"""
PORTFOLIO SERVICE

• Creates / updates / deletes benchmarks and constituents
• Recalculates the whole adjustment record after every mutation
• Keeps the record's Performance (yields, alpha) in step
• One transaction per call, serialized per adjustment record
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.locking import GroupLockRegistry
from app.domain.exceptions import EngineError, InvalidArgumentError, NotFoundError
from app.domain.models import Benchmark, Constituent, Performance
from app.domain.schemas.portfolio import OverviewSchema
from app.domain.services.portfolio_calculation import (
    recalculate_benchmarks,
    recalculate_constituents,
    update_performance,
)
from app.infrastructure.db.repositories.benchmark_repository import BenchmarkRepository
from app.infrastructure.db.repositories.constituent_repository import ConstituentRepository
from app.infrastructure.db.repositories.detail_repository import AdjustmentDetailRepository
from app.infrastructure.db.repositories.performance_repository import PerformanceRepository
from app.infrastructure.db.repositories.portfolio_pact_repository import (
    AdjustmentRecordRepository,
    PortfolioPactRepository,
)

logger = logging.getLogger(__name__)


def _benchmark_side(rows: Sequence[Benchmark]) -> Tuple[List[Benchmark], float]:
    result = recalculate_benchmarks(rows)
    return result.benchmarks, result.earnings_yield


def _constituent_side(rows: Sequence[Constituent]) -> Tuple[List[Constituent], float]:
    result = recalculate_constituents(rows)
    return result.constituents, result.earnings_yield


@dataclass(frozen=True)
class _Side:
    """One kind of detail row feeding the Performance aggregate"""
    label: str
    repository: Type[AdjustmentDetailRepository]
    recalculate: Callable[[Sequence], Tuple[list, float]]
    yield_field: str
    mutable_fields: Tuple[str, ...]


BENCHMARKS = _Side(
    label="Benchmark",
    repository=BenchmarkRepository,
    recalculate=_benchmark_side,
    yield_field="benchmark_earnings_yield",
    mutable_fields=("benchmark_name", "symbol", "percentage_change", "static_weight"),
)

CONSTITUENTS = _Side(
    label="Constituent",
    repository=ConstituentRepository,
    recalculate=_constituent_side,
    yield_field="portfolio_earnings_yield",
    mutable_fields=(
        "adjust_date",
        "symbol",
        "abbreviation",
        "adjust_date_price",
        "current_price",
        "adjust_date_factor",
        "current_factor",
        "adjust_date_weight",
        "pbpe",
        "market_value",
    ),
)


def _group_key(adjustment_record_id: int) -> Tuple[str, int]:
    # Benchmarks and constituents share the key: both write the same Performance row
    return ("portfolio", adjustment_record_id)


class PortfolioService:
    """Orchestrates detail-row mutations and Performance recalculation"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: Optional[GroupLockRegistry] = None,
    ) -> None:
        self.session_factory = session_factory
        self.locks = locks if locks is not None else GroupLockRegistry()

    # ------------------------------------------------------------
    # Benchmarks
    # ------------------------------------------------------------

    async def get_benchmark(self, benchmark_id: int) -> Optional[Benchmark]:
        async with self.session_factory() as session:
            return await BenchmarkRepository(session).get(benchmark_id)

    async def get_benchmarks_by_adjustment_record_id(self, adjustment_record_id: int) -> List[Benchmark]:
        async with self.session_factory() as session:
            return await BenchmarkRepository(session).find_by_adjustment_record_id(adjustment_record_id)

    async def get_benchmarks_by_adjustment_record_ids(self, adjustment_record_ids: Sequence[int]) -> List[Benchmark]:
        async with self.session_factory() as session:
            return await BenchmarkRepository(session).find_by_adjustment_record_ids(adjustment_record_ids)

    async def create_benchmark(self, benchmark: Benchmark) -> Benchmark:
        (created,) = await self._create(BENCHMARKS, [benchmark])
        return created

    async def create_benchmarks(self, benchmarks: Sequence[Benchmark]) -> List[Benchmark]:
        return await self._create(BENCHMARKS, benchmarks)

    async def update_benchmark(self, benchmark_id: int, benchmark: Benchmark) -> Benchmark:
        (updated,) = await self._update(BENCHMARKS, [replace(benchmark, id=benchmark_id)])
        return updated

    async def update_benchmarks(self, benchmarks: Sequence[Benchmark]) -> List[Benchmark]:
        return await self._update(BENCHMARKS, benchmarks)

    async def delete_benchmark(self, benchmark_id: int) -> None:
        await self._delete(BENCHMARKS, [benchmark_id])

    async def delete_benchmarks(self, benchmark_ids: Sequence[int]) -> None:
        await self._delete(BENCHMARKS, benchmark_ids)

    async def delete_benchmarks_by_adjustment_record_id(self, adjustment_record_id: int) -> None:
        await self._delete_groups(BENCHMARKS, [adjustment_record_id])

    async def delete_benchmarks_by_adjustment_record_ids(self, adjustment_record_ids: Sequence[int]) -> None:
        await self._delete_groups(BENCHMARKS, adjustment_record_ids)

    # ------------------------------------------------------------
    # Constituents
    # ------------------------------------------------------------

    async def get_constituent(self, constituent_id: int) -> Optional[Constituent]:
        async with self.session_factory() as session:
            return await ConstituentRepository(session).get(constituent_id)

    async def get_constituents_by_adjustment_record_id(self, adjustment_record_id: int) -> List[Constituent]:
        async with self.session_factory() as session:
            return await ConstituentRepository(session).find_by_adjustment_record_id(adjustment_record_id)

    async def get_constituents_by_adjustment_record_ids(self, adjustment_record_ids: Sequence[int]) -> List[Constituent]:
        async with self.session_factory() as session:
            return await ConstituentRepository(session).find_by_adjustment_record_ids(adjustment_record_ids)

    async def create_constituent(self, constituent: Constituent) -> Constituent:
        (created,) = await self._create(CONSTITUENTS, [constituent])
        return created

    async def create_constituents(self, constituents: Sequence[Constituent]) -> List[Constituent]:
        return await self._create(CONSTITUENTS, constituents)

    async def update_constituent(self, constituent_id: int, constituent: Constituent) -> Constituent:
        (updated,) = await self._update(CONSTITUENTS, [replace(constituent, id=constituent_id)])
        return updated

    async def update_constituents(self, constituents: Sequence[Constituent]) -> List[Constituent]:
        return await self._update(CONSTITUENTS, constituents)

    async def delete_constituent(self, constituent_id: int) -> None:
        await self._delete(CONSTITUENTS, [constituent_id])

    async def delete_constituents(self, constituent_ids: Sequence[int]) -> None:
        await self._delete(CONSTITUENTS, constituent_ids)

    async def delete_constituents_by_adjustment_record_id(self, adjustment_record_id: int) -> None:
        await self._delete_groups(CONSTITUENTS, [adjustment_record_id])

    async def delete_constituents_by_adjustment_record_ids(self, adjustment_record_ids: Sequence[int]) -> None:
        await self._delete_groups(CONSTITUENTS, adjustment_record_ids)

    # ------------------------------------------------------------
    # Performance & overview
    # ------------------------------------------------------------

    async def get_performance(self, adjustment_record_id: int) -> Optional[Performance]:
        async with self.session_factory() as session:
            return await PerformanceRepository(session).get_by_adjustment_record_id(adjustment_record_id)

    async def get_overview(self, adjustment_record_id: int) -> OverviewSchema:
        async with self.session_factory() as session:
            record = await AdjustmentRecordRepository(session).get(adjustment_record_id)
            if record is None:
                raise NotFoundError("AdjustmentRecord", adjustment_record_id)
            performance = await PerformanceRepository(session).get_by_adjustment_record_id(adjustment_record_id)
            if performance is None:
                raise NotFoundError("Performance", adjustment_record_id)
            pact = await PortfolioPactRepository(session).get(record.portfolio_pact_id)
            if pact is None:
                raise NotFoundError("PortfolioPact", record.portfolio_pact_id)
            return OverviewSchema.from_pact_and_performance(pact, record, performance)

    async def get_overviews_by_pact(self, portfolio_pact_id: int) -> List[OverviewSchema]:
        """Overviews of every adjustment record of a pact that has a Performance"""
        async with self.session_factory() as session:
            pact = await PortfolioPactRepository(session).get(portfolio_pact_id)
            if pact is None:
                raise NotFoundError("PortfolioPact", portfolio_pact_id)
            records = await AdjustmentRecordRepository(session).find_by_pact_id(portfolio_pact_id)
            performances = await PerformanceRepository(session).get_by_adjustment_record_ids(
                [r.id for r in records]
            )
            by_record: Dict[int, Performance] = {p.adjustment_record_id: p for p in performances}
            return [
                OverviewSchema.from_pact_and_performance(pact, record, by_record[record.id])
                for record in records
                if record.id in by_record
            ]

    # ------------------------------------------------------------
    # Mutation internals
    # ------------------------------------------------------------

    async def _create(self, side: _Side, rows: Sequence) -> List:
        group = _common_group(side, rows)

        async with self._unit_of_work(f"create {side.label}", [group]) as session:
            repo = side.repository(session)
            created = await repo.add_all([replace(row, id=None) for row in rows])
            await self._recalculate(session, side, group)
            reloaded = await self._reload(repo, side, [row.id for row in created])

        logger.info("Created %d %s row(s) in adjustment record %s", len(reloaded), side.label, group)
        return reloaded

    async def _update(self, side: _Side, rows: Sequence) -> List:
        group = _common_group(side, rows)
        ids = [row.id for row in rows]
        if any(i is None for i in ids):
            raise InvalidArgumentError(f"{side.label} id cannot be null")

        async with self._unit_of_work(f"update {side.label}", [group]) as session:
            repo = side.repository(session)
            existing = {row.id: row for row in await repo.get_many(ids)}

            merged = []
            for row in rows:
                stored = existing.get(row.id)
                if stored is None:
                    raise NotFoundError(side.label, row.id)
                if stored.adjustment_record_id != group:
                    raise InvalidArgumentError(
                        f"{side.label} {row.id} belongs to adjustment record "
                        f"{stored.adjustment_record_id}, not {group}",
                        {"id": row.id, "adjustment_record_id": stored.adjustment_record_id},
                    )
                merged.append(replace(stored, **{f: getattr(row, f) for f in side.mutable_fields}))

            await repo.save_all(merged)
            await self._recalculate(session, side, group)
            reloaded = await self._reload(repo, side, ids)

        logger.info("Updated %d %s row(s) in adjustment record %s", len(reloaded), side.label, group)
        return reloaded

    async def _delete(self, side: _Side, ids: Sequence[int]) -> None:
        ids = list(dict.fromkeys(ids))
        if not ids:
            raise InvalidArgumentError(f"{side.label} ids cannot be empty")

        # Group binding is immutable, so the owning groups can be resolved up front
        async with self.session_factory() as session:
            groups = await self._owning_groups(side.repository(session), side, ids)

        async with self._unit_of_work(f"delete {side.label}", sorted(groups)) as session:
            repo = side.repository(session)
            # Rows may have vanished while waiting for the locks
            await self._owning_groups(repo, side, ids)
            await repo.delete_by_ids(ids)
            for group in sorted(groups):
                await self._recalculate(session, side, group)

        logger.info("Deleted %d %s row(s) from adjustment record(s) %s", len(ids), side.label, sorted(groups))

    async def _delete_groups(self, side: _Side, adjustment_record_ids: Sequence[int]) -> None:
        groups = sorted(set(adjustment_record_ids))
        if not groups:
            raise InvalidArgumentError("Adjustment record ids cannot be empty")

        async with self._unit_of_work(f"delete {side.label} groups", groups, require_groups=False) as session:
            deleted = await side.repository(session).delete_by_adjustment_record_ids(groups)
            await PerformanceRepository(session).delete_by_adjustment_record_ids(groups)

        logger.info(
            "Deleted %d %s row(s) and performance of adjustment record(s) %s",
            deleted, side.label, groups,
        )

    async def _recalculate(self, session: AsyncSession, side: _Side, adjustment_record_id: int) -> Performance:
        """Reload the whole group, recompute it and persist rows and Performance"""
        repo = side.repository(session)
        performance_repo = PerformanceRepository(session)

        rows = await repo.find_by_adjustment_record_id(adjustment_record_id)
        if rows:
            updated, earnings_yield = side.recalculate(rows)
            await repo.save_all(updated)
        else:
            # Last row of this side deleted
            earnings_yield = 0.0

        current = await get_or_create_performance(performance_repo, adjustment_record_id)
        performance = update_performance(
            adjustment_record_id,
            current,
            **{side.yield_field: earnings_yield},
        )
        saved = await performance_repo.save(performance)
        logger.debug(
            "Adjustment record %s: %s=%.6f alpha=%.6f",
            adjustment_record_id, side.yield_field, earnings_yield, saved.alpha,
        )
        return saved

    @asynccontextmanager
    async def _unit_of_work(
        self,
        action: str,
        adjustment_record_ids: Sequence[int],
        require_groups: bool = True,
    ) -> AsyncIterator[AsyncSession]:
        """
        Hold the group locks and one transaction for the duration of a mutation.

        Any exception rolls back every write made through the yielded session.
        """
        async with self.locks.hold(*(_group_key(g) for g in adjustment_record_ids)):
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        records = AdjustmentRecordRepository(session)
                        for group in sorted(adjustment_record_ids):
                            if await records.lock(group) is None and require_groups:
                                raise NotFoundError("AdjustmentRecord", group)
                        yield session
            except EngineError as exc:
                logger.warning("%s rejected: %s", action, exc)
                raise

    @staticmethod
    async def _owning_groups(repo: AdjustmentDetailRepository, side: _Side, ids: Sequence[int]) -> set:
        rows = {row.id: row for row in await repo.get_many(ids)}
        for row_id in ids:
            if row_id not in rows:
                raise NotFoundError(side.label, row_id)
        return {row.adjustment_record_id for row in rows.values()}

    @staticmethod
    async def _reload(repo: AdjustmentDetailRepository, side: _Side, ids: Sequence[int]) -> List:
        rows = {row.id: row for row in await repo.get_many(ids)}
        missing = [i for i in ids if i not in rows]
        if missing:
            raise NotFoundError(side.label, missing[0])
        return [rows[i] for i in ids]


async def get_or_create_performance(repo: PerformanceRepository, adjustment_record_id: int) -> Performance:
    """
    Stored Performance of the group, or a fresh unsaved one.

    The caller persists it with ``PerformanceRepository.save``.
    """
    current = await repo.get_by_adjustment_record_id(adjustment_record_id)
    if current is not None:
        return current
    return update_performance(adjustment_record_id, None)


def _common_group(side: _Side, rows: Sequence) -> int:
    """Single non-null adjustment record id shared by all rows"""
    if not rows:
        raise InvalidArgumentError(f"{side.label}s cannot be empty")
    group_ids = {row.adjustment_record_id for row in rows}
    if None in group_ids:
        raise InvalidArgumentError(f"{side.label} adjustment record id cannot be null")
    if len(group_ids) != 1:
        raise InvalidArgumentError(
            f"All {side.label.lower()}s must have the same adjustment record id",
            {"adjustment_record_ids": sorted(group_ids)},
        )
    (group,) = group_ids
    return group
