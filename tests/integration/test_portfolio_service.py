import asyncio
from dataclasses import replace
from datetime import date

import pytest

from app.core.locking import GroupLockRegistry
from app.domain.exceptions import ComputationError, InvalidArgumentError, NotFoundError
from app.domain.models import Benchmark, Constituent
from app.services.portfolio_service import PortfolioService


def benchmark(adjustment_record_id, static_weight, percentage_change, symbol="000300.SH"):
    return Benchmark(
        id=None,
        adjustment_record_id=adjustment_record_id,
        benchmark_name="CSI 300",
        symbol=symbol,
        percentage_change=percentage_change,
        static_weight=static_weight,
    )


def constituent(adjustment_record_id, symbol, weight, adjust_price, current_price):
    return Constituent(
        id=None,
        adjustment_record_id=adjustment_record_id,
        adjust_date=date(2026, 3, 11),
        symbol=symbol,
        adjust_date_price=adjust_price,
        current_price=current_price,
        adjust_date_factor=1.0,
        current_factor=1.0,
        adjust_date_weight=weight,
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_benchmarks_recalculates_group(portfolio_service, adjustment_record):
    created = await portfolio_service.create_benchmarks([
        benchmark(adjustment_record.id, 0.6, 0.05, "000300.SH"),
        benchmark(adjustment_record.id, 0.4, 0.025, "000905.SH"),
    ])

    assert [b.id for b in created] == sorted(b.id for b in created)
    assert [b.dynamic_weight for b in created] == pytest.approx([0.6, 0.4])

    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance is not None
    assert performance.benchmark_earnings_yield == pytest.approx(0.04)
    assert performance.portfolio_earnings_yield == 0.0
    assert performance.alpha == pytest.approx(-0.04)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_single_benchmark_renormalizes_siblings(portfolio_service, adjustment_record):
    first = await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 3.0, 0.02))
    assert first.dynamic_weight == pytest.approx(1.0)

    await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, -0.02, "399006.SZ"))

    stored = await portfolio_service.get_benchmarks_by_adjustment_record_id(adjustment_record.id)
    assert [b.dynamic_weight for b in stored] == pytest.approx([0.75, 0.25])
    assert sum(b.dynamic_weight for b in stored) == pytest.approx(1.0)

    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.benchmark_earnings_yield == pytest.approx(0.75 * 0.02 + 0.25 * -0.02)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bulk_create_with_mixed_groups_persists_nothing(
    portfolio_service, adjustment_record, other_adjustment_record
):
    with pytest.raises(InvalidArgumentError):
        await portfolio_service.create_benchmarks([
            benchmark(adjustment_record.id, 0.5, 0.01),
            benchmark(other_adjustment_record.id, 0.5, 0.01),
        ])

    assert await portfolio_service.get_benchmarks_by_adjustment_record_ids(
        [adjustment_record.id, other_adjustment_record.id]
    ) == []
    assert await portfolio_service.get_performance(adjustment_record.id) is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_bulk_create_rejected(portfolio_service):
    with pytest.raises(InvalidArgumentError, match="cannot be empty"):
        await portfolio_service.create_constituents([])


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_for_unknown_adjustment_record(portfolio_service):
    with pytest.raises(NotFoundError):
        await portfolio_service.create_benchmark(benchmark(999, 1.0, 0.01))


@pytest.mark.asyncio
@pytest.mark.integration
async def test_computation_error_rolls_back(portfolio_service, adjustment_record):
    await portfolio_service.create_constituent(constituent(adjustment_record.id, "600519.SH", 1.0, 10.0, 11.0))

    with pytest.raises(ComputationError):
        await portfolio_service.create_constituent(constituent(adjustment_record.id, "000001.SZ", 1.0, 0.0, 11.0))

    stored = await portfolio_service.get_constituents_by_adjustment_record_id(adjustment_record.id)
    assert [c.symbol for c in stored] == ["600519.SH"]
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.portfolio_earnings_yield == pytest.approx(0.1)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_benchmark_changes_yield_and_keeps_static_weight(portfolio_service, adjustment_record):
    a, b = await portfolio_service.create_benchmarks([
        benchmark(adjustment_record.id, 0.6, 0.05),
        benchmark(adjustment_record.id, 0.4, 0.025, "000905.SH"),
    ])

    updated = await portfolio_service.update_benchmark(a.id, replace(a, percentage_change=0.10))

    assert updated.static_weight == 0.6
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.benchmark_earnings_yield == pytest.approx(0.6 * 0.10 + 0.4 * 0.025)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_cannot_move_row_between_groups(
    portfolio_service, adjustment_record, other_adjustment_record
):
    created = await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.01))

    with pytest.raises(InvalidArgumentError):
        await portfolio_service.update_benchmark(
            created.id, replace(created, adjustment_record_id=other_adjustment_record.id)
        )

    assert (await portfolio_service.get_benchmark(created.id)).adjustment_record_id == adjustment_record.id


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_missing_row(portfolio_service, adjustment_record):
    created = await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.01))

    with pytest.raises(NotFoundError):
        await portfolio_service.update_benchmarks([
            replace(created, percentage_change=0.5),
            replace(created, id=created.id + 100),
        ])

    # Whole batch rolled back
    assert (await portfolio_service.get_benchmark(created.id)).percentage_change == 0.01


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_benchmark_recalculates_remaining(portfolio_service, adjustment_record):
    a, b = await portfolio_service.create_benchmarks([
        benchmark(adjustment_record.id, 0.6, 0.05),
        benchmark(adjustment_record.id, 0.4, 0.025, "000905.SH"),
    ])

    await portfolio_service.delete_benchmark(a.id)

    remaining = await portfolio_service.get_benchmarks_by_adjustment_record_id(adjustment_record.id)
    assert [r.id for r in remaining] == [b.id]
    assert remaining[0].dynamic_weight == pytest.approx(1.0)
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.benchmark_earnings_yield == pytest.approx(0.025)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_last_row_resets_side_yield(portfolio_service, adjustment_record):
    (c,) = await portfolio_service.create_constituents([
        constituent(adjustment_record.id, "600519.SH", 1.0, 10.0, 12.0),
    ])
    await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.05))

    await portfolio_service.delete_constituent(c.id)

    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance is not None
    assert performance.portfolio_earnings_yield == 0.0
    assert performance.benchmark_earnings_yield == pytest.approx(0.05)
    assert performance.alpha == pytest.approx(-0.05)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_unknown_id(portfolio_service, adjustment_record):
    created = await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.01))

    with pytest.raises(NotFoundError):
        await portfolio_service.delete_benchmarks([created.id, created.id + 100])

    assert await portfolio_service.get_benchmark(created.id) is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_by_adjustment_record_keeps_record(portfolio_service, adjustment_record):
    await portfolio_service.create_benchmarks([
        benchmark(adjustment_record.id, 0.5, 0.01),
        benchmark(adjustment_record.id, 0.5, 0.03, "000905.SH"),
    ])

    await portfolio_service.delete_benchmarks_by_adjustment_record_id(adjustment_record.id)

    assert await portfolio_service.get_benchmarks_by_adjustment_record_id(adjustment_record.id) == []
    assert await portfolio_service.get_performance(adjustment_record.id) is None

    # The adjustment record itself is still usable
    await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.02))
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.benchmark_earnings_yield == pytest.approx(0.02)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_groups_are_isolated(portfolio_service, adjustment_record, other_adjustment_record):
    await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.01))
    await portfolio_service.create_benchmark(benchmark(other_adjustment_record.id, 1.0, 0.07))

    await portfolio_service.delete_benchmarks_by_adjustment_record_ids([other_adjustment_record.id])

    untouched = await portfolio_service.get_performance(adjustment_record.id)
    assert untouched.benchmark_earnings_yield == pytest.approx(0.01)
    rows = await portfolio_service.get_benchmarks_by_adjustment_record_id(adjustment_record.id)
    assert rows[0].dynamic_weight == pytest.approx(1.0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_alpha_tracks_both_sides(portfolio_service, adjustment_record):
    await portfolio_service.create_constituents([
        constituent(adjustment_record.id, "600519.SH", 0.5, 10.0, 11.0),
        constituent(adjustment_record.id, "000858.SZ", 0.5, 20.0, 20.0),
    ])
    await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.004))

    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.portfolio_earnings_yield == pytest.approx(0.05)
    assert performance.alpha == pytest.approx(
        performance.portfolio_earnings_yield - performance.benchmark_earnings_yield
    )
    assert performance.alpha == pytest.approx(0.046)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_constituent_weights_persisted(portfolio_service, adjustment_record):
    await portfolio_service.create_constituents([
        constituent(adjustment_record.id, "600519.SH", 0.5, 10.0, 11.0),
        constituent(adjustment_record.id, "000858.SZ", 0.5, 20.0, 18.0),
    ])

    stored = await portfolio_service.get_constituents_by_adjustment_record_ids([adjustment_record.id])
    by_symbol = {c.symbol: c for c in stored}
    assert by_symbol["600519.SH"].current_weight == pytest.approx(0.55)
    assert by_symbol["000858.SZ"].earnings_yield == pytest.approx(-0.1)
    assert by_symbol["000858.SZ"].adjust_date_weight == 0.5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_concurrent_creates_in_one_group(portfolio_service, adjustment_record):
    changes = [0.01, 0.02, 0.03, 0.04, 0.05]

    await asyncio.gather(*[
        portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, change, f"B{i}"))
        for i, change in enumerate(changes)
    ])

    stored = await portfolio_service.get_benchmarks_by_adjustment_record_id(adjustment_record.id)
    assert len(stored) == 5
    assert all(b.dynamic_weight == pytest.approx(0.2) for b in stored)
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.benchmark_earnings_yield == pytest.approx(sum(changes) / 5)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_overview(portfolio_service, adjustment_record, portfolio_pact):
    await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.02))

    overview = await portfolio_service.get_overview(adjustment_record.id)

    assert overview.adjustment_record_id == adjustment_record.id
    assert overview.alias == "Semis Long Only"
    assert overview.industry_name == "Semiconductors"
    assert overview.promoter_name == "Jacob"
    assert overview.alpha == pytest.approx(-0.02)
    assert overview.adjust_version == 1

    overviews = await portfolio_service.get_overviews_by_pact(portfolio_pact.id)
    assert [o.adjustment_record_id for o in overviews] == [adjustment_record.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_overview_without_performance(portfolio_service, adjustment_record):
    with pytest.raises(NotFoundError, match="Performance"):
        await portfolio_service.get_overview(adjustment_record.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bulk_update_benchmarks(portfolio_service, adjustment_record):
    a, b = await portfolio_service.create_benchmarks([
        benchmark(adjustment_record.id, 0.6, 0.05),
        benchmark(adjustment_record.id, 0.4, 0.025, "000905.SH"),
    ])

    updated = await portfolio_service.update_benchmarks([
        replace(a, static_weight=1.0, percentage_change=0.02),
        replace(b, static_weight=3.0, percentage_change=-0.02),
    ])

    assert [u.id for u in updated] == [a.id, b.id]
    assert [u.dynamic_weight for u in updated] == pytest.approx([0.25, 0.75])
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.benchmark_earnings_yield == pytest.approx(0.25 * 0.02 + 0.75 * -0.02)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bulk_update_with_mixed_groups_changes_nothing(
    portfolio_service, adjustment_record, other_adjustment_record
):
    a = await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.01))
    b = await portfolio_service.create_benchmark(benchmark(other_adjustment_record.id, 1.0, 0.02))

    with pytest.raises(InvalidArgumentError, match="same adjustment record id"):
        await portfolio_service.update_benchmarks([
            replace(a, percentage_change=0.5),
            replace(b, percentage_change=0.5),
        ])

    assert (await portfolio_service.get_benchmark(a.id)).percentage_change == 0.01
    assert (await portfolio_service.get_benchmark(b.id)).percentage_change == 0.02
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.benchmark_earnings_yield == pytest.approx(0.01)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_constituent_moves_portfolio_yield(portfolio_service, adjustment_record):
    a, b = await portfolio_service.create_constituents([
        constituent(adjustment_record.id, "600519.SH", 0.5, 10.0, 10.0),
        constituent(adjustment_record.id, "000858.SZ", 0.5, 20.0, 20.0),
    ])
    await portfolio_service.create_benchmark(benchmark(adjustment_record.id, 1.0, 0.01))

    updated = await portfolio_service.update_constituent(a.id, replace(a, current_price=12.0))

    assert updated.earnings_yield == pytest.approx(0.2)
    assert updated.adjust_date_weight == 0.5
    assert updated.current_weight == pytest.approx(0.6 / 1.1)
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.portfolio_earnings_yield == pytest.approx(0.1)
    assert performance.alpha == pytest.approx(0.09)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bulk_update_constituents(portfolio_service, adjustment_record):
    a, b = await portfolio_service.create_constituents([
        constituent(adjustment_record.id, "600519.SH", 0.5, 10.0, 10.0),
        constituent(adjustment_record.id, "000858.SZ", 0.5, 20.0, 20.0),
    ])

    updated = await portfolio_service.update_constituents([
        replace(a, current_price=11.0, pbpe=31.5),
        replace(b, current_price=18.0, market_value=1.2e6),
    ])

    assert [u.earnings_yield for u in updated] == pytest.approx([0.1, -0.1])
    assert updated[0].pbpe == 31.5
    assert updated[1].market_value == 1.2e6
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.portfolio_earnings_yield == pytest.approx(0.0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_constituents_by_adjustment_record_keeps_record(
    portfolio_service, adjustment_record, other_adjustment_record
):
    await portfolio_service.create_constituent(constituent(adjustment_record.id, "600519.SH", 1.0, 10.0, 11.0))
    await portfolio_service.create_constituent(constituent(other_adjustment_record.id, "000858.SZ", 1.0, 20.0, 22.0))

    await portfolio_service.delete_constituents_by_adjustment_record_id(adjustment_record.id)

    assert await portfolio_service.get_constituents_by_adjustment_record_id(adjustment_record.id) == []
    assert await portfolio_service.get_performance(adjustment_record.id) is None
    assert (await portfolio_service.get_performance(other_adjustment_record.id)) is not None

    await portfolio_service.delete_constituents_by_adjustment_record_ids([other_adjustment_record.id])
    assert await portfolio_service.get_constituents_by_adjustment_record_ids([other_adjustment_record.id]) == []
    assert await portfolio_service.get_performance(other_adjustment_record.id) is None

    # Both adjustment records survive and accept new rows
    created = await portfolio_service.create_constituent(
        constituent(adjustment_record.id, "600519.SH", 1.0, 10.0, 10.5)
    )
    assert created.current_weight == pytest.approx(1.0)
    performance = await portfolio_service.get_performance(adjustment_record.id)
    assert performance.portfolio_earnings_yield == pytest.approx(0.05)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_services_share_injected_lock_registry(session_factory, adjustment_record):
    locks = GroupLockRegistry()
    first = PortfolioService(session_factory, locks)
    second = PortfolioService(session_factory, locks)

    assert first.locks is locks
    assert second.locks is locks

    changes = [0.01, 0.02, 0.03, 0.04]
    await asyncio.gather(*[
        service.create_benchmark(benchmark(adjustment_record.id, 1.0, change, f"B{i}"))
        for i, (service, change) in enumerate(zip([first, second, first, second], changes))
    ])

    stored = await first.get_benchmarks_by_adjustment_record_id(adjustment_record.id)
    assert len(stored) == 4
    assert all(b.dynamic_weight == pytest.approx(0.25) for b in stored)
    performance = await second.get_performance(adjustment_record.id)
    assert performance.benchmark_earnings_yield == pytest.approx(sum(changes) / 4)
    assert len(locks) == 0
