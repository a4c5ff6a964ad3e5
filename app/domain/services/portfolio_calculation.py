"""
PORTFOLIO CALCULATION ENGINE

RESPONSIBILITIES:
- Re-normalize dynamic weights of one adjustment record's benchmarks
- Re-normalize current weights of one adjustment record's constituents
- Compute the group earnings yield of either side
- Fold a freshly computed yield into the group's Performance (alpha)

RULES:
- Pure functions, no I/O
- Static weights are inputs only, never written
- One adjustment record per call
- Numeric edge cases fail fast with ComputationError
"""

import math
from dataclasses import dataclass, replace
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from app.domain.exceptions import ComputationError, InvalidArgumentError
from app.domain.models import Benchmark, Constituent, Performance

T = TypeVar("T")


@dataclass(frozen=True)
class WeightedGroupAggregator(Generic[T]):
    """
    Weighted aggregation over one group of detail rows.

    weight_i = raw_weight(i) / sum(raw_weight)
    group_yield = sum(weight_i * item_yield(i))
    """
    raw_weight: Callable[[T], float]
    item_yield: Callable[[T], float]

    def aggregate(self, items: Sequence[T], group=None) -> Tuple[List[float], float]:
        raw = [_finite(self.raw_weight(item), "weight", group) for item in items]
        yields = [_finite(self.item_yield(item), "yield", group) for item in items]

        total = math.fsum(raw)
        if total <= 0:
            raise ComputationError("Sum of weights must be positive", group)

        weights = [w / total for w in raw]
        group_yield = math.fsum(w * y for w, y in zip(weights, yields))
        return weights, _finite(group_yield, "group yield", group)


@dataclass(frozen=True)
class BenchmarksResult:
    benchmarks: List[Benchmark]
    earnings_yield: float


@dataclass(frozen=True)
class ConstituentsResult:
    constituents: List[Constituent]
    earnings_yield: float


BENCHMARK_AGGREGATOR: WeightedGroupAggregator[Benchmark] = WeightedGroupAggregator(
    raw_weight=lambda b: b.static_weight,
    item_yield=lambda b: b.percentage_change,
)


def recalculate_benchmarks(benchmarks: Sequence[Benchmark]) -> BenchmarksResult:
    """
    Recompute every benchmark's dynamic weight and the benchmark earnings yield.

    Raises:
        InvalidArgumentError: empty input or more than one adjustment record
        ComputationError: static weights do not sum to a positive number
    """
    if not benchmarks:
        raise InvalidArgumentError("Benchmarks cannot be empty")
    group = _single_group(benchmarks, "benchmarks")

    weights, earnings_yield = BENCHMARK_AGGREGATOR.aggregate(benchmarks, group)

    return BenchmarksResult(
        benchmarks=[replace(b, dynamic_weight=w) for b, w in zip(benchmarks, weights)],
        earnings_yield=earnings_yield,
    )


def constituent_growth(constituent: Constituent) -> float:
    """
    Price/factor drift of a constituent since the adjustment date.

    (current_price / adjust_date_price) * (adjust_date_factor / current_factor)
    """
    group = constituent.adjustment_record_id
    if constituent.adjust_date_price == 0:
        raise ComputationError(
            f"Constituent {constituent.symbol} has zero adjust date price", group
        )
    if constituent.current_factor == 0:
        raise ComputationError(
            f"Constituent {constituent.symbol} has zero current factor", group
        )
    growth = (constituent.current_price / constituent.adjust_date_price) * (
        constituent.adjust_date_factor / constituent.current_factor
    )
    return _finite(growth, f"growth of {constituent.symbol}", group)


CONSTITUENT_AGGREGATOR: WeightedGroupAggregator[Constituent] = WeightedGroupAggregator(
    raw_weight=lambda c: c.adjust_date_weight * constituent_growth(c),
    item_yield=lambda c: constituent_growth(c) - 1.0,
)

# Returns since the adjustment date are weighted by the adjustment-date weights
CONSTITUENT_RETURN_AGGREGATOR: WeightedGroupAggregator[Constituent] = WeightedGroupAggregator(
    raw_weight=lambda c: c.adjust_date_weight,
    item_yield=lambda c: constituent_growth(c) - 1.0,
)


def recalculate_constituents(constituents: Sequence[Constituent]) -> ConstituentsResult:
    """
    Recompute every constituent's current weight and earnings yield,
    and the portfolio earnings yield.

    portfolio_yield = sum(adjust_date_weight * growth) / sum(adjust_date_weight) - 1

    Raises:
        InvalidArgumentError: empty input or more than one adjustment record
        ComputationError: zero price/factor or non-positive weight sum
    """
    if not constituents:
        raise InvalidArgumentError("Constituents cannot be empty")
    group = _single_group(constituents, "constituents")

    weights, _ = CONSTITUENT_AGGREGATOR.aggregate(constituents, group)
    _, earnings_yield = CONSTITUENT_RETURN_AGGREGATOR.aggregate(constituents, group)

    updated = [
        replace(c, current_weight=w, earnings_yield=CONSTITUENT_AGGREGATOR.item_yield(c))
        for c, w in zip(constituents, weights)
    ]
    return ConstituentsResult(constituents=updated, earnings_yield=earnings_yield)


def update_performance(
    adjustment_record_id: int,
    current: Optional[Performance],
    *,
    portfolio_earnings_yield: Optional[float] = None,
    benchmark_earnings_yield: Optional[float] = None,
) -> Performance:
    """
    Produce the new Performance of a group.

    A missing row yields a fresh, unsaved Performance bound to the group.
    Alpha is recomputed from the supplied side and the other side's last value.
    """
    if current is None:
        current = Performance(id=None, adjustment_record_id=adjustment_record_id)

    portfolio = current.portfolio_earnings_yield if portfolio_earnings_yield is None else portfolio_earnings_yield
    benchmark = current.benchmark_earnings_yield if benchmark_earnings_yield is None else benchmark_earnings_yield

    return replace(
        current,
        adjustment_record_id=adjustment_record_id,
        portfolio_earnings_yield=portfolio,
        benchmark_earnings_yield=benchmark,
        alpha=portfolio - benchmark,
    )


def _single_group(rows: Sequence, label: str) -> int:
    group_ids = {row.adjustment_record_id for row in rows}
    if len(group_ids) != 1:
        raise InvalidArgumentError(
            f"All {label} must have the same adjustment record id",
            {"adjustment_record_ids": sorted(group_ids, key=str)},
        )
    (group_id,) = group_ids
    if group_id is None:
        raise InvalidArgumentError(f"Adjustment record id of {label} cannot be null")
    return group_id


def _finite(value: float, what: str, group) -> float:
    if value is None or not math.isfinite(value):
        raise ComputationError(f"Non-finite {what}: {value}", group)
    return value
