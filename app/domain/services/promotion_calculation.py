"""
PROMOTION CALCULATION ENGINE

RESPONSIBILITIES:
- Derive a promotion record's earnings yield from prices, direction and factor
- Rebuild a (pact, promoter) PromotionStatistic from its records

RULES:
- Statistics are always recomputed from the full record set, never patched
- Pure functions, no I/O
"""

import math
from dataclasses import replace
from typing import List, Optional, Sequence

from app.domain.exceptions import ComputationError, InvalidArgumentError
from app.domain.models import (
    Direction,
    PromotionRecord,
    PromotionStatistic,
    StatisticMode,
)


def calculate_earnings_yield(
    direction: Direction,
    open_price: float,
    close_price: Optional[float],
    adjust_factor: Optional[float] = None,
) -> Optional[float]:
    """
    Earnings yield of a single trade.

    Long positions profit when the (factor adjusted) close is above the open,
    short positions when it is below. Open positions have no yield yet.
    """
    if open_price is None or open_price <= 0:
        raise ComputationError(f"Open price must be positive, got {open_price}")
    if close_price is None:
        return None

    factor = 1.0 if adjust_factor is None else adjust_factor
    ratio = close_price * factor / open_price
    if not math.isfinite(ratio):
        raise ComputationError(f"Non-finite price ratio: {ratio}")

    if Direction(direction) is Direction.LONG:
        return ratio - 1.0
    return 1.0 - ratio


def with_earnings_yield(record: PromotionRecord) -> PromotionRecord:
    """Return the record with its earnings yield re-derived from its prices"""
    return replace(
        record,
        earnings_yield=calculate_earnings_yield(
            record.direction,
            record.open_price,
            record.close_price,
            record.adjust_factor,
        ),
    )


def affect_statistic(
    mode: StatisticMode,
    record: PromotionRecord,
    statistic: PromotionStatistic,
    siblings: Sequence[PromotionRecord],
) -> PromotionStatistic:
    """
    Recompute a group's statistic after one record mutation.

    Args:
        mode: CREATE / UPDATE include the record, DELETE excludes it
        record: the record being mutated (post-mutation state)
        statistic: current statistic of the group (may be unsaved)
        siblings: records of the group as currently stored

    Returns:
        New PromotionStatistic keeping the incoming id and group key
    """
    if record.group_key != statistic.group_key and mode is not StatisticMode.DELETE:
        raise InvalidArgumentError(
            "Promotion record and statistic belong to different groups",
            {"record": record.group_key, "statistic": statistic.group_key},
        )

    population = _population(mode, record, siblings)
    return recompute_statistic(statistic, population)


def recompute_statistic(
    statistic: PromotionStatistic,
    records: Sequence[PromotionRecord],
) -> PromotionStatistic:
    """Rebuild every aggregate field of ``statistic`` from ``records``"""
    yields: List[float] = []
    open_count = 0
    win_count = 0
    loss_count = 0

    for record in records:
        earnings_yield = calculate_earnings_yield(
            record.direction, record.open_price, record.close_price, record.adjust_factor
        )
        if earnings_yield is None:
            open_count += 1
            continue
        yields.append(earnings_yield)
        if earnings_yield > 0:
            win_count += 1
        elif earnings_yield < 0:
            loss_count += 1

    scores = [r.performance_score for r in records if r.performance_score is not None]
    decided = win_count + loss_count

    cumulative_yield = math.fsum(yields)
    cumulative_score = math.fsum(scores)

    return replace(
        statistic,
        total_count=len(records),
        open_count=open_count,
        win_count=win_count,
        loss_count=loss_count,
        win_rate=win_count / decided if decided else 0.0,
        cumulative_earnings_yield=cumulative_yield,
        average_earnings_yield=cumulative_yield / len(yields) if yields else 0.0,
        cumulative_performance_score=cumulative_score,
        average_performance_score=cumulative_score / len(scores) if scores else 0.0,
    )


def _population(
    mode: StatisticMode,
    record: PromotionRecord,
    siblings: Sequence[PromotionRecord],
) -> List[PromotionRecord]:
    if mode is StatisticMode.CREATE:
        return [*siblings, record]

    others = [s for s in siblings if record.id is None or s.id != record.id]
    if mode is StatisticMode.UPDATE:
        return [*others, record]
    return others
