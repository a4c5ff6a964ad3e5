"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import NamedTuple, Optional


class Direction(str, Enum):
    """Trade direction of a promotion record"""
    LONG = "LONG"
    SHORT = "SHORT"


class StatisticMode(str, Enum):
    """Kind of mutation feeding a statistic recalculation"""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class PromotionGroupKey(NamedTuple):
    """Scope of one PromotionStatistic"""
    promotion_pact_name: str
    promoter_email: str


# ------------------------------------------------------------
# Registry rows (referenced, not managed, by the engine)
# ------------------------------------------------------------

@dataclass(frozen=True)
class Promoter:
    """Person promoting portfolios and trades"""
    id: Optional[int]
    email: str
    nickname: str

    def __post_init__(self):
        if not self.email:
            raise ValueError("Promoter email cannot be empty")


@dataclass(frozen=True)
class PromotionPact:
    """Promotion contest a record is filed under"""
    id: Optional[int]
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class PortfolioPact:
    """A promoter's portfolio within an industry"""
    id: Optional[int]
    alias: str
    industry_name: str
    promoter_email: str
    promoter_nickname: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class AdjustmentRecord:
    """One adjustment event (date + version) of a portfolio pact"""
    id: Optional[int]
    portfolio_pact_id: int
    adjust_date: date
    adjust_version: int = 1


# ------------------------------------------------------------
# Portfolio detail rows and aggregate
# ------------------------------------------------------------

@dataclass(frozen=True)
class Benchmark:
    """Reference-index component of an adjustment record"""
    id: Optional[int]
    adjustment_record_id: Optional[int]
    benchmark_name: str
    symbol: str
    percentage_change: float
    static_weight: float
    dynamic_weight: Optional[float] = None


@dataclass(frozen=True)
class Constituent:
    """One holding within a portfolio snapshot"""
    id: Optional[int]
    adjustment_record_id: Optional[int]
    adjust_date: date
    symbol: str
    adjust_date_price: float
    current_price: float
    adjust_date_factor: float
    current_factor: float
    adjust_date_weight: float
    abbreviation: Optional[str] = None
    pbpe: Optional[float] = None
    market_value: Optional[float] = None
    current_weight: Optional[float] = None
    earnings_yield: Optional[float] = None


@dataclass(frozen=True)
class Performance:
    """Derived per-adjustment-record aggregate"""
    id: Optional[int]
    adjustment_record_id: int
    portfolio_earnings_yield: float = 0.0
    benchmark_earnings_yield: float = 0.0
    alpha: float = 0.0


# ------------------------------------------------------------
# Promotion detail rows and aggregate
# ------------------------------------------------------------

@dataclass(frozen=True)
class PromotionRecord:
    """A simulated or real trade filed by a promoter"""
    id: Optional[int]
    promotion_pact_name: str
    promoter_email: str
    symbol: str
    direction: Direction
    open_time: datetime
    open_price: float
    abbreviation: Optional[str] = None
    industry: Optional[str] = None
    close_time: Optional[datetime] = None
    close_price: Optional[float] = None
    adjust_factor: Optional[float] = None
    earnings_yield: Optional[float] = None
    performance_score: Optional[float] = None
    is_archived: bool = False

    @property
    def group_key(self) -> PromotionGroupKey:
        return PromotionGroupKey(self.promotion_pact_name, self.promoter_email)


@dataclass(frozen=True)
class PromotionStatistic:
    """Derived per-(pact, promoter) aggregate"""
    id: Optional[int]
    promotion_pact_name: str
    promoter_email: str
    total_count: int = 0
    open_count: int = 0
    win_count: int = 0
    loss_count: int = 0
    win_rate: float = 0.0
    cumulative_earnings_yield: float = 0.0
    average_earnings_yield: float = 0.0
    cumulative_performance_score: float = 0.0
    average_performance_score: float = 0.0

    @property
    def group_key(self) -> PromotionGroupKey:
        return PromotionGroupKey(self.promotion_pact_name, self.promoter_email)
