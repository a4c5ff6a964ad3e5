"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    Direction,
    StatisticMode,

    # Keys
    PromotionGroupKey,

    # Entities
    AdjustmentRecord,
    Benchmark,
    Constituent,
    Performance,
    PortfolioPact,
    Promoter,
    PromotionPact,
    PromotionRecord,
    PromotionStatistic,
)

__all__ = [
    # Enums
    "Direction",
    "StatisticMode",

    # Keys
    "PromotionGroupKey",

    # Entities
    "AdjustmentRecord",
    "Benchmark",
    "Constituent",
    "Performance",
    "PortfolioPact",
    "Promoter",
    "PromotionPact",
    "PromotionRecord",
    "PromotionStatistic",
]
