from datetime import date

from pydantic import BaseModel

from app.domain.models import AdjustmentRecord, Performance, PortfolioPact


class OverviewSchema(BaseModel):
    """Display projection of one adjustment record's performance"""
    adjustment_record_id: int
    industry_name: str
    promoter_name: str
    alias: str
    portfolio_earnings_yield: float
    benchmark_earnings_yield: float
    alpha: float
    adjust_date: date
    adjust_version: int

    @classmethod
    def from_pact_and_performance(
        cls,
        pact: PortfolioPact,
        record: AdjustmentRecord,
        performance: Performance,
    ) -> "OverviewSchema":
        return cls(
            adjustment_record_id=record.id,
            industry_name=pact.industry_name,
            promoter_name=pact.promoter_nickname or pact.promoter_email,
            alias=pact.alias,
            portfolio_earnings_yield=performance.portfolio_earnings_yield,
            benchmark_earnings_yield=performance.benchmark_earnings_yield,
            alpha=performance.alpha,
            adjust_date=record.adjust_date,
            adjust_version=record.adjust_version,
        )
