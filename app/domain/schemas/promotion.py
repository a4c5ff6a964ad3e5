from pydantic import BaseModel, ConfigDict

from app.domain.models import PromotionStatistic


class PromotionStatisticSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    promotion_pact_name: str
    promoter_email: str
    total_count: int
    open_count: int
    win_count: int
    loss_count: int
    win_rate: float
    cumulative_earnings_yield: float
    average_earnings_yield: float
    cumulative_performance_score: float
    average_performance_score: float

    @classmethod
    def from_statistic(cls, statistic: PromotionStatistic) -> "PromotionStatisticSchema":
        return cls.model_validate(statistic)
