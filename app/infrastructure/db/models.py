"""
Database Models (SQLAlchemy ORM)
Portfolio adjustment and promotion tables
"""

from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime,
    Boolean, ForeignKey, Text, Enum as SQLEnum, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
import enum

from app.infrastructure.db.database import Base
from app.utils.time import now_naive


# Enums
class DirectionEnum(str, enum.Enum):
    LONG = "LONG"
    SHORT = "SHORT"


# Registry tables

class PromoterModel(Base):
    """Promoter identity"""
    __tablename__ = "promoter"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    nickname = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=now_naive)


class PromotionPactModel(Base):
    """Promotion contest"""
    __tablename__ = "promotion_pact"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_naive)


class PortfolioPactModel(Base):
    """A promoter's portfolio"""
    __tablename__ = "portfolio_pact"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alias = Column(String(100), nullable=False)
    industry_name = Column(String(100), nullable=False)
    promoter_email = Column(String(255), ForeignKey("promoter.email"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_naive)

    # Relationships
    promoter = relationship("PromoterModel", lazy="joined")
    adjustment_records = relationship("AdjustmentRecordModel", back_populates="portfolio_pact")


class AdjustmentRecordModel(Base):
    """Adjustment event of a portfolio pact (the portfolio group)"""
    __tablename__ = "portfolio_adjustment_record"

    id = Column(Integer, primary_key=True, autoincrement=True)
    portfolio_pact_id = Column(Integer, ForeignKey("portfolio_pact.id"), nullable=False)
    adjust_date = Column(Date, nullable=False)
    adjust_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=now_naive)

    # Relationships
    portfolio_pact = relationship("PortfolioPactModel", back_populates="adjustment_records")

    __table_args__ = (
        UniqueConstraint("portfolio_pact_id", "adjust_date", "adjust_version",
                         name="uq_adjustment_record_version"),
    )


# Portfolio detail tables

class ConstituentModel(Base):
    """Holding within a portfolio adjustment"""
    __tablename__ = "portfolio_constituent"

    id = Column(Integer, primary_key=True, autoincrement=True)
    adjustment_record_id = Column(
        Integer, ForeignKey("portfolio_adjustment_record.id"), nullable=False, index=True
    )
    adjust_date = Column(Date, nullable=False)
    symbol = Column(String(20), nullable=False)
    abbreviation = Column(String(50), nullable=True)

    adjust_date_price = Column(Float, nullable=False)
    current_price = Column(Float, nullable=False)
    adjust_date_factor = Column(Float, nullable=False)
    current_factor = Column(Float, nullable=False)

    adjust_date_weight = Column(Float, nullable=False)  # static
    current_weight = Column(Float, nullable=True)       # recalculated

    pbpe = Column(Float, nullable=True)
    market_value = Column(Float, nullable=True)
    earnings_yield = Column(Float, nullable=True)       # recalculated

    updated_at = Column(DateTime, nullable=False, default=now_naive, onupdate=now_naive)


class BenchmarkModel(Base):
    """Reference-index component of a portfolio adjustment"""
    __tablename__ = "portfolio_benchmark"

    id = Column(Integer, primary_key=True, autoincrement=True)
    adjustment_record_id = Column(
        Integer, ForeignKey("portfolio_adjustment_record.id"), nullable=False, index=True
    )
    benchmark_name = Column(String(100), nullable=False)
    symbol = Column(String(20), nullable=False)
    percentage_change = Column(Float, nullable=False)

    static_weight = Column(Float, nullable=False)
    dynamic_weight = Column(Float, nullable=True)  # recalculated

    updated_at = Column(DateTime, nullable=False, default=now_naive, onupdate=now_naive)


class PerformanceModel(Base):
    """Derived aggregate - maintained only by recalculation"""
    __tablename__ = "portfolio_performance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    adjustment_record_id = Column(
        Integer, ForeignKey("portfolio_adjustment_record.id"), nullable=False, unique=True, index=True
    )
    portfolio_earnings_yield = Column(Float, nullable=False, default=0.0)
    benchmark_earnings_yield = Column(Float, nullable=False, default=0.0)
    alpha = Column(Float, nullable=False, default=0.0)

    updated_at = Column(DateTime, nullable=False, default=now_naive, onupdate=now_naive)


# Promotion tables

class PromotionRecordModel(Base):
    """Trade filed under a promotion pact"""
    __tablename__ = "promotion_record"

    id = Column(Integer, primary_key=True, autoincrement=True)
    promotion_pact_name = Column(String(100), ForeignKey("promotion_pact.name"), nullable=False)
    promoter_email = Column(String(255), ForeignKey("promoter.email"), nullable=False)

    symbol = Column(String(20), nullable=False, index=True)
    abbreviation = Column(String(50), nullable=True)
    industry = Column(String(100), nullable=True)
    direction = Column(SQLEnum(DirectionEnum), nullable=False)

    open_time = Column(DateTime, nullable=False)
    open_price = Column(Float, nullable=False)
    close_time = Column(DateTime, nullable=True)
    close_price = Column(Float, nullable=True)
    adjust_factor = Column(Float, nullable=True)

    earnings_yield = Column(Float, nullable=True)  # derived
    performance_score = Column(Float, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=now_naive)
    updated_at = Column(DateTime, nullable=False, default=now_naive, onupdate=now_naive)

    # Indexes
    __table_args__ = (
        Index("ix_promotion_record_group", "promotion_pact_name", "promoter_email"),
    )


class PromotionStatisticModel(Base):
    """Derived aggregate - maintained only by recalculation"""
    __tablename__ = "promotion_statistic"

    id = Column(Integer, primary_key=True, autoincrement=True)
    promotion_pact_name = Column(String(100), ForeignKey("promotion_pact.name"), nullable=False)
    promoter_email = Column(String(255), ForeignKey("promoter.email"), nullable=False)

    total_count = Column(Integer, nullable=False, default=0)
    open_count = Column(Integer, nullable=False, default=0)
    win_count = Column(Integer, nullable=False, default=0)
    loss_count = Column(Integer, nullable=False, default=0)
    win_rate = Column(Float, nullable=False, default=0.0)

    cumulative_earnings_yield = Column(Float, nullable=False, default=0.0)
    average_earnings_yield = Column(Float, nullable=False, default=0.0)
    cumulative_performance_score = Column(Float, nullable=False, default=0.0)
    average_performance_score = Column(Float, nullable=False, default=0.0)

    updated_at = Column(DateTime, nullable=False, default=now_naive, onupdate=now_naive)

    __table_args__ = (
        UniqueConstraint("promotion_pact_name", "promoter_email", name="uq_promotion_statistic_group"),
    )
