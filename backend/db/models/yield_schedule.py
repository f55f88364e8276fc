"""Fixed-yield schedule and period models."""

from __future__ import annotations

from decimal import Decimal
import logging

from sqlalchemy import BigInteger, CheckConstraint, Index, Integer, PrimaryKeyConstraint, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.types import ExactAmount, ScaledDecimal

logger = logging.getLogger(__name__)


class FixedYield(Base):
    """Yield schedule attached to one bond."""

    __tablename__ = "fixed_yield"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_fixed_yield"),
        Index("idx_fixed_yield_token", "token"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    token: Mapped[str] = mapped_column(Text, nullable=False)
    underlying_asset: Mapped[str] = mapped_column(Text, nullable=False)
    underlying_decimals: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    rate: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    interval: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_claimed_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_claimed: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    unclaimed_yield_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    unclaimed_yield: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    underlying_balance_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    underlying_balance: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class YieldPeriod(Base):
    """One accrual period of a fixed-yield schedule, numbered from 1."""

    __tablename__ = "yield_period"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_yield_period"),
        CheckConstraint("period_number >= 1", name="ck_yield_period_number_positive"),
        Index("idx_yield_period_schedule", "schedule_id", "period_number"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    schedule_id: Mapped[str] = mapped_column(Text, nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_claimed_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_claimed: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    total_yield_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_yield: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
