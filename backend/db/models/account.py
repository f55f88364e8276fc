"""Identity registry model definitions."""

from __future__ import annotations

from decimal import Decimal
import logging

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Integer, PrimaryKeyConstraint, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.types import ExactAmount, ScaledDecimal

logger = logging.getLogger(__name__)


class Account(Base):
    """Canonical entity per on-chain address, wallet or contract."""

    __tablename__ = "account"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_account"),
        CheckConstraint("balances_count >= 0", name="ck_account_balances_count_nonneg"),
        CheckConstraint(
            "paused_balances_count >= 0",
            name="ck_account_paused_balances_count_nonneg",
        ),
        CheckConstraint(
            "activity_event_count >= 0",
            name="ck_account_activity_event_count_nonneg",
        ),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    is_contract: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("FALSE"))
    asset_ref: Mapped[str | None] = mapped_column(Text)
    factory_ref: Mapped[str | None] = mapped_column(Text)
    vault_ref: Mapped[str | None] = mapped_column(Text)
    settlement_ref: Mapped[str | None] = mapped_column(Text)
    airdrop_ref: Mapped[str | None] = mapped_column(Text)
    identity_ref: Mapped[str | None] = mapped_column(Text)
    total_balance_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_balance: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    paused_balance_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    paused_balance: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    balances_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paused_balances_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    activity_event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_seen_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False)
