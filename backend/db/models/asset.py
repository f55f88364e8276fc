"""Tokenized asset, balance ledger and per-asset-type aggregate models."""

from __future__ import annotations

from decimal import Decimal
import logging

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Index,
    Integer,
    PrimaryKeyConstraint,
    SmallInteger,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.enums import AssetType, asset_type_enum
from backend.db.types import AddressList, ExactAmount, ScaledDecimal

logger = logging.getLogger(__name__)


class Asset(Base):
    """Tokenized asset; one row per token contract, polymorphic on asset type."""

    __tablename__ = "asset"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_asset"),
        CheckConstraint("decimals >= 0 AND decimals <= 255", name="ck_asset_decimals_range"),
        CheckConstraint("total_holders >= 0", name="ck_asset_total_holders_nonneg"),
        Index("idx_asset_type", "asset_type"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    asset_type: Mapped[AssetType] = mapped_column(asset_type_enum, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    symbol: Mapped[str] = mapped_column(Text, nullable=False, default="")
    decimals: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    total_supply_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_supply: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    total_burned_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_burned: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    total_holders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    concentration: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    admins: Mapped[list[str]] = mapped_column(AddressList, nullable=False, default=list)
    supply_managers: Mapped[list[str]] = mapped_column(AddressList, nullable=False, default=list)
    user_managers: Mapped[list[str]] = mapped_column(AddressList, nullable=False, default=list)
    auditors: Mapped[list[str]] = mapped_column(AddressList, nullable=False, default=list)
    creator: Mapped[str | None] = mapped_column(Text)
    deployed_on: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    frozen_event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clawback_event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # equity and fund
    asset_class: Mapped[str | None] = mapped_column(Text)
    asset_category: Mapped[str | None] = mapped_column(Text)
    # deposit, stablecoin and tokenized deposit
    collateral_exact: Mapped[int | None] = mapped_column(ExactAmount)
    collateral: Mapped[Decimal | None] = mapped_column(ScaledDecimal)
    free_collateral_exact: Mapped[int | None] = mapped_column(ExactAmount)
    free_collateral: Mapped[Decimal | None] = mapped_column(ScaledDecimal)
    collateral_ratio: Mapped[Decimal | None] = mapped_column(ScaledDecimal)
    last_collateral_update: Mapped[int | None] = mapped_column(BigInteger)

    __mapper_args__ = {"polymorphic_on": "asset_type"}


class Bond(Asset):
    """Fixed-income asset redeemable against an underlying asset at maturity."""

    maturity_date: Mapped[int | None] = mapped_column(BigInteger)
    is_matured: Mapped[bool | None] = mapped_column(Boolean)
    face_value: Mapped[int | None] = mapped_column(ExactAmount)
    underlying_asset: Mapped[str | None] = mapped_column(Text)
    underlying_decimals: Mapped[int | None] = mapped_column(SmallInteger)
    underlying_balance_exact: Mapped[int | None] = mapped_column(ExactAmount)
    underlying_balance: Mapped[Decimal | None] = mapped_column(ScaledDecimal)
    total_underlying_needed_exact: Mapped[int | None] = mapped_column(ExactAmount)
    total_underlying_needed: Mapped[Decimal | None] = mapped_column(ScaledDecimal)
    has_sufficient_underlying: Mapped[bool | None] = mapped_column(Boolean)
    redeemed_amount_exact: Mapped[int | None] = mapped_column(ExactAmount)
    redeemed_amount: Mapped[Decimal | None] = mapped_column(ScaledDecimal)
    yield_schedule: Mapped[str | None] = mapped_column(Text)

    __mapper_args__ = {"polymorphic_identity": AssetType.BOND}


class Equity(Asset):
    """Equity share token."""

    __mapper_args__ = {"polymorphic_identity": AssetType.EQUITY}


class Fund(Asset):
    """Fund share token collecting management and performance fees."""

    management_fee_bps: Mapped[int | None] = mapped_column(Integer)
    total_management_fees_exact: Mapped[int | None] = mapped_column(ExactAmount)
    total_performance_fees_exact: Mapped[int | None] = mapped_column(ExactAmount)
    last_fee_collection: Mapped[int | None] = mapped_column(BigInteger)

    __mapper_args__ = {"polymorphic_identity": AssetType.FUND}


class Deposit(Asset):
    """Collateral-backed deposit token with allowlist transfer control."""

    __mapper_args__ = {"polymorphic_identity": AssetType.DEPOSIT}


class StableCoin(Asset):
    """Collateral-backed stablecoin."""

    __mapper_args__ = {"polymorphic_identity": AssetType.STABLECOIN}


class CryptoCurrency(Asset):
    """Plain fungible token without custodian features."""

    __mapper_args__ = {"polymorphic_identity": AssetType.CRYPTOCURRENCY}


class TokenizedDeposit(Asset):
    """Collateral-backed tokenized bank deposit with allowlist transfer control."""

    __mapper_args__ = {"polymorphic_identity": AssetType.TOKENIZED_DEPOSIT}


class AssetBalance(Base):
    """Live balance of one holder in one asset; deleted when it reaches zero."""

    __tablename__ = "asset_balance"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_asset_balance"),
        UniqueConstraint("asset_id", "account_id", name="uq_asset_balance_asset_account"),
        Index("idx_asset_balance_account", "account_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    asset_id: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    asset_type: Mapped[AssetType] = mapped_column(asset_type_enum, nullable=False)
    value_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    value: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    approved_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    approved: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    frozen_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    frozen: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False)


class AssetAccessEntry(Base):
    """Blocklist or allowlist state of one account for one asset."""

    __tablename__ = "asset_access_entry"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_asset_access_entry"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    asset_id: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    blocked: Mapped[bool] = mapped_column(Boolean, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class AssetCount(Base):
    """Number of seeded and paused assets per asset type."""

    __tablename__ = "asset_count"
    __table_args__ = (
        PrimaryKeyConstraint("asset_type", name="pk_asset_count"),
        CheckConstraint("count >= 0", name="ck_asset_count_count_nonneg"),
        CheckConstraint("count_paused >= 0", name="ck_asset_count_paused_nonneg"),
    )

    asset_type: Mapped[AssetType] = mapped_column(asset_type_enum, primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    count_paused: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AssetActivity(Base):
    """Running event counters per asset type."""

    __tablename__ = "asset_activity"
    __table_args__ = (PrimaryKeyConstraint("asset_type", name="pk_asset_activity"),)

    asset_type: Mapped[AssetType] = mapped_column(asset_type_enum, primary_key=True)
    mint_event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    burn_event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    transfer_event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    frozen_event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clawback_event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_supply_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)


class FundWithdrawal(Base):
    """Token withdrawn from a fund contract."""

    __tablename__ = "fund_withdrawal"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_fund_withdrawal"),
        Index("idx_fund_withdrawal_fund", "fund_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    fund_id: Mapped[str] = mapped_column(Text, nullable=False)
    token: Mapped[str] = mapped_column(Text, nullable=False)
    recipient: Mapped[str] = mapped_column(Text, nullable=False)
    amount_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
