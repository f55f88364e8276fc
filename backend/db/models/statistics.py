"""Append-only statistics snapshot models read as time series."""

from __future__ import annotations

from decimal import Decimal
import logging

from sqlalchemy import BigInteger, Index, Integer, PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.enums import AirdropType, AssetType, airdrop_type_enum, asset_type_enum
from backend.db.types import ExactAmount, ScaledDecimal

logger = logging.getLogger(__name__)


class AssetStatsData(Base):
    """Point-in-time asset snapshot written after each state-changing asset event."""

    __tablename__ = "asset_stats_data"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_asset_stats_data"),
        Index("idx_asset_stats_data_asset_ts", "asset_id", "timestamp"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    asset_id: Mapped[str] = mapped_column(Text, nullable=False)
    asset_type: Mapped[AssetType] = mapped_column(asset_type_enum, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    supply_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    supply: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    minted_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    minted: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    burned_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    burned: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    volume_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    volume: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    frozen_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    frozen: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    transfers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    holders: Mapped[int] = mapped_column(Integer, nullable=False)
    concentration: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    collateral_exact: Mapped[int | None] = mapped_column(ExactAmount)
    free_collateral_exact: Mapped[int | None] = mapped_column(ExactAmount)
    collateral_ratio: Mapped[Decimal | None] = mapped_column(ScaledDecimal)


class PortfolioStatsData(Base):
    """Point-in-time balance of one holder in one asset."""

    __tablename__ = "portfolio_stats_data"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_portfolio_stats_data"),
        Index("idx_portfolio_stats_data_account_ts", "account_id", "timestamp"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    asset_id: Mapped[str] = mapped_column(Text, nullable=False)
    asset_type: Mapped[AssetType] = mapped_column(asset_type_enum, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    balance: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)


class AssetActivityData(Base):
    """Point-in-time copy of the per-asset-type activity counters."""

    __tablename__ = "asset_activity_data"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_asset_activity_data"),
        Index("idx_asset_activity_data_type_ts", "asset_type", "timestamp"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    asset_type: Mapped[AssetType] = mapped_column(asset_type_enum, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mint_event_count: Mapped[int] = mapped_column(Integer, nullable=False)
    burn_event_count: Mapped[int] = mapped_column(Integer, nullable=False)
    transfer_event_count: Mapped[int] = mapped_column(Integer, nullable=False)
    frozen_event_count: Mapped[int] = mapped_column(Integer, nullable=False)
    clawback_event_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_supply_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)


class AirdropStatsData(Base):
    """Point-in-time claim and distribution activity of one airdrop."""

    __tablename__ = "airdrop_stats_data"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_airdrop_stats_data"),
        Index("idx_airdrop_stats_data_airdrop_ts", "airdrop_id", "timestamp"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_id: Mapped[str] = mapped_column(Text, nullable=False)
    airdrop_type: Mapped[AirdropType] = mapped_column(airdrop_type_enum, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    claims: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    claim_volume_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    claim_volume: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    distributions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    distribution_volume_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    distribution_volume: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    unique_recipients: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class VestingStatsData(Base):
    """Point-in-time vesting progress of one vesting airdrop."""

    __tablename__ = "vesting_stats_data"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_vesting_stats_data"),
        Index("idx_vesting_stats_data_airdrop_ts", "airdrop_id", "timestamp"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_id: Mapped[str] = mapped_column(Text, nullable=False)
    strategy_id: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_allocated_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    total_vested_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    total_claimed_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    total_allocated: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    total_vested: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    total_claimed: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    initialized_users: Mapped[int] = mapped_column(Integer, nullable=False)
