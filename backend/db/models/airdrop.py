"""Airdrop distribution, recipient, claim and vesting models."""

from __future__ import annotations

from decimal import Decimal
import logging

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, PrimaryKeyConstraint, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.enums import AirdropType, airdrop_type_enum
from backend.db.types import ExactAmount, ScaledDecimal

logger = logging.getLogger(__name__)


class Airdrop(Base):
    """Token distribution contract, polymorphic on airdrop type."""

    __tablename__ = "airdrop"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_airdrop"),
        CheckConstraint("total_recipients >= 0", name="ck_airdrop_total_recipients_nonneg"),
        Index("idx_airdrop_token", "token"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_type: Mapped[AirdropType] = mapped_column(airdrop_type_enum, nullable=False)
    factory_id: Mapped[str | None] = mapped_column(Text)
    token: Mapped[str] = mapped_column(Text, nullable=False)
    token_decimals: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    owner: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    merkle_root: Mapped[str] = mapped_column(Text, nullable=False, default="")
    distribution_ipfs_hash: Mapped[str] = mapped_column(Text, nullable=False, default="")
    manifest_entry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_claims: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_recipients: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_claimed_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_claimed: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    is_withdrawn: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    withdrawn_amount_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    deployed_on: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deployment_tx: Mapped[str] = mapped_column(Text, nullable=False)

    __mapper_args__ = {"polymorphic_on": "airdrop_type"}


class StandardAirdrop(Airdrop):
    """Merkle-proof claimable airdrop with a claim window."""

    start_time: Mapped[int | None] = mapped_column(BigInteger)
    end_time: Mapped[int | None] = mapped_column(BigInteger)

    __mapper_args__ = {"polymorphic_identity": AirdropType.STANDARD}


class VestingAirdrop(Airdrop):
    """Merkle-proof airdrop releasing allocations through a vesting strategy."""

    claim_period_end: Mapped[int | None] = mapped_column(BigInteger)
    strategy_id: Mapped[str | None] = mapped_column(Text)

    __mapper_args__ = {"polymorphic_identity": AirdropType.VESTING}


class PushAirdrop(Airdrop):
    """Owner-pushed airdrop with an optional distribution cap."""

    distribution_cap_exact: Mapped[int | None] = mapped_column(ExactAmount)
    total_distributed_exact: Mapped[int | None] = mapped_column(ExactAmount)
    total_distributed: Mapped[Decimal | None] = mapped_column(ScaledDecimal)

    __mapper_args__ = {"polymorphic_identity": AirdropType.PUSH}


class AirdropRecipient(Base):
    """Allocation and cumulative claims of one recipient in one airdrop."""

    __tablename__ = "airdrop_recipient"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_airdrop_recipient"),
        Index("idx_airdrop_recipient_airdrop", "airdrop_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_id: Mapped[str] = mapped_column(Text, nullable=False)
    recipient: Mapped[str] = mapped_column(Text, nullable=False)
    allocated_amount_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    allocated_amount: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    total_claimed_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_claimed: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    claim_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_claimed_timestamp: Mapped[int | None] = mapped_column(BigInteger)
    last_claimed_timestamp: Mapped[int | None] = mapped_column(BigInteger)


class AirdropClaim(Base):
    """Single claim or distribution transfer out of an airdrop."""

    __tablename__ = "airdrop_claim"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_airdrop_claim"),
        Index("idx_airdrop_claim_airdrop", "airdrop_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_id: Mapped[str] = mapped_column(Text, nullable=False)
    recipient: Mapped[str] = mapped_column(Text, nullable=False)
    amount_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    amount: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    index_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tx_hash: Mapped[str] = mapped_column(Text, nullable=False)


class AirdropClaimIndex(Base):
    """Claimed amount per merkle leaf index."""

    __tablename__ = "airdrop_claim_index"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_airdrop_claim_index"),
        Index("idx_airdrop_claim_index_airdrop", "airdrop_id", "claim_index"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_id: Mapped[str] = mapped_column(Text, nullable=False)
    recipient: Mapped[str] = mapped_column(Text, nullable=False)
    claim_index: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    amount_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    amount: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    claim_id: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)


class PushBatchDistribution(Base):
    """Batch push distribution summary."""

    __tablename__ = "push_batch_distribution"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_push_batch_distribution"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_id: Mapped[str] = mapped_column(Text, nullable=False)
    recipient_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)


class MerkleRootUpdate(Base):
    """Merkle root replacement on a push airdrop."""

    __tablename__ = "merkle_root_update"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_merkle_root_update"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_id: Mapped[str] = mapped_column(Text, nullable=False)
    old_root: Mapped[str] = mapped_column(Text, nullable=False)
    new_root: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)


class LinearVestingStrategy(Base):
    """Linear vesting schedule with cliff used by a vesting airdrop."""

    __tablename__ = "linear_vesting_strategy"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_linear_vesting_strategy"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    airdrop_id: Mapped[str] = mapped_column(Text, nullable=False)
    strategy_type: Mapped[str] = mapped_column(Text, nullable=False, default="Linear")
    vesting_duration: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cliff_duration: Mapped[int] = mapped_column(BigInteger, nullable=False)


class UserVestingData(Base):
    """Vesting position of one account under one strategy."""

    __tablename__ = "user_vesting_data"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_user_vesting_data"),
        Index("idx_user_vesting_data_strategy", "strategy_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    strategy_id: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    total_amount_aggregated_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    claimed_amount_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    vesting_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    initialized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_updated: Mapped[int] = mapped_column(BigInteger, nullable=False)
