"""Atomic multi-leg (XvP) settlement models."""

from __future__ import annotations

import logging

from sqlalchemy import BigInteger, Boolean, Index, Integer, PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.types import AddressList, ExactAmount

logger = logging.getLogger(__name__)


class XvPSettlement(Base):
    """Atomic exchange that moves every flow only once all senders approve."""

    __tablename__ = "xvp_settlement"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_xvp_settlement"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    factory_id: Mapped[str | None] = mapped_column(Text)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cutoff_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    auto_execute: Mapped[bool] = mapped_column(Boolean, nullable=False)
    hashlock: Mapped[str | None] = mapped_column(Text)
    secret: Mapped[str | None] = mapped_column(Text)
    secret_revealed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cancel_votes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False)


class XvPFlow(Base):
    """One asset leg of a settlement."""

    __tablename__ = "xvp_flow"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_xvp_flow"),
        Index("idx_xvp_flow_settlement", "settlement_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    settlement_id: Mapped[str] = mapped_column(Text, nullable=False)
    flow_index: Mapped[int] = mapped_column(Integer, nullable=False)
    asset: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[str] = mapped_column(Text, nullable=False)
    recipient: Mapped[str] = mapped_column(Text, nullable=False)
    amount_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    external_chain_id: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)


class XvPApproval(Base):
    """Approval state of one sender for one settlement."""

    __tablename__ = "xvp_approval"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_xvp_approval"),
        Index("idx_xvp_approval_settlement", "settlement_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    settlement_id: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_at: Mapped[int | None] = mapped_column(BigInteger)


class XvPCancelVote(Base):
    """Cancellation vote of one participant."""

    __tablename__ = "xvp_cancel_vote"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_xvp_cancel_vote"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    settlement_id: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    voted_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class Action(Base):
    """Deferred-execution marker consumed by an external executor."""

    __tablename__ = "action"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_action"),
        Index("idx_action_target", "target"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    target: Mapped[str] = mapped_column(Text, nullable=False)
    executors: Mapped[list[str]] = mapped_column(AddressList, nullable=False, default=list)
    activate_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int | None] = mapped_column(BigInteger)
    executed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    executed_at: Mapped[int | None] = mapped_column(BigInteger)
    executed_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
