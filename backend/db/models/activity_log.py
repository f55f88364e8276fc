"""Generic append-only audit log of every projected event."""

from __future__ import annotations

import logging

from sqlalchemy import BigInteger, Index, Integer, PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.types import AddressList

logger = logging.getLogger(__name__)


class ActivityLogEntry(Base):
    """One record per projected event; its id doubles as the replay marker."""

    __tablename__ = "activity_log_entry"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_activity_log_entry"),
        Index("idx_activity_log_entry_emitter_block", "emitter", "block_number"),
        Index("idx_activity_log_entry_block_log", "block_number", "log_index"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    event_name: Mapped[str] = mapped_column(Text, nullable=False)
    emitter: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[str] = mapped_column(Text, nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tx_hash: Mapped[str] = mapped_column(Text, nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    involved: Mapped[list[str]] = mapped_column(AddressList, nullable=False, default=list)


class ActivityLogParameter(Base):
    """Flattened event parameter rendered as text."""

    __tablename__ = "activity_log_parameter"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_activity_log_parameter"),
        Index("idx_activity_log_parameter_entry", "entry_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    entry_id: Mapped[str] = mapped_column(Text, nullable=False)
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    value_kind: Mapped[str] = mapped_column(Text, nullable=False)
