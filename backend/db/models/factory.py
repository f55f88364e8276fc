"""Factory registry and dynamic data source models."""

from __future__ import annotations

import logging

from sqlalchemy import BigInteger, CheckConstraint, Index, Integer, PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.enums import ContractKind, contract_kind_enum

logger = logging.getLogger(__name__)


class Factory(Base):
    """Factory contract that deploys watched instances."""

    __tablename__ = "factory"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_factory"),
        CheckConstraint("created_count >= 0", name="ck_factory_created_count_nonneg"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    factory_type: Mapped[ContractKind] = mapped_column(contract_kind_enum, nullable=False)
    created_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    registered_at_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_created_at: Mapped[int | None] = mapped_column(BigInteger)


class DataSource(Base):
    """Address watched for events with a given contract interface."""

    __tablename__ = "data_source"
    __table_args__ = (
        PrimaryKeyConstraint("address", name="pk_data_source"),
        Index("idx_data_source_factory", "factory_id"),
    )

    address: Mapped[str] = mapped_column(Text, primary_key=True)
    contract_kind: Mapped[ContractKind] = mapped_column(contract_kind_enum, nullable=False)
    factory_id: Mapped[str | None] = mapped_column(Text)
    created_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_by_event: Mapped[str | None] = mapped_column(Text)
