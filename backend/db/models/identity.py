"""On-chain identity contracts with their keys and claims."""

from __future__ import annotations

import logging

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.types import ExactAmount

logger = logging.getLogger(__name__)


class Identity(Base):
    """Identity contract bound to a wallet or token."""

    __tablename__ = "identity"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_identity"),
        CheckConstraint("key_count >= 0", name="ck_identity_key_count_nonneg"),
        CheckConstraint("active_claims_count >= 0", name="ck_identity_active_claims_nonneg"),
        Index("idx_identity_wallet", "wallet"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    wallet: Mapped[str | None] = mapped_column(Text)
    factory_id: Mapped[str | None] = mapped_column(Text)
    key_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_claims_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False)


class IdentityKey(Base):
    """Key registered on an identity; removed when the key is removed."""

    __tablename__ = "identity_key"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_identity_key"),
        Index("idx_identity_key_identity", "identity_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    identity_id: Mapped[str] = mapped_column(Text, nullable=False)
    key: Mapped[str] = mapped_column(Text, nullable=False)
    purpose: Mapped[str] = mapped_column(Text, nullable=False)
    key_type: Mapped[str] = mapped_column(Text, nullable=False)
    added_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class IdentityClaim(Base):
    """Claim attached to an identity. Removed and revoked claims stay as revoked rows."""

    __tablename__ = "identity_claim"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_identity_claim"),
        Index("idx_identity_claim_identity", "identity_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    identity_id: Mapped[str] = mapped_column(Text, nullable=False)
    claim_id: Mapped[str] = mapped_column(Text, nullable=False)
    topic: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    issuer: Mapped[str] = mapped_column(Text, nullable=False)
    signature: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    uri: Mapped[str] = mapped_column(Text, nullable=False, default="")
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    issued_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False)
