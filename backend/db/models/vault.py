"""Multisig vault and transaction lifecycle models."""

from __future__ import annotations

from decimal import Decimal
import logging

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, PrimaryKeyConstraint, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.enums import VaultTransactionType, vault_transaction_type_enum
from backend.db.types import AddressList, ExactAmount, ScaledDecimal

logger = logging.getLogger(__name__)


class Vault(Base):
    """Multisig vault holding native currency and tokens."""

    __tablename__ = "vault"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_vault"),
        CheckConstraint("pending_transactions_count >= 0", name="ck_vault_pending_nonneg"),
        CheckConstraint("executed_transactions_count >= 0", name="ck_vault_executed_nonneg"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    factory_id: Mapped[str | None] = mapped_column(Text)
    creator: Mapped[str | None] = mapped_column(Text)
    paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    required_signers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_signers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    signers: Mapped[list[str]] = mapped_column(AddressList, nullable=False, default=list)
    admins: Mapped[list[str]] = mapped_column(AddressList, nullable=False, default=list)
    pending_transactions_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    executed_transactions_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_deposited_exact: Mapped[int] = mapped_column(ExactAmount, nullable=False, default=0)
    total_deposited: Mapped[Decimal] = mapped_column(ScaledDecimal, nullable=False, default=Decimal(0))
    deposit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False)


class VaultTransaction(Base):
    """Submitted vault transaction, polymorphic on transaction type."""

    __tablename__ = "vault_transaction"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_vault_transaction"),
        CheckConstraint("confirmations_count >= 0", name="ck_vault_transaction_confirmations_nonneg"),
        Index("idx_vault_transaction_vault", "vault_id", "tx_index"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    transaction_type: Mapped[VaultTransactionType] = mapped_column(vault_transaction_type_enum, nullable=False)
    vault_id: Mapped[str] = mapped_column(Text, nullable=False)
    tx_index: Mapped[int] = mapped_column(ExactAmount, nullable=False)
    submitter: Mapped[str] = mapped_column(Text, nullable=False)
    to_address: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    confirmations_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    executed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    executed_at: Mapped[int | None] = mapped_column(BigInteger)
    executor: Mapped[str | None] = mapped_column(Text)
    submitted_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __mapper_args__ = {"polymorphic_on": "transaction_type"}


class NativeTransferTransaction(VaultTransaction):
    """Native currency transfer out of the vault."""

    value_exact: Mapped[int | None] = mapped_column(ExactAmount)
    value: Mapped[Decimal | None] = mapped_column(ScaledDecimal)
    data: Mapped[str | None] = mapped_column(Text)

    __mapper_args__ = {"polymorphic_identity": VaultTransactionType.NATIVE_TRANSFER}


class ERC20TransferTransaction(VaultTransaction):
    """Token transfer out of the vault."""

    token: Mapped[str | None] = mapped_column(Text)
    token_decimals: Mapped[int | None] = mapped_column(SmallInteger)
    amount_exact: Mapped[int | None] = mapped_column(ExactAmount)
    amount: Mapped[Decimal | None] = mapped_column(ScaledDecimal)

    __mapper_args__ = {"polymorphic_identity": VaultTransactionType.ERC20_TRANSFER}


class ContractCallTransaction(VaultTransaction):
    """Arbitrary contract call from the vault."""

    call_value_exact: Mapped[int | None] = mapped_column(ExactAmount)
    selector: Mapped[str | None] = mapped_column(Text)
    abi_encoded_arguments: Mapped[str | None] = mapped_column(Text)

    __mapper_args__ = {"polymorphic_identity": VaultTransactionType.CONTRACT_CALL}


class VaultTransactionConfirmation(Base):
    """Confirmation of one vault transaction by one signer."""

    __tablename__ = "vault_transaction_confirmation"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_vault_transaction_confirmation"),
        Index("idx_vault_transaction_confirmation_tx", "transaction_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    transaction_id: Mapped[str] = mapped_column(Text, nullable=False)
    signer: Mapped[str] = mapped_column(Text, nullable=False)
    confirmed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
