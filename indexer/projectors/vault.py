"""Multisig vault projector: signer set, deposits and the transaction lifecycle."""

from __future__ import annotations

from decimal import Decimal
import logging

from backend.db.models import (
    ContractCallTransaction,
    ERC20TransferTransaction,
    NativeTransferTransaction,
    Vault,
    VaultTransaction,
    VaultTransactionConfirmation,
)
from indexer.accounts import fetch_account, touch_accounts
from indexer.aggregates import apply_count_delta
from indexer.context import ProjectionContext
from indexer.errors import MissingReferenceError, NotFoundOnMutationError
from indexer.numeric import DEFAULT_DECIMALS, to_decimals
from indexer.projectors.seeding import token_decimals
from indexer.roles import OrderedAddressSet, VAULT_ROLE_FIELDS, grant, revoke, role_field

logger = logging.getLogger(__name__)


def transaction_id(vault_id: str, tx_index: int) -> str:
    return f"{vault_id}-{tx_index}"


def confirmation_id(tx_id: str, signer: str) -> str:
    return f"{tx_id}-{signer}"


def seed_vault(
    ctx: ProjectionContext,
    address: str,
    *,
    creator: str,
    signers: list[str],
    required: int,
    factory_id: str | None,
) -> Vault:
    existing = ctx.store.get(Vault, address)
    if existing is not None:
        return existing

    signer_set = OrderedAddressSet(signers)
    for signer in signer_set:
        fetch_account(ctx, signer)
    vault = ctx.store.add(
        Vault(
            id=address,
            factory_id=factory_id,
            creator=creator,
            paused=False,
            required_signers=required,
            total_signers=len(signer_set),
            signers=signer_set.as_list(),
            admins=[],
            pending_transactions_count=0,
            executed_transactions_count=0,
            total_deposited_exact=0,
            total_deposited=Decimal(0),
            deposit_count=0,
            created_at=ctx.timestamp,
            last_activity=ctx.timestamp,
        )
    )
    fetch_account(ctx, address).vault_ref = address
    logger.info("Seeded vault %s with %d signers, %d required", address, len(signer_set), required)
    return vault


def _load_vault(ctx: ProjectionContext) -> Vault:
    vault = ctx.store.get(Vault, ctx.event.address)
    if vault is None:
        raise MissingReferenceError(f"Vault {ctx.event.address} is not indexed")
    vault.last_activity = ctx.timestamp
    return vault


def _set_paused(ctx: ProjectionContext, paused: bool) -> None:
    vault = _load_vault(ctx)
    touch_accounts(ctx, ctx.event.tx_from)
    if vault.paused == paused:
        logger.warning("Vault %s already %s; ignoring", vault.id, "paused" if paused else "unpaused")
        return
    vault.paused = paused


def handle_paused(ctx: ProjectionContext) -> None:
    _set_paused(ctx, True)


def handle_unpaused(ctx: ProjectionContext) -> None:
    _set_paused(ctx, False)


def handle_deposit(ctx: ProjectionContext) -> None:
    event = ctx.event
    sender = event.address_param("sender")
    value = event.uint_param("value")
    vault = _load_vault(ctx)
    touch_accounts(ctx, event.tx_from, sender)
    vault.total_deposited_exact = vault.total_deposited_exact + value
    vault.total_deposited = to_decimals(vault.total_deposited_exact, DEFAULT_DECIMALS)
    vault.deposit_count += 1


def handle_requirement_changed(ctx: ProjectionContext) -> None:
    required = ctx.event.uint_param("required")
    vault = _load_vault(ctx)
    touch_accounts(ctx, ctx.event.tx_from)
    if required > vault.total_signers:
        logger.warning("Vault %s requires %d of %d signers", vault.id, required, vault.total_signers)
    vault.required_signers = required


def _handle_role_change(ctx: ProjectionContext, granted: bool) -> None:
    event = ctx.event
    role = event.bytes_param("role")
    member = event.address_param("account")
    vault = _load_vault(ctx)
    touch_accounts(ctx, event.tx_from, member)
    field_name = role_field(role, VAULT_ROLE_FIELDS)
    if field_name is None:
        return
    if granted:
        grant(vault, field_name, member)
    else:
        revoke(vault, field_name, member)
    vault.total_signers = len(vault.signers)


def handle_role_granted(ctx: ProjectionContext) -> None:
    _handle_role_change(ctx, granted=True)


def handle_role_revoked(ctx: ProjectionContext) -> None:
    _handle_role_change(ctx, granted=False)


def _submit(ctx: ProjectionContext, transaction: VaultTransaction, vault: Vault) -> None:
    if ctx.store.exists(VaultTransaction, transaction.id):
        logger.warning("Vault transaction %s already submitted; ignoring", transaction.id)
        return
    ctx.store.add(transaction)
    vault.pending_transactions_count += 1
    logger.debug("Vault %s: %s submitted by %s", vault.id, transaction.id, transaction.submitter)


def _common_fields(ctx: ProjectionContext, vault: Vault, to_param: str) -> dict[str, object]:
    event = ctx.event
    tx_index = event.uint_param("txIndex")
    signer = event.address_param("signer")
    to_address = event.address_param(to_param)
    touch_accounts(ctx, event.tx_from, signer, to_address)
    return {
        "id": transaction_id(vault.id, tx_index),
        "vault_id": vault.id,
        "tx_index": tx_index,
        "submitter": signer,
        "to_address": to_address,
        "comment": event.str_param("comment", default=""),
        "confirmations_count": 0,
        "executed": False,
        "submitted_at": ctx.timestamp,
        "last_activity": ctx.timestamp,
    }


def handle_submit_transaction(ctx: ProjectionContext) -> None:
    vault = _load_vault(ctx)
    fields = _common_fields(ctx, vault, "to")
    value = ctx.event.uint_param("value")
    data = ctx.event.bytes_param("data") if ctx.event.has_param("data") else "0x"
    transaction = NativeTransferTransaction(
        value_exact=value,
        value=to_decimals(value, DEFAULT_DECIMALS),
        data=data,
        **fields,
    )
    _submit(ctx, transaction, vault)


def handle_submit_erc20_transfer(ctx: ProjectionContext) -> None:
    vault = _load_vault(ctx)
    fields = _common_fields(ctx, vault, "to")
    token = ctx.event.address_param("token")
    amount = ctx.event.uint_param("amount")
    decimals = token_decimals(ctx, token)
    transaction = ERC20TransferTransaction(
        token=token,
        token_decimals=decimals,
        amount_exact=amount,
        amount=to_decimals(amount, decimals),
        **fields,
    )
    _submit(ctx, transaction, vault)


def handle_submit_contract_call(ctx: ProjectionContext) -> None:
    vault = _load_vault(ctx)
    fields = _common_fields(ctx, vault, "target")
    transaction = ContractCallTransaction(
        call_value_exact=ctx.event.uint_param("value"),
        selector=ctx.event.bytes_param("selector"),
        abi_encoded_arguments=ctx.event.bytes_param("abiEncodedArguments"),
        **fields,
    )
    _submit(ctx, transaction, vault)


def _load_transaction(ctx: ProjectionContext, vault: Vault) -> tuple[VaultTransaction, str]:
    event = ctx.event
    signer = event.address_param("signer")
    tx_id = transaction_id(vault.id, event.uint_param("txIndex"))
    transaction = ctx.store.get(VaultTransaction, tx_id)
    if transaction is None:
        raise NotFoundOnMutationError(f"{event.name}: vault transaction {tx_id} not found")
    touch_accounts(ctx, event.tx_from, signer)
    transaction.last_activity = ctx.timestamp
    return transaction, signer


def handle_confirm_transaction(ctx: ProjectionContext) -> None:
    vault = _load_vault(ctx)
    transaction, signer = _load_transaction(ctx, vault)
    key = confirmation_id(transaction.id, signer)
    if ctx.store.exists(VaultTransactionConfirmation, key):
        logger.info("Signer %s already confirmed %s; ignoring", signer, transaction.id)
        return
    ctx.store.add(
        VaultTransactionConfirmation(
            id=key,
            transaction_id=transaction.id,
            signer=signer,
            confirmed_at=ctx.timestamp,
        )
    )
    transaction.confirmations_count += 1


def handle_revoke_confirmation(ctx: ProjectionContext) -> None:
    vault = _load_vault(ctx)
    transaction, signer = _load_transaction(ctx, vault)
    confirmation = ctx.store.get(VaultTransactionConfirmation, confirmation_id(transaction.id, signer))
    if confirmation is None:
        logger.error("Signer %s has no confirmation on %s to revoke", signer, transaction.id)
        return
    ctx.store.remove(confirmation)
    transaction.confirmations_count = apply_count_delta(
        transaction.confirmations_count, -1, label=f"confirmations of {transaction.id}"
    )


def handle_execute_transaction(ctx: ProjectionContext) -> None:
    vault = _load_vault(ctx)
    transaction, signer = _load_transaction(ctx, vault)
    if transaction.executed:
        logger.warning("Vault transaction %s already executed; ignoring", transaction.id)
        return
    transaction.executed = True
    transaction.executed_at = ctx.timestamp
    transaction.executor = signer
    vault.pending_transactions_count = apply_count_delta(
        vault.pending_transactions_count, -1, label=f"pending transactions of {vault.id}"
    )
    vault.executed_transactions_count += 1
    logger.info(
        "Vault %s executed %s with %d confirmations",
        vault.id,
        transaction.id,
        transaction.confirmations_count,
    )
