"""Generic asset projector shared by every token family.

Each handler follows the same shape: load the asset, mutate it and the
balance ledger, recompute derived fields, then append a statistics
snapshot. Family-specific behavior lives in the bond and fund hooks.
"""

from __future__ import annotations

import logging

from backend.db.enums import TransferKind
from backend.db.models import Asset, AssetBalance, Bond
from indexer.accounts import fetch_account, touch_accounts
from indexer.addresses import is_zero_address
from indexer.aggregates import (
    ActivityDelta,
    StatsDelta,
    SupplyState,
    apply_count_delta,
    apply_transfer_to_supply,
    transfer_activity_delta,
    transfer_stats_delta,
)
from indexer.asset_kinds import AssetKind
from indexer.context import ProjectionContext
from indexer.errors import MalformedEventError
from indexer.ledger import credit, debit, live_balances, load_balance, set_access_state
from indexer.metrics import collateral_state, concentration
from indexer.numeric import decimal_add, to_decimals
from indexer.projectors.bond import refresh_underlying
from indexer.projectors.seeding import load_or_seed_asset
from indexer.roles import ASSET_ROLE_FIELDS, grant, revoke, role_field
from indexer.statistics import adjust_asset_count, record_asset_stats, record_portfolio_stats, update_activity

logger = logging.getLogger(__name__)


def classify_transfer(sender: str, recipient: str) -> TransferKind:
    """Mint from the zero address, burn to it, plain transfer otherwise."""
    if is_zero_address(sender) and is_zero_address(recipient):
        raise MalformedEventError("Transfer between two zero addresses")
    if is_zero_address(sender):
        return TransferKind.MINT
    if is_zero_address(recipient):
        return TransferKind.BURN
    return TransferKind.TRANSFER


def current_asset(ctx: ProjectionContext, kind: AssetKind) -> Asset:
    return load_or_seed_asset(ctx, ctx.event.address, kind)


def refresh_derived(ctx: ProjectionContext, kind: AssetKind, asset: Asset) -> None:
    """Recompute collateral, underlying coverage and concentration after a change."""
    if kind.has_collateral:
        state = collateral_state(asset.collateral_exact or 0, asset.total_supply_exact)
        asset.collateral_exact = state.collateral_exact
        asset.collateral = to_decimals(state.collateral_exact, asset.decimals)
        asset.free_collateral_exact = state.free_collateral_exact
        asset.free_collateral = to_decimals(state.free_collateral_exact, asset.decimals)
        asset.collateral_ratio = state.collateral_ratio
    if isinstance(asset, Bond):
        refresh_underlying(asset)
    holders = [balance.value_exact for balance in live_balances(ctx, asset.id)]
    asset.concentration = concentration(holders, asset.total_supply_exact)
    asset.last_activity = ctx.timestamp


def _apply_supply(asset: Asset, kind: TransferKind, value: int) -> None:
    supply = apply_transfer_to_supply(
        SupplyState(total_supply_exact=asset.total_supply_exact, total_burned_exact=asset.total_burned_exact),
        kind,
        value,
    )
    asset.total_supply_exact = supply.total_supply_exact
    asset.total_supply = to_decimals(supply.total_supply_exact, asset.decimals)
    asset.total_burned_exact = supply.total_burned_exact
    asset.total_burned = to_decimals(supply.total_burned_exact, asset.decimals)


def handle_transfer(ctx: ProjectionContext, kind: AssetKind) -> None:
    event = ctx.event
    sender = event.address_param("from")
    recipient = event.address_param("to")
    value = event.uint_param("value")
    transfer_kind = classify_transfer(sender, recipient)

    asset = current_asset(ctx, kind)
    holders = [address for address in (sender, recipient) if not is_zero_address(address)]
    touch_accounts(ctx, event.tx_from, *holders)

    touched: dict[str, AssetBalance | None] = {}
    if transfer_kind is not TransferKind.MINT:
        touched[sender] = debit(ctx, asset, sender, value)
    if transfer_kind is not TransferKind.BURN:
        touched[recipient] = credit(ctx, asset, recipient, value, kind.initial_blocked)
    _apply_supply(asset, transfer_kind, value)

    refresh_derived(ctx, kind, asset)
    record_asset_stats(ctx, asset, transfer_stats_delta(transfer_kind, value))
    for holder, balance in touched.items():
        record_portfolio_stats(ctx, asset, holder, balance)
    update_activity(ctx, asset.asset_type, transfer_activity_delta(transfer_kind, value))
    logger.debug(
        "%s %s of %s on %s (%s -> %s)",
        kind.asset_type.value,
        transfer_kind.value,
        value,
        asset.id,
        sender,
        recipient,
    )


def handle_clawback(ctx: ProjectionContext, kind: AssetKind) -> None:
    event = ctx.event
    source = event.address_param("from")
    destination = event.address_param("to")
    amount = event.uint_param("amount")

    asset = current_asset(ctx, kind)
    touch_accounts(ctx, event.tx_from, source, destination)
    source_balance = debit(ctx, asset, source, amount)
    destination_balance = credit(ctx, asset, destination, amount, kind.initial_blocked)
    asset.clawback_event_count += 1

    refresh_derived(ctx, kind, asset)
    record_asset_stats(ctx, asset, StatsDelta(volume_exact=amount, transfers=1))
    record_portfolio_stats(ctx, asset, source, source_balance)
    record_portfolio_stats(ctx, asset, destination, destination_balance)
    update_activity(ctx, asset.asset_type, ActivityDelta(clawbacks=1))
    logger.info("Clawback of %s on %s from %s to %s", amount, asset.id, source, destination)


def handle_approval(ctx: ProjectionContext, kind: AssetKind) -> None:
    event = ctx.event
    owner = event.address_param("owner")
    spender = event.address_param("spender")
    value = event.uint_param("value")

    asset = current_asset(ctx, kind)
    touch_accounts(ctx, owner, spender)
    balance = load_balance(ctx, asset.id, owner)
    if balance is None:
        logger.debug("Approval by %s on %s without a balance; nothing to update", owner, asset.id)
        return
    balance.approved_exact = value
    balance.approved = to_decimals(value, asset.decimals)
    balance.last_activity = ctx.timestamp


def _handle_role_change(ctx: ProjectionContext, kind: AssetKind, granted: bool) -> None:
    event = ctx.event
    role = event.bytes_param("role")
    member = event.address_param("account")

    asset = current_asset(ctx, kind)
    touch_accounts(ctx, event.tx_from, member)
    field_name = role_field(role, ASSET_ROLE_FIELDS)
    if field_name is None:
        return
    changed = grant(asset, field_name, member) if granted else revoke(asset, field_name, member)
    if not changed:
        logger.debug(
            "Role %s %s for %s on %s was already in effect",
            field_name,
            "grant" if granted else "revoke",
            member,
            asset.id,
        )
    refresh_derived(ctx, kind, asset)
    record_asset_stats(ctx, asset)


def handle_role_granted(ctx: ProjectionContext, kind: AssetKind) -> None:
    _handle_role_change(ctx, kind, granted=True)


def handle_role_revoked(ctx: ProjectionContext, kind: AssetKind) -> None:
    _handle_role_change(ctx, kind, granted=False)


def _set_paused(ctx: ProjectionContext, kind: AssetKind, paused: bool) -> None:
    asset = current_asset(ctx, kind)
    touch_accounts(ctx, ctx.event.tx_from)
    if asset.paused == paused:
        logger.warning("Asset %s already %s; ignoring", asset.id, "paused" if paused else "unpaused")
        return

    asset.paused = paused
    sign = 1 if paused else -1
    adjust_asset_count(ctx, kind.asset_type, paused=sign)
    for balance in live_balances(ctx, asset.id):
        account = fetch_account(ctx, balance.account_id)
        account.paused_balances_count = apply_count_delta(
            account.paused_balances_count, sign, label="paused balances count"
        )
        account.paused_balance_exact = account.paused_balance_exact + sign * balance.value_exact
        account.paused_balance = decimal_add(
            account.paused_balance,
            to_decimals(sign * balance.value_exact, asset.decimals),
        )

    refresh_derived(ctx, kind, asset)
    record_asset_stats(ctx, asset)
    logger.info("Asset %s %s", asset.id, "paused" if paused else "unpaused")


def handle_paused(ctx: ProjectionContext, kind: AssetKind) -> None:
    _set_paused(ctx, kind, True)


def handle_unpaused(ctx: ProjectionContext, kind: AssetKind) -> None:
    _set_paused(ctx, kind, False)


def handle_tokens_frozen(ctx: ProjectionContext, kind: AssetKind) -> None:
    event = ctx.event
    user = event.address_param("user")
    amount = event.uint_param("amount")

    asset = current_asset(ctx, kind)
    touch_accounts(ctx, event.tx_from, user)
    balance = load_balance(ctx, asset.id, user)
    if balance is not None:
        balance.frozen_exact = amount
        balance.frozen = to_decimals(amount, asset.decimals)
        balance.last_activity = ctx.timestamp
    else:
        logger.debug("Freeze of %s on %s without a balance", user, asset.id)
    asset.frozen_event_count += 1

    refresh_derived(ctx, kind, asset)
    record_asset_stats(ctx, asset, StatsDelta(frozen_exact=amount))
    update_activity(ctx, asset.asset_type, ActivityDelta(freezes=1))


def _set_blocked(ctx: ProjectionContext, kind: AssetKind, blocked: bool) -> None:
    user = ctx.event.address_param("user")
    asset = current_asset(ctx, kind)
    touch_accounts(ctx, ctx.event.tx_from, user)
    set_access_state(ctx, asset, user, blocked)
    asset.last_activity = ctx.timestamp


def handle_user_blocked(ctx: ProjectionContext, kind: AssetKind) -> None:
    _set_blocked(ctx, kind, True)


def handle_user_unblocked(ctx: ProjectionContext, kind: AssetKind) -> None:
    _set_blocked(ctx, kind, False)


def handle_user_allowed(ctx: ProjectionContext, kind: AssetKind) -> None:
    _set_blocked(ctx, kind, False)


def handle_user_disallowed(ctx: ProjectionContext, kind: AssetKind) -> None:
    _set_blocked(ctx, kind, True)


def handle_collateral_updated(ctx: ProjectionContext, kind: AssetKind) -> None:
    event = ctx.event
    new_amount = event.uint_param("newAmount")

    asset = current_asset(ctx, kind)
    touch_accounts(ctx, event.tx_from)
    asset.collateral_exact = new_amount
    asset.last_collateral_update = ctx.timestamp

    refresh_derived(ctx, kind, asset)
    record_asset_stats(ctx, asset)
    logger.debug(
        "Collateral of %s set to %s (ratio=%s, free=%s)",
        asset.id,
        new_amount,
        asset.collateral_ratio,
        asset.free_collateral_exact,
    )
