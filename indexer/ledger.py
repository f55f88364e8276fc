"""Balance ledger: per (asset, holder) balances that exist only while non-zero."""

from __future__ import annotations

from decimal import Decimal
import logging

from backend.db.models import Account, Asset, AssetAccessEntry, AssetBalance
from indexer.accounts import fetch_account
from indexer.aggregates import apply_count_delta, apply_exact_delta, balance_transition
from indexer.context import ProjectionContext
from indexer.numeric import decimal_add, to_decimals

logger = logging.getLogger(__name__)


def balance_id(asset_id: str, holder: str) -> str:
    return f"{asset_id}-{holder}"


def access_entry_id(asset_id: str, holder: str) -> str:
    return f"{asset_id}-{holder}"


def load_balance(ctx: ProjectionContext, asset_id: str, holder: str) -> AssetBalance | None:
    return ctx.store.get(AssetBalance, balance_id(asset_id, holder))


def live_balances(ctx: ProjectionContext, asset_id: str) -> list[AssetBalance]:
    return ctx.store.find(AssetBalance, asset_id=asset_id)


def initial_blocked_state(ctx: ProjectionContext, asset_id: str, holder: str, default: bool) -> bool:
    """Blocked state a new balance starts with: explicit list entry first, else ``default``."""
    entry = ctx.store.get(AssetAccessEntry, access_entry_id(asset_id, holder))
    return entry.blocked if entry is not None else default


def fetch_asset_balance(ctx: ProjectionContext, asset: Asset, holder: str, initial_blocked: bool) -> AssetBalance:
    """Load the holder's balance, or build an unsaved zero balance.

    An unsaved balance is only persisted by ``apply_balance_delta`` once it
    becomes non-zero.
    """
    existing = load_balance(ctx, asset.id, holder)
    if existing is not None:
        return existing
    return AssetBalance(
        id=balance_id(asset.id, holder),
        asset_id=asset.id,
        account_id=holder,
        asset_type=asset.asset_type,
        value_exact=0,
        value=Decimal(0),
        approved_exact=0,
        approved=Decimal(0),
        frozen_exact=0,
        frozen=Decimal(0),
        blocked=initial_blocked_state(ctx, asset.id, holder, initial_blocked),
        last_activity=ctx.timestamp,
    )


def _adjust_account_totals(account: Account, asset: Asset, delta: int) -> None:
    scaled = to_decimals(delta, asset.decimals)
    account.total_balance_exact = account.total_balance_exact + delta
    account.total_balance = decimal_add(account.total_balance, scaled)
    if asset.paused:
        account.paused_balance_exact = account.paused_balance_exact + delta
        account.paused_balance = decimal_add(account.paused_balance, scaled)


def apply_balance_delta(ctx: ProjectionContext, asset: Asset, balance: AssetBalance, delta: int) -> AssetBalance | None:
    """Apply a signed delta and keep holder counters in step with create/delete.

    Returns the live balance, or ``None`` when the holder has no balance left.
    """
    before = balance.value_exact
    after = apply_exact_delta(before, delta, label=f"balance of {balance.account_id} in {asset.id}")
    transition = balance_transition(before, after)
    if before == 0 and after == 0:
        return None

    account = fetch_account(ctx, balance.account_id)
    balance.value_exact = after
    balance.value = to_decimals(after, asset.decimals)
    balance.last_activity = ctx.timestamp
    _adjust_account_totals(account, asset, delta)

    if transition.created:
        ctx.store.add(balance)
    elif transition.deleted:
        ctx.store.remove(balance)

    if transition.holder_delta:
        asset.total_holders = apply_count_delta(asset.total_holders, transition.holder_delta, label="holder count")
        account.balances_count = apply_count_delta(
            account.balances_count, transition.holder_delta, label="balances count"
        )
        if asset.paused:
            account.paused_balances_count = apply_count_delta(
                account.paused_balances_count, transition.holder_delta, label="paused balances count"
            )
        logger.debug(
            "Holder %s %s for asset %s (holders=%d)",
            balance.account_id,
            "added" if transition.created else "removed",
            asset.id,
            asset.total_holders,
        )

    return None if transition.deleted else balance


def credit(ctx: ProjectionContext, asset: Asset, holder: str, amount: int, initial_blocked: bool) -> AssetBalance | None:
    balance = fetch_asset_balance(ctx, asset, holder, initial_blocked)
    return apply_balance_delta(ctx, asset, balance, amount)


def debit(ctx: ProjectionContext, asset: Asset, holder: str, amount: int) -> AssetBalance | None:
    balance = fetch_asset_balance(ctx, asset, holder, False)
    return apply_balance_delta(ctx, asset, balance, -amount)


def set_access_state(ctx: ProjectionContext, asset: Asset, holder: str, blocked: bool) -> None:
    """Record a block/allow decision and mirror it on the live balance."""
    entry = ctx.store.get(AssetAccessEntry, access_entry_id(asset.id, holder))
    if entry is None:
        ctx.store.add(
            AssetAccessEntry(
                id=access_entry_id(asset.id, holder),
                asset_id=asset.id,
                account_id=holder,
                blocked=blocked,
                updated_at=ctx.timestamp,
            )
        )
    else:
        entry.blocked = blocked
        entry.updated_at = ctx.timestamp

    balance = load_balance(ctx, asset.id, holder)
    if balance is not None:
        balance.blocked = blocked
        balance.last_activity = ctx.timestamp
