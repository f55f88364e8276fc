"""Bond-specific hooks: maturity, redemption and underlying-asset coverage."""

from __future__ import annotations

import logging
from typing import cast

from backend.db.enums import AssetType
from backend.db.models import Bond
from indexer.accounts import touch_accounts
from indexer.aggregates import apply_exact_delta
from indexer.asset_kinds import KIND_BY_ASSET_TYPE
from indexer.context import ProjectionContext
from indexer.metrics import underlying_needed
from indexer.numeric import to_decimals
from indexer.projectors.seeding import load_or_seed_asset
from indexer.statistics import record_asset_stats

logger = logging.getLogger(__name__)


def refresh_underlying(bond: Bond) -> None:
    """Recompute the underlying amount needed to redeem the full supply."""
    underlying_decimals = bond.underlying_decimals if bond.underlying_decimals is not None else bond.decimals
    needed = underlying_needed(
        bond.total_supply_exact,
        bond.face_value or 0,
        bond.decimals,
        underlying_decimals,
    )
    bond.total_underlying_needed_exact = needed
    bond.total_underlying_needed = to_decimals(needed, underlying_decimals)
    bond.has_sufficient_underlying = (bond.underlying_balance_exact or 0) >= needed


def _load_bond(ctx: ProjectionContext) -> Bond:
    return cast(Bond, load_or_seed_asset(ctx, ctx.event.address, KIND_BY_ASSET_TYPE[AssetType.BOND]))


def _adjust_underlying(bond: Bond, delta: int) -> None:
    underlying_decimals = bond.underlying_decimals if bond.underlying_decimals is not None else bond.decimals
    balance = apply_exact_delta(bond.underlying_balance_exact or 0, delta, label=f"underlying balance of {bond.id}")
    bond.underlying_balance_exact = balance
    bond.underlying_balance = to_decimals(balance, underlying_decimals)
    refresh_underlying(bond)


def handle_bond_matured(ctx: ProjectionContext) -> None:
    bond = _load_bond(ctx)
    touch_accounts(ctx, ctx.event.tx_from)
    if bond.is_matured:
        logger.warning("Bond %s already matured; ignoring", bond.id)
        return
    bond.is_matured = True
    bond.last_activity = ctx.timestamp
    record_asset_stats(ctx, bond)
    logger.info("Bond %s matured at %d", bond.id, ctx.timestamp)


def handle_bond_redeemed(ctx: ProjectionContext) -> None:
    event = ctx.event
    holder = event.address_param("holder")
    bond_amount = event.uint_param("bondAmount")
    underlying_amount = event.uint_param("underlyingAmount")

    bond = _load_bond(ctx)
    touch_accounts(ctx, event.tx_from, holder)
    redeemed = (bond.redeemed_amount_exact or 0) + bond_amount
    bond.redeemed_amount_exact = redeemed
    bond.redeemed_amount = to_decimals(redeemed, bond.decimals)
    _adjust_underlying(bond, -underlying_amount)
    bond.last_activity = ctx.timestamp
    record_asset_stats(ctx, bond)


def handle_underlying_top_up(ctx: ProjectionContext) -> None:
    event = ctx.event
    source = event.address_param("from")
    amount = event.uint_param("amount")

    bond = _load_bond(ctx)
    touch_accounts(ctx, event.tx_from, source)
    _adjust_underlying(bond, amount)
    bond.last_activity = ctx.timestamp
    record_asset_stats(ctx, bond)


def handle_underlying_withdrawn(ctx: ProjectionContext) -> None:
    event = ctx.event
    destination = event.address_param("to")
    amount = event.uint_param("amount")

    bond = _load_bond(ctx)
    touch_accounts(ctx, event.tx_from, destination)
    _adjust_underlying(bond, -amount)
    bond.last_activity = ctx.timestamp
    record_asset_stats(ctx, bond)
