"""Seeding of new entity records from on-chain view calls with safe defaults."""

from __future__ import annotations

from decimal import Decimal
import logging

from backend.db.models import Asset, Bond, Fund
from indexer.accounts import fetch_account
from indexer.addresses import ZERO_ADDRESS, normalize_address
from indexer.asset_kinds import AssetKind
from indexer.chain import try_call
from indexer.context import ProjectionContext
from indexer.metrics import collateral_state
from indexer.numeric import MAX_DECIMALS
from indexer.statistics import adjust_asset_count

logger = logging.getLogger(__name__)


def read_string(ctx: ProjectionContext, address: str, function: str) -> str:
    value = try_call(ctx.chain, address, function, "", block=ctx.block_number)
    return value if isinstance(value, str) else ""


def read_uint(ctx: ProjectionContext, address: str, function: str, *args: object) -> int:
    value = try_call(ctx.chain, address, function, 0, *args, block=ctx.block_number)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def read_bool(ctx: ProjectionContext, address: str, function: str) -> bool:
    return bool(try_call(ctx.chain, address, function, False, block=ctx.block_number))


def read_address(ctx: ProjectionContext, address: str, function: str) -> str:
    value = try_call(ctx.chain, address, function, ZERO_ADDRESS, block=ctx.block_number)
    try:
        return normalize_address(value)
    except ValueError:
        logger.warning("View call %s on %s returned a non-address %r", function, address, value)
        return ZERO_ADDRESS


def read_hex(ctx: ProjectionContext, address: str, function: str) -> str:
    value = try_call(ctx.chain, address, function, "0x" + "00" * 32, block=ctx.block_number)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value).lower()


def token_decimals(ctx: ProjectionContext, token: str) -> int:
    """Decimals of ``token``: indexed asset record first, then the chain, then the default."""
    asset = ctx.store.get(Asset, token)
    if asset is not None:
        return asset.decimals
    value = try_call(ctx.chain, token, "decimals", None, block=ctx.block_number)
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= MAX_DECIMALS:
        return value
    logger.warning("Token %s cannot supply decimals; defaulting to %d", token, ctx.default_decimals)
    return ctx.default_decimals


def seed_asset(ctx: ProjectionContext, address: str, kind: AssetKind, creator: str | None = None) -> Asset:
    """Create the asset record for ``address`` from its view functions."""
    decimals = token_decimals(ctx, address)
    fields: dict[str, object] = {
        "id": address,
        "name": read_string(ctx, address, "name"),
        "symbol": read_string(ctx, address, "symbol"),
        "decimals": decimals,
        "total_supply_exact": 0,
        "total_supply": Decimal(0),
        "total_burned_exact": 0,
        "total_burned": Decimal(0),
        "total_holders": 0,
        "paused": False,
        "concentration": Decimal(0),
        "admins": [],
        "supply_managers": [],
        "user_managers": [],
        "auditors": [],
        "creator": creator,
        "deployed_on": ctx.timestamp,
        "last_activity": ctx.timestamp,
        "frozen_event_count": 0,
        "clawback_event_count": 0,
    }
    if kind.class_function is not None:
        fields["asset_class"] = read_string(ctx, address, kind.class_function)
    if kind.category_function is not None:
        fields["asset_category"] = read_string(ctx, address, kind.category_function)
    if kind.has_collateral:
        state = collateral_state(0, 0)
        fields.update(
            collateral_exact=state.collateral_exact,
            collateral=Decimal(0),
            free_collateral_exact=state.free_collateral_exact,
            free_collateral=Decimal(0),
            collateral_ratio=state.collateral_ratio,
        )
    if kind.model is Bond:
        underlying = read_address(ctx, address, "underlyingAsset")
        fields.update(
            maturity_date=read_uint(ctx, address, "maturityDate"),
            is_matured=False,
            face_value=read_uint(ctx, address, "faceValue"),
            underlying_asset=underlying,
            underlying_decimals=token_decimals(ctx, underlying),
            underlying_balance_exact=0,
            underlying_balance=Decimal(0),
            total_underlying_needed_exact=0,
            total_underlying_needed=Decimal(0),
            has_sufficient_underlying=True,
            redeemed_amount_exact=0,
            redeemed_amount=Decimal(0),
        )
    if kind.model is Fund:
        fields.update(
            management_fee_bps=read_uint(ctx, address, "managementFeeBps"),
            total_management_fees_exact=0,
            total_performance_fees_exact=0,
        )

    asset = ctx.store.add(kind.model(**fields))
    account = fetch_account(ctx, address)
    account.asset_ref = address
    adjust_asset_count(ctx, kind.asset_type, created=1)
    logger.info(
        "Seeded %s %s (%s, decimals=%d)",
        kind.asset_type.value,
        address,
        asset.symbol or "?",
        decimals,
    )
    return asset


def load_or_seed_asset(ctx: ProjectionContext, address: str, kind: AssetKind) -> Asset:
    asset = ctx.store.get(kind.model, address)
    if asset is not None:
        return asset
    return seed_asset(ctx, address, kind)