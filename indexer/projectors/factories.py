"""Factory projector: seed each deployed instance and start watching it."""

from __future__ import annotations

import logging

from backend.db.enums import AirdropType, ContractKind
from backend.db.models import Factory
from indexer.accounts import fetch_account, touch_accounts
from indexer.addresses import normalize_address
from indexer.asset_kinds import AssetKind
from indexer.chain import try_call
from indexer.context import ProjectionContext
from indexer.projectors.airdrops import seed_airdrop
from indexer.projectors.fixed_yield import seed_fixed_yield
from indexer.projectors.identity import seed_identity
from indexer.projectors.seeding import read_uint, seed_asset
from indexer.projectors.vault import seed_vault
from indexer.projectors.xvp import seed_settlement

logger = logging.getLogger(__name__)

AIRDROP_KINDS: dict[AirdropType, ContractKind] = {
    AirdropType.STANDARD: ContractKind.STANDARD_AIRDROP,
    AirdropType.VESTING: ContractKind.VESTING_AIRDROP,
    AirdropType.PUSH: ContractKind.PUSH_AIRDROP,
}


def _factory(ctx: ProjectionContext, kind: ContractKind) -> Factory:
    factory = ctx.store.get(Factory, ctx.event.address)
    if factory is None:
        factory = ctx.subscriptions.register_factory(
            ctx.event.address,
            kind,
            block_number=ctx.block_number,
            timestamp=ctx.timestamp,
        )
    fetch_account(ctx, factory.id).factory_ref = factory.id
    return factory


def _watch(ctx: ProjectionContext, address: str, kind: ContractKind, factory: Factory) -> None:
    ctx.subscriptions.subscribe(
        address,
        kind,
        block_number=ctx.block_number,
        timestamp=ctx.timestamp,
        factory=factory,
        event_id=ctx.event.event_id,
    )


def handle_asset_created(ctx: ProjectionContext, kind: AssetKind) -> None:
    event = ctx.event
    token = event.address_param("token")
    creator = event.address_param("creator")
    factory = _factory(ctx, kind.factory_kind)
    touch_accounts(ctx, event.tx_from, creator)

    asset = ctx.store.get(kind.model, token)
    if asset is None:
        asset = seed_asset(ctx, token, kind, creator=creator)
    elif asset.creator is None:
        asset.creator = creator
    _watch(ctx, token, kind.contract_kind, factory)


def handle_fixed_yield_created(ctx: ProjectionContext) -> None:
    event = ctx.event
    schedule = event.address_param("schedule")
    token = event.address_param("token")
    factory = _factory(ctx, ContractKind.FIXED_YIELD_FACTORY)
    touch_accounts(ctx, event.tx_from)
    seed_fixed_yield(ctx, schedule, token)
    _watch(ctx, schedule, ContractKind.FIXED_YIELD, factory)


def _airdrop_deployed(ctx: ProjectionContext, airdrop_type: AirdropType) -> None:
    event = ctx.event
    airdrop = event.address_param("airdropContract")
    token = event.address_param("tokenAddress")
    owner = event.address_param("owner")
    strategy = event.address_param("strategy") if airdrop_type is AirdropType.VESTING else None
    factory = _factory(ctx, ContractKind.AIRDROP_FACTORY)
    touch_accounts(ctx, event.tx_from, owner)

    seed_airdrop(ctx, airdrop, airdrop_type, token=token, owner=owner, factory_id=factory.id, strategy=strategy)
    _watch(ctx, airdrop, AIRDROP_KINDS[airdrop_type], factory)
    if strategy is not None:
        _watch(ctx, strategy, ContractKind.LINEAR_VESTING_STRATEGY, factory)


def handle_standard_airdrop_deployed(ctx: ProjectionContext) -> None:
    _airdrop_deployed(ctx, AirdropType.STANDARD)


def handle_vesting_airdrop_deployed(ctx: ProjectionContext) -> None:
    _airdrop_deployed(ctx, AirdropType.VESTING)


def handle_push_airdrop_deployed(ctx: ProjectionContext) -> None:
    _airdrop_deployed(ctx, AirdropType.PUSH)


def handle_vault_created(ctx: ProjectionContext) -> None:
    event = ctx.event
    vault = event.address_param("vault")
    creator = event.address_param("creator")
    factory = _factory(ctx, ContractKind.VAULT_FACTORY)
    touch_accounts(ctx, event.tx_from, creator)

    if event.has_param("signers"):
        signers = event.address_list_param("signers")
    else:
        recorded = try_call(ctx.chain, vault, "getSigners", [], block=ctx.block_number)
        signers = [normalize_address(signer) for signer in recorded]
    required = event.uint_param("required") if event.has_param("required") else read_uint(ctx, vault, "required")

    seed_vault(ctx, vault, creator=creator, signers=signers, required=required, factory_id=factory.id)
    _watch(ctx, vault, ContractKind.VAULT, factory)


def handle_settlement_created(ctx: ProjectionContext) -> None:
    event = ctx.event
    settlement = event.address_param("settlement")
    creator = event.address_param("creator")
    factory = _factory(ctx, ContractKind.XVP_SETTLEMENT_FACTORY)
    touch_accounts(ctx, event.tx_from, creator)
    seed_settlement(ctx, settlement, factory_id=factory.id)
    _watch(ctx, settlement, ContractKind.XVP_SETTLEMENT, factory)


def _identity_created(ctx: ProjectionContext, owner_param: str) -> None:
    event = ctx.event
    identity = event.address_param("identity")
    owner = event.address_param(owner_param)
    factory = _factory(ctx, ContractKind.IDENTITY_FACTORY)
    touch_accounts(ctx, event.tx_from, owner)
    seed_identity(ctx, identity, wallet=owner, factory_id=factory.id)
    _watch(ctx, identity, ContractKind.IDENTITY, factory)


def handle_identity_created(ctx: ProjectionContext) -> None:
    _identity_created(ctx, "wallet")


def handle_token_identity_created(ctx: ProjectionContext) -> None:
    _identity_created(ctx, "token")
