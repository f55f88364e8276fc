"""Append-only statistics snapshots and per-asset-type activity aggregates."""

from __future__ import annotations

import logging

from backend.db.enums import AssetType
from backend.db.models import (
    Airdrop,
    AirdropStatsData,
    Asset,
    AssetActivity,
    AssetActivityData,
    AssetBalance,
    AssetCount,
    AssetStatsData,
    PortfolioStatsData,
)
from indexer.aggregates import ActivityCounters, ActivityDelta, StatsDelta, apply_activity, apply_count_delta
from indexer.context import ProjectionContext
from indexer.numeric import to_decimals

logger = logging.getLogger(__name__)


def record_asset_stats(ctx: ProjectionContext, asset: Asset, delta: StatsDelta | None = None) -> AssetStatsData:
    """Snapshot the asset's supply, holders and derived metrics after a change."""
    delta = delta or StatsDelta()
    decimals = asset.decimals
    snapshot = AssetStatsData(
        id=ctx.next_snapshot_id(),
        asset_id=asset.id,
        asset_type=asset.asset_type,
        timestamp=ctx.timestamp,
        block_number=ctx.block_number,
        supply_exact=asset.total_supply_exact,
        supply=to_decimals(asset.total_supply_exact, decimals),
        minted_exact=delta.minted_exact,
        minted=to_decimals(delta.minted_exact, decimals),
        burned_exact=delta.burned_exact,
        burned=to_decimals(delta.burned_exact, decimals),
        volume_exact=delta.volume_exact,
        volume=to_decimals(delta.volume_exact, decimals),
        frozen_exact=delta.frozen_exact,
        frozen=to_decimals(delta.frozen_exact, decimals),
        transfers=delta.transfers,
        holders=asset.total_holders,
        concentration=asset.concentration,
        collateral_exact=asset.collateral_exact,
        free_collateral_exact=asset.free_collateral_exact,
        collateral_ratio=asset.collateral_ratio,
    )
    return ctx.store.add(snapshot)


def record_portfolio_stats(ctx: ProjectionContext, asset: Asset, holder: str, balance: AssetBalance | None) -> PortfolioStatsData:
    """Snapshot one holder's balance; a deleted balance is recorded as zero."""
    value_exact = balance.value_exact if balance is not None else 0
    return ctx.store.add(
        PortfolioStatsData(
            id=ctx.next_snapshot_id(),
            account_id=holder,
            asset_id=asset.id,
            asset_type=asset.asset_type,
            timestamp=ctx.timestamp,
            balance_exact=value_exact,
            balance=to_decimals(value_exact, asset.decimals),
        )
    )


def _fetch_activity(ctx: ProjectionContext, asset_type: AssetType) -> AssetActivity:
    activity = ctx.store.get(AssetActivity, asset_type)
    if activity is None:
        activity = ctx.store.add(
            AssetActivity(
                asset_type=asset_type,
                mint_event_count=0,
                burn_event_count=0,
                transfer_event_count=0,
                frozen_event_count=0,
                clawback_event_count=0,
                total_supply_exact=0,
            )
        )
    return activity


def update_activity(ctx: ProjectionContext, asset_type: AssetType, delta: ActivityDelta) -> AssetActivity:
    """Fold ``delta`` into the asset type's counters and snapshot the result."""
    activity = _fetch_activity(ctx, asset_type)
    previous = ActivityCounters(
        mint_event_count=activity.mint_event_count,
        burn_event_count=activity.burn_event_count,
        transfer_event_count=activity.transfer_event_count,
        frozen_event_count=activity.frozen_event_count,
        clawback_event_count=activity.clawback_event_count,
        total_supply_exact=activity.total_supply_exact,
    )
    current = apply_activity(previous, delta)
    activity.mint_event_count = current.mint_event_count
    activity.burn_event_count = current.burn_event_count
    activity.transfer_event_count = current.transfer_event_count
    activity.frozen_event_count = current.frozen_event_count
    activity.clawback_event_count = current.clawback_event_count
    activity.total_supply_exact = current.total_supply_exact

    ctx.store.add(
        AssetActivityData(
            id=ctx.next_snapshot_id(),
            asset_type=asset_type,
            timestamp=ctx.timestamp,
            mint_event_count=current.mint_event_count,
            burn_event_count=current.burn_event_count,
            transfer_event_count=current.transfer_event_count,
            frozen_event_count=current.frozen_event_count,
            clawback_event_count=current.clawback_event_count,
            total_supply_exact=current.total_supply_exact,
        )
    )
    return activity


def _fetch_count(ctx: ProjectionContext, asset_type: AssetType) -> AssetCount:
    count = ctx.store.get(AssetCount, asset_type)
    if count is None:
        count = ctx.store.add(AssetCount(asset_type=asset_type, count=0, count_paused=0))
    return count


def adjust_asset_count(ctx: ProjectionContext, asset_type: AssetType, *, created: int = 0, paused: int = 0) -> AssetCount:
    count = _fetch_count(ctx, asset_type)
    count.count = apply_count_delta(count.count, created, label="asset count")
    count.count_paused = apply_count_delta(count.count_paused, paused, label="paused asset count")
    return count


def record_airdrop_stats(
    ctx: ProjectionContext,
    airdrop: Airdrop,
    *,
    claims: int = 0,
    claim_volume_exact: int = 0,
    distributions: int = 0,
    distribution_volume_exact: int = 0,
    unique_recipients: int = 0,
) -> AirdropStatsData:
    decimals = airdrop.token_decimals
    return ctx.store.add(
        AirdropStatsData(
            id=ctx.next_snapshot_id(),
            airdrop_id=airdrop.id,
            airdrop_type=airdrop.airdrop_type,
            timestamp=ctx.timestamp,
            claims=claims,
            claim_volume_exact=claim_volume_exact,
            claim_volume=to_decimals(claim_volume_exact, decimals),
            distributions=distributions,
            distribution_volume_exact=distribution_volume_exact,
            distribution_volume=to_decimals(distribution_volume_exact, decimals),
            unique_recipients=unique_recipients,
        )
    )
