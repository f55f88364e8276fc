"""Fund-specific hooks: fee collection and token withdrawals."""

from __future__ import annotations

import logging
from typing import cast

from backend.db.enums import AssetType
from backend.db.models import Fund, FundWithdrawal
from indexer.accounts import touch_accounts
from indexer.asset_kinds import KIND_BY_ASSET_TYPE
from indexer.context import ProjectionContext
from indexer.projectors.seeding import load_or_seed_asset

logger = logging.getLogger(__name__)


def _load_fund(ctx: ProjectionContext) -> Fund:
    return cast(Fund, load_or_seed_asset(ctx, ctx.event.address, KIND_BY_ASSET_TYPE[AssetType.FUND]))


def handle_management_fee_collected(ctx: ProjectionContext) -> None:
    amount = ctx.event.uint_param("amount")
    fund = _load_fund(ctx)
    touch_accounts(ctx, ctx.event.tx_from)
    fund.total_management_fees_exact = (fund.total_management_fees_exact or 0) + amount
    fund.last_fee_collection = ctx.timestamp
    fund.last_activity = ctx.timestamp
    logger.info("Management fee of %s collected on fund %s", amount, fund.id)


def handle_performance_fee_collected(ctx: ProjectionContext) -> None:
    amount = ctx.event.uint_param("amount")
    fund = _load_fund(ctx)
    touch_accounts(ctx, ctx.event.tx_from)
    fund.total_performance_fees_exact = (fund.total_performance_fees_exact or 0) + amount
    fund.last_fee_collection = ctx.timestamp
    fund.last_activity = ctx.timestamp
    logger.info("Performance fee of %s collected on fund %s", amount, fund.id)


def handle_token_withdrawn(ctx: ProjectionContext) -> None:
    event = ctx.event
    token = event.address_param("token")
    recipient = event.address_param("to")
    amount = event.uint_param("amount")

    fund = _load_fund(ctx)
    touch_accounts(ctx, event.tx_from, recipient)
    ctx.store.add(
        FundWithdrawal(
            id=event.event_id,
            fund_id=fund.id,
            token=token,
            recipient=recipient,
            amount_exact=amount,
            timestamp=ctx.timestamp,
        )
    )
    fund.last_activity = ctx.timestamp
