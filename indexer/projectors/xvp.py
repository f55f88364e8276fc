"""XvP settlement projector: flows, the participant approval gate and terminal flags."""

from __future__ import annotations

import logging
from typing import Any

from backend.db.models import Action, XvPApproval, XvPCancelVote, XvPFlow, XvPSettlement
from indexer.accounts import fetch_account, touch_accounts
from indexer.addresses import normalize_address
from indexer.aggregates import apply_count_delta
from indexer.chain import try_call
from indexer.context import ProjectionContext
from indexer.errors import MissingReferenceError
from indexer.projectors.seeding import read_bool, read_hex, read_string, read_uint

logger = logging.getLogger(__name__)

CLAIM_ACTION = "ClaimXvPSettlement"


def flow_id(settlement_id: str, index: int) -> str:
    return f"{settlement_id}-{index}"


def participant_id(settlement_id: str, account: str) -> str:
    return f"{settlement_id}-{account}"


def claim_action_id(settlement_id: str) -> str:
    return f"{settlement_id}-{CLAIM_ACTION}"


def _flow_field(flow: Any, name: str, position: int) -> Any:
    if isinstance(flow, dict):
        return flow[name]
    return flow[position]


def seed_settlement(ctx: ProjectionContext, address: str, *, factory_id: str | None) -> XvPSettlement:
    """Create the settlement, one flow per leg and one pending approval per distinct sender."""
    existing = ctx.store.get(XvPSettlement, address)
    if existing is not None:
        return existing

    settlement = ctx.store.add(
        XvPSettlement(
            id=address,
            factory_id=factory_id,
            name=read_string(ctx, address, "name"),
            cutoff_date=read_uint(ctx, address, "cutoffDate"),
            auto_execute=read_bool(ctx, address, "autoExecute"),
            hashlock=read_hex(ctx, address, "hashlock"),
            secret_revealed=False,
            claimed=False,
            cancelled=False,
            cancel_votes_count=0,
            created_at=ctx.timestamp,
            last_activity=ctx.timestamp,
        )
    )
    fetch_account(ctx, address).settlement_ref = address

    senders: list[str] = []
    for index, flow in enumerate(try_call(ctx.chain, address, "flows", [], block=ctx.block_number)):
        try:
            asset = normalize_address(_flow_field(flow, "asset", 0))
            sender = normalize_address(_flow_field(flow, "from", 1))
            recipient = normalize_address(_flow_field(flow, "to", 2))
            amount = int(_flow_field(flow, "amount", 3))
            external_chain_id = int(_flow_field(flow, "externalChainId", 4))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning("Skipping undecodable flow %d of settlement %s: %s", index, address, exc)
            continue
        fetch_account(ctx, sender)
        fetch_account(ctx, recipient)
        ctx.store.add(
            XvPFlow(
                id=flow_id(address, index),
                settlement_id=address,
                flow_index=index,
                asset=asset,
                sender=sender,
                recipient=recipient,
                amount_exact=amount,
                external_chain_id=external_chain_id,
            )
        )
        if sender not in senders:
            senders.append(sender)

    for sender in senders:
        ctx.store.add(
            XvPApproval(
                id=participant_id(address, sender),
                settlement_id=address,
                account_id=sender,
                approved=False,
            )
        )
    logger.info("Seeded XvP settlement %s with %d participants", address, len(senders))
    return settlement


def _load_settlement(ctx: ProjectionContext) -> XvPSettlement:
    settlement = ctx.store.get(XvPSettlement, ctx.event.address)
    if settlement is None:
        raise MissingReferenceError(f"XvP settlement {ctx.event.address} is not indexed")
    settlement.last_activity = ctx.timestamp
    return settlement


def _approval(ctx: ProjectionContext, settlement: XvPSettlement, account: str) -> XvPApproval:
    approval = ctx.store.get(XvPApproval, participant_id(settlement.id, account))
    if approval is None:
        logger.warning("Approval event from %s who sends no flow in %s", account, settlement.id)
        approval = ctx.store.add(
            XvPApproval(
                id=participant_id(settlement.id, account),
                settlement_id=settlement.id,
                account_id=account,
                approved=False,
            )
        )
    return approval


def _maybe_create_claim_action(ctx: ProjectionContext, settlement: XvPSettlement) -> None:
    approvals = ctx.store.find(XvPApproval, settlement_id=settlement.id)
    if not approvals or not all(approval.approved for approval in approvals):
        return
    if ctx.store.exists(Action, claim_action_id(settlement.id)):
        return
    ctx.store.add(
        Action(
            id=claim_action_id(settlement.id),
            name=CLAIM_ACTION,
            target=settlement.id,
            executors=[approval.account_id for approval in approvals],
            activate_at=ctx.timestamp,
            expires_at=settlement.cutoff_date or None,
            executed=False,
            created_at=ctx.timestamp,
        )
    )
    logger.info("All participants approved %s; claim action pending", settlement.id)


def handle_approved(ctx: ProjectionContext) -> None:
    sender = ctx.event.address_param("sender")
    settlement = _load_settlement(ctx)
    touch_accounts(ctx, ctx.event.tx_from, sender)
    approval = _approval(ctx, settlement, sender)
    approval.approved = True
    approval.approved_at = ctx.timestamp
    if not settlement.auto_execute:
        _maybe_create_claim_action(ctx, settlement)


def handle_approval_revoked(ctx: ProjectionContext) -> None:
    sender = ctx.event.address_param("sender")
    settlement = _load_settlement(ctx)
    touch_accounts(ctx, ctx.event.tx_from, sender)
    approval = _approval(ctx, settlement, sender)
    approval.approved = False
    approval.approved_at = None
    action = ctx.store.get(Action, claim_action_id(settlement.id))
    if action is not None and not action.executed:
        ctx.store.remove(action)


def handle_claimed(ctx: ProjectionContext) -> None:
    sender = ctx.event.address_param("sender")
    settlement = _load_settlement(ctx)
    touch_accounts(ctx, ctx.event.tx_from, sender)
    settlement.claimed = True
    action = ctx.store.get(Action, claim_action_id(settlement.id))
    if action is not None and not action.executed:
        action.executed = True
        action.executed_at = ctx.timestamp
        action.executed_by = sender


def handle_cancelled(ctx: ProjectionContext) -> None:
    sender = ctx.event.address_param("sender")
    settlement = _load_settlement(ctx)
    touch_accounts(ctx, ctx.event.tx_from, sender)
    settlement.cancelled = True


def _set_cancel_vote(ctx: ProjectionContext, active: bool) -> None:
    sender = ctx.event.address_param("sender")
    settlement = _load_settlement(ctx)
    touch_accounts(ctx, ctx.event.tx_from, sender)
    key = participant_id(settlement.id, sender)
    vote = ctx.store.get(XvPCancelVote, key)
    if vote is None:
        vote = ctx.store.add(
            XvPCancelVote(id=key, settlement_id=settlement.id, account_id=sender, active=False, voted_at=ctx.timestamp)
        )
    if vote.active == active:
        return
    vote.active = active
    vote.voted_at = ctx.timestamp
    settlement.cancel_votes_count = apply_count_delta(
        settlement.cancel_votes_count, 1 if active else -1, label=f"cancel votes of {settlement.id}"
    )


def handle_cancel_vote_cast(ctx: ProjectionContext) -> None:
    _set_cancel_vote(ctx, True)


def handle_cancel_vote_withdrawn(ctx: ProjectionContext) -> None:
    _set_cancel_vote(ctx, False)


def handle_secret_revealed(ctx: ProjectionContext) -> None:
    revealer = ctx.event.address_param("revealer")
    secret = ctx.event.bytes_param("secret")
    settlement = _load_settlement(ctx)
    touch_accounts(ctx, ctx.event.tx_from, revealer)
    settlement.secret = secret
    settlement.secret_revealed = True
