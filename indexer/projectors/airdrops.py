"""Airdrop projector: deployment seeding, manifest ingestion, claims, push distributions and vesting."""

from __future__ import annotations

from decimal import Decimal
import logging

from backend.db.enums import AirdropType
from backend.db.models import (
    Airdrop,
    AirdropClaim,
    AirdropClaimIndex,
    AirdropRecipient,
    LinearVestingStrategy,
    MerkleRootUpdate,
    PushAirdrop,
    PushBatchDistribution,
    StandardAirdrop,
    UserVestingData,
    VestingAirdrop,
    VestingStatsData,
)
from indexer.accounts import fetch_account, touch_accounts
from indexer.context import ProjectionContext
from indexer.errors import MalformedEventError, MissingReferenceError
from indexer.manifest import parse_allocation_manifest
from indexer.metrics import vested_amount
from indexer.numeric import to_decimals
from indexer.projectors.seeding import read_hex, read_string, read_uint, token_decimals
from indexer.statistics import record_airdrop_stats

logger = logging.getLogger(__name__)

AIRDROP_MODELS: dict[AirdropType, type[Airdrop]] = {
    AirdropType.STANDARD: StandardAirdrop,
    AirdropType.VESTING: VestingAirdrop,
    AirdropType.PUSH: PushAirdrop,
}


def recipient_id(airdrop_id: str, recipient: str) -> str:
    return f"{airdrop_id}-{recipient}"


def claim_index_id(airdrop_id: str, index: int) -> str:
    return f"{airdrop_id}-{index}"


def user_vesting_id(strategy_id: str, account: str) -> str:
    return f"{strategy_id}-{account}"


def _ingest_manifest(ctx: ProjectionContext, airdrop: Airdrop) -> None:
    """Materialize one recipient per manifest entry; an unavailable manifest is skipped."""
    cid = airdrop.distribution_ipfs_hash
    if not cid:
        return
    payload = ctx.manifests.fetch(cid)
    if payload is None:
        logger.warning("No allocation manifest for airdrop %s (cid=%s)", airdrop.id, cid)
        return

    manifest = parse_allocation_manifest(payload)
    for entry in manifest.entries:
        fetch_account(ctx, entry.recipient)
        ctx.store.session.add(
            AirdropRecipient(
                id=recipient_id(airdrop.id, entry.recipient),
                airdrop_id=airdrop.id,
                recipient=entry.recipient,
                allocated_amount_exact=entry.amount_exact,
                allocated_amount=to_decimals(entry.amount_exact, airdrop.token_decimals),
                total_claimed_exact=0,
                total_claimed=Decimal(0),
                claim_count=0,
            )
        )
    ctx.store.save()
    airdrop.manifest_entry_count = len(manifest.entries)
    logger.info(
        "Ingested %d manifest entries for airdrop %s (%d skipped)",
        len(manifest.entries),
        airdrop.id,
        manifest.skipped,
    )


def seed_airdrop(
    ctx: ProjectionContext,
    address: str,
    airdrop_type: AirdropType,
    *,
    token: str,
    owner: str,
    factory_id: str | None,
    strategy: str | None = None,
) -> Airdrop:
    """Create the airdrop record from its view functions and ingest its allocation manifest."""
    existing = ctx.store.get(Airdrop, address)
    if existing is not None:
        return existing

    fetch_account(ctx, owner)
    fields: dict[str, object] = {
        "id": address,
        "factory_id": factory_id,
        "token": token,
        "token_decimals": token_decimals(ctx, token),
        "owner": owner,
        "name": read_string(ctx, address, "name"),
        "merkle_root": read_hex(ctx, address, "merkleRoot"),
        "distribution_ipfs_hash": read_string(ctx, address, "distributionIpfsHash"),
        "manifest_entry_count": 0,
        "total_claims": 0,
        "total_recipients": 0,
        "total_claimed_exact": 0,
        "total_claimed": Decimal(0),
        "is_withdrawn": False,
        "withdrawn_amount_exact": 0,
        "deployed_on": ctx.timestamp,
        "deployment_tx": ctx.event.tx_hash,
    }
    if airdrop_type is AirdropType.STANDARD:
        fields.update(
            start_time=read_uint(ctx, address, "startTime"),
            end_time=read_uint(ctx, address, "endTime"),
        )
    elif airdrop_type is AirdropType.VESTING:
        fields.update(claim_period_end=read_uint(ctx, address, "claimPeriodEnd"), strategy_id=strategy)
    else:
        fields.update(
            distribution_cap_exact=read_uint(ctx, address, "distributionCap"),
            total_distributed_exact=0,
            total_distributed=Decimal(0),
        )

    airdrop = ctx.store.add(AIRDROP_MODELS[airdrop_type](**fields))
    fetch_account(ctx, address).airdrop_ref = address

    if strategy is not None:
        ctx.store.add(
            LinearVestingStrategy(
                id=strategy,
                airdrop_id=address,
                vesting_duration=read_uint(ctx, strategy, "vestingDuration"),
                cliff_duration=read_uint(ctx, strategy, "cliffDuration"),
            )
        )
        fetch_account(ctx, strategy)

    _ingest_manifest(ctx, airdrop)
    logger.info("Seeded %s airdrop %s for token %s", airdrop_type.value, address, token)
    return airdrop


def _load_airdrop(ctx: ProjectionContext) -> Airdrop:
    airdrop = ctx.store.get(Airdrop, ctx.event.address)
    if airdrop is None:
        raise MissingReferenceError(f"Airdrop {ctx.event.address} is not indexed")
    return airdrop


def _fetch_recipient(ctx: ProjectionContext, airdrop: Airdrop, recipient: str) -> AirdropRecipient:
    record = ctx.store.get(AirdropRecipient, recipient_id(airdrop.id, recipient))
    if record is None:
        record = ctx.store.add(
            AirdropRecipient(
                id=recipient_id(airdrop.id, recipient),
                airdrop_id=airdrop.id,
                recipient=recipient,
                allocated_amount_exact=0,
                allocated_amount=Decimal(0),
                total_claimed_exact=0,
                total_claimed=Decimal(0),
                claim_count=0,
            )
        )
    return record


def _record_claim(ctx: ProjectionContext, airdrop: Airdrop, claimant: str, amount: int, indexed: list[tuple[int, int]]) -> None:
    """Apply one claim of ``amount`` with its ``(index, amount)`` attribution."""
    decimals = airdrop.token_decimals
    claim_id = ctx.event.event_id
    seen: set[int] = set()
    for index, _ in indexed:
        if index in seen or ctx.store.exists(AirdropClaimIndex, claim_index_id(airdrop.id, index)):
            raise MalformedEventError(f"Index {index} of airdrop {airdrop.id} was already claimed")
        seen.add(index)
    ctx.store.add(
        AirdropClaim(
            id=claim_id,
            airdrop_id=airdrop.id,
            recipient=claimant,
            amount_exact=amount,
            amount=to_decimals(amount, decimals),
            index_count=len(indexed),
            timestamp=ctx.timestamp,
            tx_hash=ctx.event.tx_hash,
        )
    )
    for index, index_amount in indexed:
        ctx.store.add(
            AirdropClaimIndex(
                id=claim_index_id(airdrop.id, index),
                airdrop_id=airdrop.id,
                recipient=claimant,
                claim_index=index,
                amount_exact=index_amount,
                amount=to_decimals(index_amount, decimals),
                claim_id=claim_id,
                timestamp=ctx.timestamp,
            )
        )

    recipient = _fetch_recipient(ctx, airdrop, claimant)
    first_claim = recipient.first_claimed_timestamp is None
    if first_claim:
        recipient.first_claimed_timestamp = ctx.timestamp
        airdrop.total_recipients += 1
    recipient.last_claimed_timestamp = ctx.timestamp
    recipient.claim_count += 1
    recipient.total_claimed_exact = recipient.total_claimed_exact + amount
    recipient.total_claimed = to_decimals(recipient.total_claimed_exact, decimals)

    airdrop.total_claims += 1
    airdrop.total_claimed_exact = airdrop.total_claimed_exact + amount
    airdrop.total_claimed = to_decimals(airdrop.total_claimed_exact, decimals)

    if isinstance(airdrop, VestingAirdrop) and airdrop.strategy_id is not None:
        vesting = ctx.store.get(UserVestingData, user_vesting_id(airdrop.strategy_id, claimant))
        if vesting is not None:
            vesting.claimed_amount_exact = vesting.claimed_amount_exact + amount
            vesting.last_updated = ctx.timestamp
            record_vesting_stats(ctx, airdrop.strategy_id)

    record_airdrop_stats(
        ctx,
        airdrop,
        claims=1,
        claim_volume_exact=amount,
        unique_recipients=1 if first_claim else 0,
    )


def handle_claimed(ctx: ProjectionContext) -> None:
    event = ctx.event
    claimant = event.address_param("claimant")
    amount = event.uint_param("amount")
    airdrop = _load_airdrop(ctx)
    touch_accounts(ctx, event.tx_from, claimant)
    indexed = [(event.uint_param("index"), amount)] if event.has_param("index") else []
    _record_claim(ctx, airdrop, claimant, amount, indexed)


def handle_batch_claimed(ctx: ProjectionContext) -> None:
    event = ctx.event
    claimant = event.address_param("claimant")
    total_amount = event.uint_param("totalAmount")
    indices = event.int_list_param("indices")
    if not event.has_param("amounts"):
        raise MalformedEventError(f"BatchClaimed at {event.event_id} carries no per-index amounts")
    amounts = event.int_list_param("amounts")
    if len(indices) != len(amounts):
        raise MalformedEventError(
            f"BatchClaimed at {event.event_id} has {len(indices)} indices but {len(amounts)} amounts"
        )
    if sum(amounts) != total_amount:
        logger.warning(
            "BatchClaimed at %s: per-index amounts sum to %d, total is %d",
            event.event_id,
            sum(amounts),
            total_amount,
        )

    airdrop = _load_airdrop(ctx)
    touch_accounts(ctx, event.tx_from, claimant)
    _record_claim(ctx, airdrop, claimant, total_amount, list(zip(indices, amounts)))


def handle_tokens_withdrawn(ctx: ProjectionContext) -> None:
    event = ctx.event
    destination = event.address_param("to")
    amount = event.uint_param("amount")
    airdrop = _load_airdrop(ctx)
    touch_accounts(ctx, event.tx_from, destination)
    airdrop.is_withdrawn = True
    airdrop.withdrawn_amount_exact = airdrop.withdrawn_amount_exact + amount
    logger.info("Airdrop %s withdrew %d to %s", airdrop.id, amount, destination)


def _load_push_airdrop(ctx: ProjectionContext) -> PushAirdrop:
    airdrop = _load_airdrop(ctx)
    if not isinstance(airdrop, PushAirdrop):
        raise MalformedEventError(f"{ctx.event.name} emitted by non-push airdrop {airdrop.id}")
    return airdrop


def _add_distributed(airdrop: PushAirdrop, amount: int) -> None:
    total = (airdrop.total_distributed_exact or 0) + amount
    airdrop.total_distributed_exact = total
    airdrop.total_distributed = to_decimals(total, airdrop.token_decimals)
    cap = airdrop.distribution_cap_exact or 0
    if cap and total > cap:
        logger.warning("Push airdrop %s distributed %d beyond its cap of %d", airdrop.id, total, cap)


def handle_tokens_distributed(ctx: ProjectionContext) -> None:
    event = ctx.event
    recipient_address = event.address_param("recipient")
    amount = event.uint_param("amount")
    airdrop = _load_push_airdrop(ctx)
    touch_accounts(ctx, event.tx_from, recipient_address)

    ctx.store.add(
        AirdropClaim(
            id=event.event_id,
            airdrop_id=airdrop.id,
            recipient=recipient_address,
            amount_exact=amount,
            amount=to_decimals(amount, airdrop.token_decimals),
            index_count=0,
            timestamp=ctx.timestamp,
            tx_hash=event.tx_hash,
        )
    )
    recipient = _fetch_recipient(ctx, airdrop, recipient_address)
    first_distribution = recipient.first_claimed_timestamp is None
    if first_distribution:
        recipient.first_claimed_timestamp = ctx.timestamp
        airdrop.total_recipients += 1
    recipient.last_claimed_timestamp = ctx.timestamp
    recipient.claim_count += 1
    recipient.total_claimed_exact = recipient.total_claimed_exact + amount
    recipient.total_claimed = to_decimals(recipient.total_claimed_exact, airdrop.token_decimals)
    _add_distributed(airdrop, amount)
    record_airdrop_stats(
        ctx,
        airdrop,
        distributions=1,
        distribution_volume_exact=amount,
        unique_recipients=1 if first_distribution else 0,
    )


def handle_batch_distributed(ctx: ProjectionContext) -> None:
    event = ctx.event
    recipient_count = event.uint_param("recipientCount")
    total_amount = event.uint_param("totalAmount")
    airdrop = _load_push_airdrop(ctx)
    touch_accounts(ctx, event.tx_from)
    ctx.store.add(
        PushBatchDistribution(
            id=event.event_id,
            airdrop_id=airdrop.id,
            recipient_count=recipient_count,
            total_amount_exact=total_amount,
            total_amount=to_decimals(total_amount, airdrop.token_decimals),
            timestamp=ctx.timestamp,
        )
    )
    logger.debug("Batch distribution of %d to %d recipients on %s", total_amount, recipient_count, airdrop.id)


def handle_merkle_root_updated(ctx: ProjectionContext) -> None:
    event = ctx.event
    old_root = event.bytes_param("oldRoot")
    new_root = event.bytes_param("newRoot")
    airdrop = _load_push_airdrop(ctx)
    touch_accounts(ctx, event.tx_from)
    if airdrop.merkle_root and airdrop.merkle_root != old_root:
        logger.warning("Merkle root of %s was %s, event reports %s", airdrop.id, airdrop.merkle_root, old_root)
    airdrop.merkle_root = new_root
    ctx.store.add(
        MerkleRootUpdate(
            id=event.event_id,
            airdrop_id=airdrop.id,
            old_root=old_root,
            new_root=new_root,
            timestamp=ctx.timestamp,
        )
    )


def handle_distribution_cap_updated(ctx: ProjectionContext) -> None:
    event = ctx.event
    new_cap = event.uint_param("newCap")
    airdrop = _load_push_airdrop(ctx)
    touch_accounts(ctx, event.tx_from)
    airdrop.distribution_cap_exact = new_cap


def record_vesting_stats(ctx: ProjectionContext, strategy_id: str) -> VestingStatsData | None:
    strategy = ctx.store.get(LinearVestingStrategy, strategy_id)
    if strategy is None:
        return None
    airdrop = ctx.store.get(Airdrop, strategy.airdrop_id)
    decimals = airdrop.token_decimals if airdrop is not None else ctx.default_decimals

    allocated = vested = claimed = initialized = 0
    for data in ctx.store.find(UserVestingData, strategy_id=strategy_id):
        allocated += data.total_amount_aggregated_exact
        claimed += data.claimed_amount_exact
        vested += vested_amount(
            data.total_amount_aggregated_exact,
            data.vesting_start,
            strategy.vesting_duration,
            strategy.cliff_duration,
            ctx.timestamp,
        )
        if data.initialized:
            initialized += 1

    return ctx.store.add(
        VestingStatsData(
            id=ctx.next_snapshot_id(),
            airdrop_id=strategy.airdrop_id,
            strategy_id=strategy_id,
            timestamp=ctx.timestamp,
            total_allocated_exact=allocated,
            total_vested_exact=vested,
            total_claimed_exact=claimed,
            total_allocated=to_decimals(allocated, decimals),
            total_vested=to_decimals(vested, decimals),
            total_claimed=to_decimals(claimed, decimals),
            initialized_users=initialized,
        )
    )


def handle_vesting_initialized(ctx: ProjectionContext) -> None:
    event = ctx.event
    account = event.address_param("account")
    total_amount = event.uint_param("totalAmount")
    vesting_start = event.uint_param("vestingStart")

    strategy = ctx.store.get(LinearVestingStrategy, event.address)
    if strategy is None:
        raise MissingReferenceError(f"Vesting strategy {event.address} is not indexed")
    touch_accounts(ctx, event.tx_from, account)

    key = user_vesting_id(strategy.id, account)
    data = ctx.store.get(UserVestingData, key)
    if data is None:
        data = ctx.store.add(
            UserVestingData(
                id=key,
                strategy_id=strategy.id,
                account_id=account,
                total_amount_aggregated_exact=0,
                claimed_amount_exact=0,
                vesting_start=vesting_start,
                initialized=False,
                last_updated=ctx.timestamp,
            )
        )
    data.total_amount_aggregated_exact = data.total_amount_aggregated_exact + total_amount
    data.vesting_start = vesting_start
    data.initialized = True
    data.last_updated = ctx.timestamp
    record_vesting_stats(ctx, strategy.id)
