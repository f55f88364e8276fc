"""Fixed-yield schedule projector: period claims and underlying funding."""

from __future__ import annotations

from decimal import Decimal
import logging

from backend.db.models import Bond, FixedYield, YieldPeriod
from indexer.accounts import fetch_account, touch_accounts
from indexer.addresses import ZERO_ADDRESS
from indexer.aggregates import apply_exact_delta
from indexer.chain import try_call
from indexer.context import ProjectionContext
from indexer.errors import MalformedEventError, MissingReferenceError
from indexer.numeric import to_decimals
from indexer.projectors.seeding import read_address, read_uint, token_decimals

logger = logging.getLogger(__name__)

RATE_BASIS_POINTS = 10_000


def period_id(schedule_id: str, period_number: int) -> str:
    return f"{schedule_id}-{period_number}"


def seed_fixed_yield(ctx: ProjectionContext, schedule_address: str, token: str) -> FixedYield:
    """Create the schedule and its periods from the schedule contract's views."""
    existing = ctx.store.get(FixedYield, schedule_address)
    if existing is not None:
        return existing

    underlying = read_address(ctx, schedule_address, "underlyingAsset")
    start_date = read_uint(ctx, schedule_address, "startDate")
    schedule = ctx.store.add(
        FixedYield(
            id=schedule_address,
            token=token,
            underlying_asset=underlying,
            underlying_decimals=token_decimals(ctx, underlying),
            rate=read_uint(ctx, schedule_address, "rate"),
            start_date=start_date,
            end_date=read_uint(ctx, schedule_address, "endDate"),
            interval=read_uint(ctx, schedule_address, "interval"),
            total_claimed_exact=0,
            total_claimed=Decimal(0),
            unclaimed_yield_exact=0,
            unclaimed_yield=Decimal(0),
            underlying_balance_exact=0,
            underlying_balance=Decimal(0),
            created_at=ctx.timestamp,
        )
    )

    period_ends = try_call(ctx.chain, schedule_address, "allPeriods", [], block=ctx.block_number)
    previous_end = start_date
    for number, end in enumerate(period_ends, start=1):
        ctx.store.session.add(
            YieldPeriod(
                id=period_id(schedule.id, number),
                schedule_id=schedule.id,
                period_number=number,
                start_date=previous_end,
                end_date=int(end),
                total_claimed_exact=0,
                total_claimed=Decimal(0),
                total_yield_exact=0,
                total_yield=Decimal(0),
            )
        )
        previous_end = int(end)
    ctx.store.save()

    bond = ctx.store.get(Bond, token)
    if bond is not None:
        bond.yield_schedule = schedule.id
    else:
        logger.warning("Fixed yield %s created for unindexed token %s", schedule.id, token)
    fetch_account(ctx, schedule_address)
    logger.info("Seeded fixed yield %s for %s with %d periods", schedule.id, token, len(period_ends))
    return schedule


def _load_schedule(ctx: ProjectionContext) -> FixedYield:
    schedule = ctx.store.get(FixedYield, ctx.event.address)
    if schedule is None:
        raise MissingReferenceError(f"Fixed yield schedule {ctx.event.address} is not indexed")
    return schedule


def _fill_total_yield(ctx: ProjectionContext, schedule: FixedYield, period: YieldPeriod, bond: Bond) -> None:
    end_call = try_call(ctx.chain, schedule.id, "periodEnd", None, period.period_number, block=ctx.block_number)
    if end_call is None:
        return
    supply_at = try_call(ctx.chain, bond.id, "totalSupplyAt", None, int(end_call), block=ctx.block_number)
    basis = try_call(ctx.chain, bond.id, "yieldBasisPerUnit", None, ZERO_ADDRESS, block=ctx.block_number)
    if supply_at is None or basis is None:
        return
    if basis == 0:
        logger.warning("Yield basis is zero for period %s; skipping total yield", period.id)
        return
    total = int(supply_at) * int(basis) * schedule.rate // RATE_BASIS_POINTS
    period.total_yield_exact = total
    period.total_yield = to_decimals(total, bond.decimals)
    logger.debug("Total yield for period %s computed as %s", period.id, total)


def handle_yield_claimed(ctx: ProjectionContext) -> None:
    event = ctx.event
    holder = event.address_param("holder")
    total_amount = event.uint_param("totalAmount")
    from_period = event.uint_param("fromPeriod")
    to_period = event.uint_param("toPeriod")
    period_amounts = event.int_list_param("periodAmounts")
    unclaimed = event.uint_param("unclaimedYield")

    schedule = _load_schedule(ctx)
    bond = ctx.store.get(Bond, schedule.token)
    if bond is None:
        raise MissingReferenceError(f"Bond {schedule.token} for fixed yield {schedule.id} is not indexed")
    if to_period < from_period or len(period_amounts) != to_period - from_period + 1:
        raise MalformedEventError(
            f"YieldClaimed spans periods {from_period}..{to_period} with {len(period_amounts)} amounts"
        )

    touch_accounts(ctx, event.tx_from, holder)
    schedule.total_claimed_exact = schedule.total_claimed_exact + total_amount
    schedule.total_claimed = to_decimals(schedule.total_claimed_exact, bond.decimals)
    schedule.unclaimed_yield_exact = unclaimed
    schedule.unclaimed_yield = to_decimals(unclaimed, bond.decimals)
    schedule.underlying_balance_exact = apply_exact_delta(
        schedule.underlying_balance_exact,
        -total_amount,
        label=f"underlying balance of {schedule.id}",
    )
    schedule.underlying_balance = to_decimals(schedule.underlying_balance_exact, schedule.underlying_decimals)

    for offset, amount in enumerate(period_amounts):
        number = from_period + offset
        period = ctx.store.get(YieldPeriod, period_id(schedule.id, number))
        if period is None:
            logger.warning("Yield period %s not found for claim %s", period_id(schedule.id, number), event.event_id)
            continue
        if amount > 0:
            period.total_claimed_exact = period.total_claimed_exact + amount
            period.total_claimed = to_decimals(period.total_claimed_exact, bond.decimals)
        if period.total_yield_exact == 0:
            _fill_total_yield(ctx, schedule, period, bond)


def _adjust_underlying(ctx: ProjectionContext, delta: int, counterparty_param: str) -> None:
    counterparty = ctx.event.address_param(counterparty_param)
    schedule = _load_schedule(ctx)
    touch_accounts(ctx, ctx.event.tx_from, counterparty)
    schedule.underlying_balance_exact = apply_exact_delta(
        schedule.underlying_balance_exact,
        delta,
        label=f"underlying balance of {schedule.id}",
    )
    schedule.underlying_balance = to_decimals(schedule.underlying_balance_exact, schedule.underlying_decimals)


def handle_underlying_top_up(ctx: ProjectionContext) -> None:
    _adjust_underlying(ctx, ctx.event.uint_param("amount"), "from")


def handle_underlying_withdrawn(ctx: ProjectionContext) -> None:
    _adjust_underlying(ctx, -ctx.event.uint_param("amount"), "to")
