"""Projection tests for fixed-yield schedules created through their factory."""

from __future__ import annotations

from decimal import Decimal

import pytest

from backend.db.enums import ContractKind
from backend.db.models import Bond, DataSource, Factory, FixedYield, YieldPeriod
from indexer.addresses import ZERO_ADDRESS
from indexer.chain import StaticChainReader
from indexer.engine import EventIndexer, ProcessOutcome
from indexer.projectors.fixed_yield import period_id
from tests.utils.events import ALICE, FACTORY, OTHER_TOKEN, TOKEN, UNDERLYING, UNIT, EventStream, addr

SCHEDULE = addr(0x3000)


@pytest.fixture
def schedule_chain(chain: StaticChainReader) -> StaticChainReader:
    chain.set_calls(TOKEN, {"name": "Bond", "symbol": "BND", "decimals": 18, "underlyingAsset": UNDERLYING})
    chain.set_calls(UNDERLYING, {"decimals": 6})
    chain.set_calls(
        SCHEDULE,
        {
            "underlyingAsset": UNDERLYING,
            "startDate": 1000,
            "endDate": 4000,
            "interval": 1000,
            "rate": 500,
            "allPeriods": [2000, 3000, 4000],
        },
    )
    chain.set_call(SCHEDULE, "periodEnd", 2000, 1)
    chain.set_call(TOKEN, "totalSupplyAt", 10 * UNIT, 2000)
    chain.set_call(TOKEN, "yieldBasisPerUnit", 1000, ZERO_ADDRESS)
    return chain


@pytest.fixture
def schedule(indexer: EventIndexer, schedule_chain: StaticChainReader, stream: EventStream, watched) -> FixedYield:
    watched(TOKEN, ContractKind.BOND)
    watched(FACTORY, ContractKind.FIXED_YIELD_FACTORY)
    indexer.process(stream.mint(TOKEN, ALICE, 10 * UNIT))
    assert indexer.process(stream.emit(FACTORY, "FixedYieldCreated", schedule=SCHEDULE, token=TOKEN)) is ProcessOutcome.APPLIED
    created = indexer.store.get(FixedYield, SCHEDULE)
    assert created is not None
    return created


def test_schedule_is_seeded_with_numbered_periods(indexer: EventIndexer, schedule: FixedYield) -> None:
    assert schedule.token == TOKEN
    assert schedule.rate == 500
    assert schedule.underlying_decimals == 6

    periods = indexer.store.find(YieldPeriod, schedule_id=SCHEDULE)
    assert [(p.period_number, p.start_date, p.end_date) for p in sorted(periods, key=lambda p: p.period_number)] == [
        (1, 1000, 2000),
        (2, 2000, 3000),
        (3, 3000, 4000),
    ]
    assert indexer.store.get(Bond, TOKEN).yield_schedule == SCHEDULE

    source = indexer.store.get(DataSource, SCHEDULE)
    assert source.contract_kind is ContractKind.FIXED_YIELD
    assert source.factory_id == FACTORY
    assert indexer.store.get(Factory, FACTORY).created_count == 1


def test_yield_claims_accumulate_per_period(indexer: EventIndexer, schedule: FixedYield, stream: EventStream) -> None:
    indexer.process(stream.emit(SCHEDULE, "UnderlyingAssetTopUp", amount=10**9, **{"from": ALICE}))
    assert schedule.underlying_balance == Decimal(1000)

    claim = stream.emit(
        SCHEDULE,
        "YieldClaimed",
        holder=ALICE,
        totalAmount=300,
        fromPeriod=1,
        toPeriod=2,
        periodAmounts=[100, 200],
        unclaimedYield=50,
    )
    assert indexer.process(claim) is ProcessOutcome.APPLIED
    assert schedule.total_claimed_exact == 300
    assert schedule.unclaimed_yield_exact == 50
    assert schedule.underlying_balance_exact == 10**9 - 300

    first = indexer.store.get(YieldPeriod, period_id(SCHEDULE, 1))
    second = indexer.store.get(YieldPeriod, period_id(SCHEDULE, 2))
    assert first.total_claimed_exact == 100
    assert second.total_claimed_exact == 200
    assert first.total_yield_exact == 10 * UNIT * 1000 * 500 // 10_000
    assert second.total_yield_exact == 0


def test_yield_claim_with_mismatched_amounts_is_skipped(indexer: EventIndexer, schedule: FixedYield, stream: EventStream) -> None:
    indexer.process(stream.emit(SCHEDULE, "UnderlyingAssetTopUp", amount=1000, **{"from": ALICE}))
    claim = stream.emit(
        SCHEDULE,
        "YieldClaimed",
        holder=ALICE,
        totalAmount=300,
        fromPeriod=1,
        toPeriod=3,
        periodAmounts=[100, 200],
        unclaimedYield=0,
    )
    assert indexer.process(claim) is ProcessOutcome.SKIPPED
    assert schedule.total_claimed_exact == 0


def test_underlying_withdrawal_cannot_overdraw(indexer: EventIndexer, schedule: FixedYield, stream: EventStream) -> None:
    indexer.process(stream.emit(SCHEDULE, "UnderlyingAssetTopUp", amount=500, **{"from": ALICE}))
    assert indexer.process(stream.emit(SCHEDULE, "UnderlyingAssetWithdrawn", to=ALICE, amount=501)) is ProcessOutcome.SKIPPED
    indexer.process(stream.emit(SCHEDULE, "UnderlyingAssetWithdrawn", to=ALICE, amount=200))
    assert schedule.underlying_balance_exact == 300


def test_claim_against_unindexed_bond_is_skipped(indexer: EventIndexer, schedule_chain: StaticChainReader, stream: EventStream, watched) -> None:
    orphan = addr(0x3001)
    schedule_chain.set_calls(orphan, {"underlyingAsset": UNDERLYING, "allPeriods": [2000]})
    watched(FACTORY, ContractKind.FIXED_YIELD_FACTORY)
    indexer.process(stream.emit(FACTORY, "FixedYieldCreated", schedule=orphan, token=OTHER_TOKEN))

    claim = stream.emit(
        orphan,
        "YieldClaimed",
        holder=ALICE,
        totalAmount=0,
        fromPeriod=1,
        toPeriod=1,
        periodAmounts=[0],
        unclaimedYield=0,
    )
    assert indexer.process(claim) is ProcessOutcome.SKIPPED
