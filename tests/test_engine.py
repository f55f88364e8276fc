"""Dispatcher tests: idempotence, ordering, routing, rollback and replay determinism."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.db.base import Base
from backend.db.enums import ContractKind
from backend.db.models import Account, ActivityLogEntry, ActivityLogParameter, Asset, DataSource
from backend.db.session import create_schema, create_session_factory, create_store_engine
from indexer.addresses import ZERO_ADDRESS
from indexer.chain import StaticChainReader
from indexer.context import ProjectionContext
from indexer.engine import EventIndexer, IndexingReport, ProcessOutcome
from indexer.errors import ViewCallReverted
from indexer.events import ChainEvent
from indexer.roles import SUPPLY_MANAGEMENT_ROLE
from tests.utils.fakes import FakeManifestFetcher
from tests.utils.events import ALICE, BOB, CAROL, OPERATOR, TOKEN, UNIT, EventStream


def _seed_token(chain: StaticChainReader) -> None:
    chain.set_calls(TOKEN, {"name": "Equity", "symbol": "EQT", "decimals": 18})


def test_duplicate_delivery_is_applied_once(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    _seed_token(chain)
    watched(TOKEN, ContractKind.EQUITY)
    mint = stream.mint(TOKEN, ALICE, 10 * UNIT)

    assert indexer.process(mint) is ProcessOutcome.APPLIED
    assert indexer.process(mint) is ProcessOutcome.DUPLICATE
    assert indexer.store.get(Asset, TOKEN).total_supply_exact == 10 * UNIT


def test_out_of_order_event_is_rejected(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    _seed_token(chain)
    watched(TOKEN, ContractKind.EQUITY)
    early = stream.mint(TOKEN, ALICE, 1)
    late = stream.mint(TOKEN, BOB, 1)
    same_block = stream.emit(TOKEN, "Transfer", same_block=True, **{"from": ZERO_ADDRESS, "to": CAROL, "value": 1})

    assert indexer.process(late) is ProcessOutcome.APPLIED
    assert indexer.process(early) is ProcessOutcome.SKIPPED
    assert indexer.process(same_block) is ProcessOutcome.APPLIED
    assert indexer.store.get(Account, ALICE) is None
    assert indexer.store.get(Asset, TOKEN).total_holders == 2


def test_late_redelivery_of_applied_event_is_a_duplicate(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    _seed_token(chain)
    watched(TOKEN, ContractKind.EQUITY)
    early = stream.mint(TOKEN, ALICE, UNIT)
    late = stream.transfer(TOKEN, ALICE, BOB, UNIT)

    assert indexer.process(early) is ProcessOutcome.APPLIED
    assert indexer.process(late) is ProcessOutcome.APPLIED
    assert indexer.process(early) is ProcessOutcome.DUPLICATE
    assert indexer.store.get(Asset, TOKEN).total_supply_exact == UNIT
    assert indexer.process(stream.transfer(TOKEN, BOB, CAROL, UNIT)) is ProcessOutcome.APPLIED


def test_unwatched_and_unknown_events_are_unrouted(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    _seed_token(chain)
    assert indexer.process(stream.mint(TOKEN, ALICE, 1)) is ProcessOutcome.UNROUTED

    watched(TOKEN, ContractKind.EQUITY)
    assert indexer.process(stream.emit(TOKEN, "SomethingElse", value=1)) is ProcessOutcome.UNROUTED
    assert indexer.store.find(ActivityLogEntry) == []


def test_undecodable_coordinates_are_skipped(indexer: EventIndexer, stream: EventStream, watched) -> None:
    watched(TOKEN, ContractKind.EQUITY)
    event = ChainEvent(
        address="not-an-address",
        name="Transfer",
        block_number=1,
        block_timestamp=1,
        tx_hash="0x01",
        log_index=0,
        tx_from=ALICE,
    )
    assert indexer.process(event) is ProcessOutcome.SKIPPED


def test_missing_parameter_skips_event_without_side_effects(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    _seed_token(chain)
    watched(TOKEN, ContractKind.EQUITY)
    event = stream.emit(TOKEN, "Transfer", **{"from": ZERO_ADDRESS, "to": ALICE})

    assert indexer.process(event) is ProcessOutcome.SKIPPED
    assert indexer.store.get(ActivityLogEntry, event.event_id) is None
    assert indexer.store.get(Asset, TOKEN) is None


def test_unexpected_errors_roll_back_and_propagate(session: Session, chain: StaticChainReader, manifests: FakeManifestFetcher, stream: EventStream) -> None:
    def explode(ctx: ProjectionContext) -> None:
        ctx.store.add(
            Account(
                id=ALICE,
                is_contract=False,
                first_seen_block=ctx.block_number,
                last_activity=ctx.timestamp,
            )
        )
        raise RuntimeError("handler bug")

    indexer = EventIndexer(session, chain, manifests, routes={ContractKind.EQUITY: {"Explode": explode}})
    indexer.watch(TOKEN, ContractKind.EQUITY)
    event = stream.emit(TOKEN, "Explode")

    with pytest.raises(RuntimeError, match="handler bug"):
        indexer.process(event)
    assert indexer.store.get(Account, ALICE) is None
    assert indexer.store.get(ActivityLogEntry, event.event_id) is None


def test_watch_notifies_listeners_once(indexer: EventIndexer) -> None:
    seen: list[tuple[str, ContractKind]] = []
    indexer.add_listener(lambda address, kind: seen.append((address, kind)))

    indexer.watch(TOKEN, ContractKind.EQUITY)
    indexer.watch(TOKEN, ContractKind.EQUITY)
    indexer.watch(TOKEN, ContractKind.BOND)

    assert seen == [(TOKEN, ContractKind.EQUITY)]
    assert indexer.subscriptions.kind_for(TOKEN) is ContractKind.EQUITY
    assert indexer.store.get(DataSource, TOKEN).factory_id is None


def test_activity_log_records_every_routed_event(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    _seed_token(chain)
    watched(TOKEN, ContractKind.EQUITY)
    mint = stream.mint(TOKEN, ALICE, 7)
    grant = stream.role_granted(TOKEN, SUPPLY_MANAGEMENT_ROLE, BOB)
    indexer.process(mint)
    indexer.process(grant)

    entry = indexer.store.get(ActivityLogEntry, mint.event_id)
    assert entry is not None
    assert entry.event_name == "Transfer"
    assert entry.emitter == TOKEN
    assert entry.sender == OPERATOR
    assert entry.involved == [TOKEN, OPERATOR, ZERO_ADDRESS, ALICE]

    parameters = indexer.store.find(ActivityLogParameter, entry_id=mint.event_id)
    assert [(row.name, row.value, row.value_kind) for row in sorted(parameters, key=lambda row: row.ordinal)] == [
        ("from", ZERO_ADDRESS, "address"),
        ("to", ALICE, "address"),
        ("value", "7", "int"),
    ]

    role_rows = indexer.store.find(ActivityLogParameter, entry_id=grant.event_id)
    assert {row.name: row.value_kind for row in role_rows} == {"role": "bytes", "account": "address"}


def test_process_all_reports_outcomes(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    _seed_token(chain)
    watched(TOKEN, ContractKind.EQUITY)
    mint = stream.mint(TOKEN, ALICE, 5)
    events = [
        mint,
        mint,
        stream.transfer(TOKEN, BOB, ALICE, 1),
        stream.emit(TOKEN, "Unknown"),
    ]
    report = indexer.process_all(events)
    assert report == IndexingReport(applied=1, duplicate=1, skipped=1, unrouted=1)
    assert report.as_dict()["total"] == 4


def _scenario(stream: EventStream) -> list[ChainEvent]:
    return [
        stream.mint(TOKEN, ALICE, 1000 * UNIT),
        stream.transfer(TOKEN, ALICE, BOB, 400 * UNIT),
        stream.role_granted(TOKEN, SUPPLY_MANAGEMENT_ROLE, CAROL),
        stream.transfer(TOKEN, CAROL, BOB, 1),
        stream.emit(TOKEN, "Paused", account=OPERATOR),
        stream.burn(TOKEN, ALICE, 600 * UNIT),
        stream.emit(TOKEN, "Unpaused", account=OPERATOR),
    ]


def _dump(session: Session) -> dict[str, list[tuple[Any, ...]]]:
    tables: dict[str, list[tuple[Any, ...]]] = {}
    for table in Base.metadata.sorted_tables:
        rows = session.execute(select(table).order_by(*table.primary_key.columns)).all()
        tables[table.name] = [tuple(row) for row in rows]
    return tables


def test_replay_produces_identical_store() -> None:
    dumps = []
    for _ in range(2):
        engine = create_store_engine("sqlite://")
        create_schema(engine)
        chain = StaticChainReader()
        _seed_token(chain)
        try:
            with create_session_factory(engine)() as session:
                indexer = EventIndexer(session, chain, FakeManifestFetcher())
                indexer.watch(TOKEN, ContractKind.EQUITY)
                report = indexer.process_all(_scenario(EventStream()))
                session.commit()
                assert report.skipped == 1
                dumps.append(_dump(session))
        finally:
            engine.dispose()

    assert dumps[0] == dumps[1]
    assert dumps[0]["asset_balance"]


class _CodeLookupFailingReader(StaticChainReader):
    def is_contract(self, address: str, block: int | None = None) -> bool:
        raise ViewCallReverted(f"get_code failed on {address}")


def test_failed_code_lookup_registers_account_as_wallet(session: Session, stream: EventStream) -> None:
    reader = _CodeLookupFailingReader()
    reader.set_calls(TOKEN, {"decimals": 18})
    indexer = EventIndexer(session, reader, FakeManifestFetcher())
    indexer.watch(TOKEN, ContractKind.EQUITY)

    assert indexer.process(stream.mint(TOKEN, ALICE, UNIT)) is ProcessOutcome.APPLIED
    assert indexer.store.get(Account, ALICE).is_contract is False
    assert indexer.store.get(Asset, TOKEN).total_supply_exact == UNIT
