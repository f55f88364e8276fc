"""Projection tests for factory-driven discovery of new contracts."""

from __future__ import annotations

from backend.db.enums import AssetType, ContractKind
from backend.db.models import Account, Asset, AssetCount, DataSource, Equity, Factory
from indexer.asset_kinds import ASSET_KINDS, KIND_BY_ASSET_TYPE
from indexer.chain import StaticChainReader
from indexer.engine import EventIndexer, ProcessOutcome
from indexer.router import build_routes, resolve
from tests.utils.events import ALICE, CAROL, FACTORY, TOKEN, UNIT, EventStream


def test_created_asset_is_seeded_and_watched(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    chain.set_calls(TOKEN, {"name": "Acme", "symbol": "ACME", "decimals": 18, "equityClass": "Common"})
    seen: list[tuple[str, ContractKind]] = []
    indexer.add_listener(lambda address, kind: seen.append((address, kind)))
    watched(FACTORY, ContractKind.EQUITY_FACTORY)
    assert seen == [(FACTORY, ContractKind.EQUITY_FACTORY)]

    created = stream.emit(FACTORY, "EquityCreated", token=TOKEN, creator=CAROL)
    assert indexer.process(created) is ProcessOutcome.APPLIED
    assert seen[-1] == (TOKEN, ContractKind.EQUITY)

    asset = indexer.store.get(Asset, TOKEN)
    assert isinstance(asset, Equity)
    assert asset.creator == CAROL
    assert asset.asset_class == "Common"
    assert indexer.store.get(AssetCount, AssetType.EQUITY).count == 1

    source = indexer.store.get(DataSource, TOKEN)
    assert source.factory_id == FACTORY
    assert source.created_by_event == created.event_id
    factory = indexer.store.get(Factory, FACTORY)
    assert factory.created_count == 1
    assert factory.last_created_at == created.block_timestamp
    assert indexer.store.get(Account, FACTORY).factory_ref == FACTORY
    assert indexer.store.get(Account, TOKEN).asset_ref == TOKEN

    assert indexer.process(stream.mint(TOKEN, ALICE, UNIT)) is ProcessOutcome.APPLIED
    assert asset.total_supply_exact == UNIT


def test_repeated_creation_event_is_idempotent(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    chain.set_calls(TOKEN, {"decimals": 18})
    watched(FACTORY, ContractKind.EQUITY_FACTORY)
    indexer.process(stream.emit(FACTORY, "EquityCreated", token=TOKEN, creator=CAROL))
    indexer.process(stream.emit(FACTORY, "EquityCreated", token=TOKEN, creator=ALICE))

    assert indexer.store.get(Factory, FACTORY).created_count == 1
    assert indexer.store.get(AssetCount, AssetType.EQUITY).count == 1
    assert indexer.store.get(Asset, TOKEN).creator == CAROL


def test_rolled_back_creation_does_not_notify_listeners(indexer: EventIndexer, stream: EventStream, watched) -> None:
    watched(FACTORY, ContractKind.BOND_FACTORY)
    seen: list[tuple[str, ContractKind]] = []
    indexer.add_listener(lambda address, kind: seen.append((address, kind)))

    broken = stream.emit(FACTORY, "BondCreated", token=TOKEN, creator="not-an-address")
    assert indexer.process(broken) is ProcessOutcome.SKIPPED
    assert seen == []
    assert indexer.subscriptions.kind_for(TOKEN) is None
    assert indexer.store.get(Factory, FACTORY).created_count == 0


def test_factory_only_routes_its_own_creation_event(indexer: EventIndexer, stream: EventStream, watched) -> None:
    watched(FACTORY, ContractKind.FUND_FACTORY)
    assert indexer.process(stream.emit(FACTORY, "EquityCreated", token=TOKEN, creator=CAROL)) is ProcessOutcome.UNROUTED


def test_every_asset_kind_has_creation_and_transfer_routes() -> None:
    routes = build_routes()
    for kind in ASSET_KINDS:
        assert KIND_BY_ASSET_TYPE[kind.asset_type] is kind
        assert resolve(routes, kind.factory_kind, kind.created_event) is not None
        assert resolve(routes, kind.contract_kind, "Transfer") is not None
    assert len(KIND_BY_ASSET_TYPE) == len(ASSET_KINDS) == 7
