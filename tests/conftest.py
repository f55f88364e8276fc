"""Pytest fixtures shared across projection tests."""

from __future__ import annotations

from typing import Any, Iterator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from backend.db.session import create_schema, create_session_factory, create_store_engine
from indexer.chain import StaticChainReader
from indexer.engine import EventIndexer
from tests.utils.events import EventStream
from tests.utils.fakes import FakeManifestFetcher


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite entity store with the full schema."""
    store_engine = create_store_engine("sqlite://")
    create_schema(store_engine)
    try:
        yield store_engine
    finally:
        store_engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    session_factory = create_session_factory(engine)
    with session_factory() as db_session:
        yield db_session


@pytest.fixture
def chain() -> StaticChainReader:
    return StaticChainReader()


@pytest.fixture
def manifests() -> FakeManifestFetcher:
    return FakeManifestFetcher()


@pytest.fixture
def indexer(session: Session, chain: StaticChainReader, manifests: FakeManifestFetcher) -> EventIndexer:
    return EventIndexer(session, chain, manifests)


@pytest.fixture
def stream() -> EventStream:
    return EventStream()


@pytest.fixture
def watched(indexer: EventIndexer) -> Any:
    """Register ``address`` as ``kind`` on the indexer and return the address."""

    def _watch(address: str, kind: Any) -> str:
        indexer.watch(address, kind)
        return address

    return _watch
