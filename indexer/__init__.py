"""Event-sourced projection of contract events into the indexed entity graph."""

from indexer.chain import ChainReader, StaticChainReader, Web3ChainReader
from indexer.config import IndexerConfig, configure_logging, load_indexer_config
from indexer.engine import EventIndexer, IndexingReport, ProcessOutcome
from indexer.errors import (
    IndexingError,
    LedgerInvariantError,
    MalformedEventError,
    MissingReferenceError,
    NotFoundOnMutationError,
    ViewCallReverted,
)
from indexer.events import ChainEvent
from indexer.manifest import DisabledManifestFetcher, IpfsGatewayFetcher, ManifestFetcher

__all__ = [
    "ChainEvent",
    "ChainReader",
    "DisabledManifestFetcher",
    "EventIndexer",
    "IndexerConfig",
    "IndexingError",
    "IndexingReport",
    "IpfsGatewayFetcher",
    "LedgerInvariantError",
    "MalformedEventError",
    "ManifestFetcher",
    "MissingReferenceError",
    "NotFoundOnMutationError",
    "ProcessOutcome",
    "StaticChainReader",
    "ViewCallReverted",
    "Web3ChainReader",
    "configure_logging",
    "load_indexer_config",
]
