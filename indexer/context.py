"""Per-event projection context shared by every handler."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from indexer.chain import ChainReader
from indexer.events import ChainEvent
from indexer.manifest import ManifestFetcher
from indexer.store import EntityStore
from indexer.subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)


@dataclass
class ProjectionContext:
    """Collaborators plus the event currently being applied."""

    store: EntityStore
    chain: ChainReader
    manifests: ManifestFetcher
    subscriptions: SubscriptionRegistry
    event: ChainEvent
    default_decimals: int = 18
    _snapshot_seq: int = field(default=0, repr=False)

    @property
    def timestamp(self) -> int:
        return self.event.block_timestamp

    @property
    def block_number(self) -> int:
        return self.event.block_number

    def next_snapshot_id(self) -> str:
        """Deterministic id for the next append-only record written by this event."""
        self._snapshot_seq += 1
        return f"{self.event.event_id}-{self._snapshot_seq}"
