"""Sequential event dispatcher: ordering, idempotence, savepoints and routing."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import enum
import logging
from typing import Iterable

from sqlalchemy.orm import Session

from backend.db.enums import ContractKind
from indexer.activity_log import is_recorded, record_activity
from indexer.addresses import normalize_address
from indexer.chain import ChainReader
from indexer.context import ProjectionContext
from indexer.errors import IndexingError, NotFoundOnMutationError
from indexer.events import ChainEvent
from indexer.manifest import ManifestFetcher
from indexer.numeric import DEFAULT_DECIMALS
from indexer.router import Routes, build_routes, resolve
from indexer.store import EntityStore
from indexer.subscriptions import SubscriptionListener, SubscriptionRegistry

logger = logging.getLogger(__name__)


class ProcessOutcome(str, enum.Enum):
    APPLIED = "APPLIED"
    DUPLICATE = "DUPLICATE"
    SKIPPED = "SKIPPED"
    UNROUTED = "UNROUTED"


@dataclass
class IndexingReport:
    """Per-outcome event counts for one batch."""

    applied: int = 0
    duplicate: int = 0
    skipped: int = 0
    unrouted: int = 0

    @property
    def total(self) -> int:
        return self.applied + self.duplicate + self.skipped + self.unrouted

    def record(self, outcome: ProcessOutcome) -> None:
        field_name = outcome.value.lower()
        setattr(self, field_name, getattr(self, field_name) + 1)

    def as_dict(self) -> dict[str, int]:
        return {**asdict(self), "total": self.total}


class EventIndexer:
    """Apply decoded chain events to the entity store one at a time.

    Every routed event runs inside its own SAVEPOINT: an ``IndexingError``
    rolls the event back and reports it as skipped, any other exception
    rolls it back and propagates. Committing the outer transaction is left
    to the caller.
    """

    def __init__(
        self,
        session: Session,
        chain: ChainReader,
        manifests: ManifestFetcher,
        *,
        default_decimals: int = DEFAULT_DECIMALS,
        routes: Routes | None = None,
    ) -> None:
        self._session = session
        self._store = EntityStore(session)
        self._chain = chain
        self._manifests = manifests
        self._default_decimals = default_decimals
        self._routes = routes if routes is not None else build_routes()
        self._subscriptions = SubscriptionRegistry(self._store)
        self._last_key: tuple[int, int] | None = None

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def subscriptions(self) -> SubscriptionRegistry:
        return self._subscriptions

    def add_listener(self, listener: SubscriptionListener) -> None:
        self._subscriptions.add_listener(listener)

    def watch(self, address: str, kind: ContractKind, *, block_number: int = 0, timestamp: int = 0) -> None:
        """Watch a statically known contract; factories also get a Factory record."""
        address = normalize_address(address)
        if kind.value.endswith("_FACTORY"):
            self._subscriptions.register_factory(address, kind, block_number=block_number, timestamp=timestamp)
        else:
            self._subscriptions.subscribe(address, kind, block_number=block_number, timestamp=timestamp)
        self._session.flush()
        self._subscriptions.publish_pending()

    def process(self, event: ChainEvent) -> ProcessOutcome:
        try:
            event = event.normalized()
        except IndexingError as exc:
            logger.warning("Skipping undecodable event %s: %s", event.event_id, exc)
            return ProcessOutcome.SKIPPED

        if self._last_key is not None and event.sort_key < self._last_key:
            if is_recorded(self._store, event):
                logger.info("Event %s already applied; skipping late redelivery", event.event_id)
                return ProcessOutcome.DUPLICATE
            logger.error(
                "Event %s at %s arrived after %s; rejecting out-of-order event",
                event.event_id,
                event.sort_key,
                self._last_key,
            )
            return ProcessOutcome.SKIPPED
        self._last_key = event.sort_key

        kind = self._subscriptions.kind_for(event.address)
        if kind is None:
            logger.debug("Ignoring %s from unwatched address %s", event.name, event.address)
            return ProcessOutcome.UNROUTED
        handler = resolve(self._routes, kind, event.name)
        if handler is None:
            logger.debug("No handler for %s on %s contract %s", event.name, kind.value, event.address)
            return ProcessOutcome.UNROUTED

        if is_recorded(self._store, event):
            logger.info("Event %s already applied; skipping duplicate", event.event_id)
            return ProcessOutcome.DUPLICATE

        ctx = ProjectionContext(
            store=self._store,
            chain=self._chain,
            manifests=self._manifests,
            subscriptions=self._subscriptions,
            event=event,
            default_decimals=self._default_decimals,
        )
        try:
            with self._session.begin_nested():
                record_activity(self._store, event)
                handler(ctx)
                self._store.save()
        except IndexingError as exc:
            self._subscriptions.discard_pending()
            log = logger.error if isinstance(exc, NotFoundOnMutationError) else logger.warning
            log("Skipped %s %s from %s: %s", event.name, event.event_id, event.address, exc)
            return ProcessOutcome.SKIPPED
        except Exception:
            self._subscriptions.discard_pending()
            logger.exception("Unexpected failure applying %s %s", event.name, event.event_id)
            raise

        self._subscriptions.publish_pending()
        logger.debug("Applied %s %s on %s", event.name, event.event_id, event.address)
        return ProcessOutcome.APPLIED

    def process_all(self, events: Iterable[ChainEvent]) -> IndexingReport:
        report = IndexingReport()
        for event in events:
            report.record(self.process(event))
        logger.info(
            "Processed %d events: %d applied, %d duplicate, %d skipped, %d unrouted",
            report.total,
            report.applied,
            report.duplicate,
            report.skipped,
            report.unrouted,
        )
        return report
