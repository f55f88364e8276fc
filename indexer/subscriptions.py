"""Dynamic data-source registry: which addresses are watched, and as what."""

from __future__ import annotations

import logging
from typing import Callable

from backend.db.enums import ContractKind
from backend.db.models import DataSource, Factory
from indexer.store import EntityStore

logger = logging.getLogger(__name__)

SubscriptionListener = Callable[[str, ContractKind], None]


class SubscriptionRegistry:
    """Persisted address-to-contract-kind routing plus runtime watch notifications.

    Subscriptions are stored as ``DataSource`` rows so a replay rebuilds the
    same routing; listeners receive the "start watching" side effect.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store
        self._listeners: list[SubscriptionListener] = []
        self._pending: list[tuple[str, ContractKind]] = []

    def add_listener(self, listener: SubscriptionListener) -> None:
        self._listeners.append(listener)

    def kind_for(self, address: str) -> ContractKind | None:
        source = self._store.get(DataSource, address)
        return source.contract_kind if source is not None else None

    def subscribe(
        self,
        address: str,
        kind: ContractKind,
        *,
        block_number: int,
        timestamp: int,
        factory: Factory | None = None,
        event_id: str | None = None,
    ) -> DataSource:
        """Start watching ``address`` with the ``kind`` interface; repeat calls are no-ops."""
        existing = self._store.get(DataSource, address)
        if existing is not None:
            if existing.contract_kind != kind:
                logger.warning(
                    "Address %s already watched as %s; ignoring request to watch as %s",
                    address,
                    existing.contract_kind.value,
                    kind.value,
                )
            return existing

        source = self._store.add(
            DataSource(
                address=address,
                contract_kind=kind,
                factory_id=factory.id if factory is not None else None,
                created_block=block_number,
                created_at=timestamp,
                created_by_event=event_id,
            )
        )
        if factory is not None:
            factory.created_count += 1
            factory.last_created_at = timestamp
        logger.info("Watching %s as %s", address, kind.value)
        self._pending.append((address, kind))
        return source

    def publish_pending(self) -> None:
        """Notify listeners of subscriptions made by the event that just committed."""
        pending, self._pending = self._pending, []
        for address, kind in pending:
            for listener in self._listeners:
                listener(address, kind)

    def discard_pending(self) -> None:
        """Forget subscriptions made by an event that was rolled back."""
        self._pending.clear()

    def register_factory(self, address: str, kind: ContractKind, *, block_number: int, timestamp: int) -> Factory:
        """Record a statically known factory and watch it."""
        factory = self._store.get(Factory, address)
        if factory is None:
            factory = self._store.add(
                Factory(
                    id=address,
                    factory_type=kind,
                    created_count=0,
                    registered_at_block=block_number,
                )
            )
        self.subscribe(address, kind, block_number=block_number, timestamp=timestamp)
        return factory
