"""Generic audit log: every routed event with its parameters rendered as text."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator

from backend.db.models import ActivityLogEntry, ActivityLogParameter
from indexer.addresses import looks_like_address, normalize_address
from indexer.events import ChainEvent
from indexer.store import EntityStore

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def render_value(value: Any) -> tuple[str, str]:
    """Render a decoded parameter as ``(text, kind)``."""
    if isinstance(value, bool):
        return ("true" if value else "false", "bool")
    if isinstance(value, int):
        return (str(value), "int")
    if isinstance(value, (bytes, bytearray)):
        return ("0x" + bytes(value).hex(), "bytes")
    if isinstance(value, str):
        if looks_like_address(value):
            return (normalize_address(value), "address")
        if value.startswith("0x"):
            return (value.lower(), "bytes")
        return (value, "string")
    if isinstance(value, (list, tuple, dict)):
        return (json.dumps(value, default=_json_default, sort_keys=True, separators=(",", ":")), "json")
    if value is None:
        return ("", "null")
    return (str(value), type(value).__name__)


def _involved_addresses(event: ChainEvent) -> list[str]:
    def walk(value: Any) -> Iterator[str]:
        if looks_like_address(value):
            yield normalize_address(value)
        elif isinstance(value, (list, tuple)):
            for item in value:
                yield from walk(item)

    ordered: dict[str, None] = {event.address: None, event.tx_from: None}
    for name in sorted(event.params):
        for address in walk(event.params[name]):
            ordered.setdefault(address, None)
    return list(ordered)


def is_recorded(store: EntityStore, event: ChainEvent) -> bool:
    return store.exists(ActivityLogEntry, event.event_id)


def record_activity(store: EntityStore, event: ChainEvent) -> ActivityLogEntry:
    """Write the log entry and one parameter row per event parameter."""
    entry = store.add(
        ActivityLogEntry(
            id=event.event_id,
            event_name=event.name,
            emitter=event.address,
            sender=event.tx_from,
            block_number=event.block_number,
            block_timestamp=event.block_timestamp,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            involved=_involved_addresses(event),
        )
    )
    for ordinal, name in enumerate(event.params):
        text, kind = render_value(event.params[name])
        store.session.add(
            ActivityLogParameter(
                id=f"{event.event_id}-{ordinal}",
                entry_id=entry.id,
                ordinal=ordinal,
                name=name,
                value=text,
                value_kind=kind,
            )
        )
    store.save()
    return entry
