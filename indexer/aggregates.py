"""Pure aggregate-update functions: previous aggregate plus delta in, next aggregate out."""

from __future__ import annotations

from dataclasses import dataclass, replace

from backend.db.enums import TransferKind
from indexer.errors import LedgerInvariantError


def apply_exact_delta(current: int, delta: int, *, label: str) -> int:
    """Add a signed delta to a non-negative exact amount."""
    updated = current + delta
    if updated < 0:
        raise LedgerInvariantError(f"{label} would become negative ({current} + {delta})")
    return updated


@dataclass(frozen=True)
class HolderTransition:
    """Counter changes caused by a balance moving across zero."""

    created: bool
    deleted: bool

    @property
    def holder_delta(self) -> int:
        return int(self.created) - int(self.deleted)


def balance_transition(before: int, after: int) -> HolderTransition:
    return HolderTransition(created=before == 0 and after > 0, deleted=before > 0 and after == 0)


def apply_count_delta(current: int, delta: int, *, label: str) -> int:
    updated = current + delta
    if updated < 0:
        raise LedgerInvariantError(f"{label} would become negative ({current} + {delta})")
    return updated


@dataclass(frozen=True)
class ActivityCounters:
    """Running event counters for one asset type."""

    mint_event_count: int = 0
    burn_event_count: int = 0
    transfer_event_count: int = 0
    frozen_event_count: int = 0
    clawback_event_count: int = 0
    total_supply_exact: int = 0


@dataclass(frozen=True)
class ActivityDelta:
    mints: int = 0
    burns: int = 0
    transfers: int = 0
    freezes: int = 0
    clawbacks: int = 0
    supply_delta: int = 0


def apply_activity(previous: ActivityCounters, delta: ActivityDelta) -> ActivityCounters:
    return ActivityCounters(
        mint_event_count=previous.mint_event_count + delta.mints,
        burn_event_count=previous.burn_event_count + delta.burns,
        transfer_event_count=previous.transfer_event_count + delta.transfers,
        frozen_event_count=previous.frozen_event_count + delta.freezes,
        clawback_event_count=previous.clawback_event_count + delta.clawbacks,
        total_supply_exact=apply_exact_delta(
            previous.total_supply_exact,
            delta.supply_delta,
            label="asset type total supply",
        ),
    )


def transfer_activity_delta(kind: TransferKind, value: int) -> ActivityDelta:
    if kind is TransferKind.MINT:
        return ActivityDelta(mints=1, supply_delta=value)
    if kind is TransferKind.BURN:
        return ActivityDelta(burns=1, supply_delta=-value)
    return ActivityDelta(transfers=1)


@dataclass(frozen=True)
class SupplyState:
    """Supply-side totals of one asset."""

    total_supply_exact: int
    total_burned_exact: int


def apply_transfer_to_supply(previous: SupplyState, kind: TransferKind, value: int) -> SupplyState:
    if kind is TransferKind.MINT:
        return replace(
            previous,
            total_supply_exact=apply_exact_delta(previous.total_supply_exact, value, label="total supply"),
        )
    if kind is TransferKind.BURN:
        return SupplyState(
            total_supply_exact=apply_exact_delta(previous.total_supply_exact, -value, label="total supply"),
            total_burned_exact=previous.total_burned_exact + value,
        )
    return previous


@dataclass(frozen=True)
class StatsDelta:
    """Volumes recorded in one asset stats snapshot."""

    minted_exact: int = 0
    burned_exact: int = 0
    volume_exact: int = 0
    frozen_exact: int = 0
    transfers: int = 0


def transfer_stats_delta(kind: TransferKind, value: int) -> StatsDelta:
    if kind is TransferKind.MINT:
        return StatsDelta(minted_exact=value)
    if kind is TransferKind.BURN:
        return StatsDelta(burned_exact=value)
    return StatsDelta(volume_exact=value, transfers=1)
