"""Unit tests for the pure aggregate-update functions."""

from __future__ import annotations

import pytest

from backend.db.enums import TransferKind
from indexer.aggregates import (
    ActivityCounters,
    SupplyState,
    apply_activity,
    apply_count_delta,
    apply_exact_delta,
    apply_transfer_to_supply,
    balance_transition,
    transfer_activity_delta,
    transfer_stats_delta,
)
from indexer.errors import LedgerInvariantError


def test_apply_exact_delta_rejects_negative_results() -> None:
    assert apply_exact_delta(10, -10, label="balance") == 0
    with pytest.raises(LedgerInvariantError, match="balance would become negative"):
        apply_exact_delta(10, -11, label="balance")


def test_apply_count_delta_rejects_negative_counts() -> None:
    assert apply_count_delta(1, -1, label="holders") == 0
    with pytest.raises(LedgerInvariantError, match="holders"):
        apply_count_delta(0, -1, label="holders")


def test_balance_transition_tracks_zero_crossings() -> None:
    assert balance_transition(0, 5).holder_delta == 1
    assert balance_transition(5, 0).holder_delta == -1
    assert balance_transition(5, 7).holder_delta == 0
    assert balance_transition(0, 0).holder_delta == 0


def test_supply_follows_mints_and_burns() -> None:
    state = SupplyState(total_supply_exact=0, total_burned_exact=0)
    state = apply_transfer_to_supply(state, TransferKind.MINT, 100)
    state = apply_transfer_to_supply(state, TransferKind.TRANSFER, 40)
    state = apply_transfer_to_supply(state, TransferKind.BURN, 30)
    assert state == SupplyState(total_supply_exact=70, total_burned_exact=30)

    with pytest.raises(LedgerInvariantError):
        apply_transfer_to_supply(state, TransferKind.BURN, 71)


def test_activity_counters_accumulate_per_kind() -> None:
    counters = ActivityCounters()
    for kind, value in ((TransferKind.MINT, 50), (TransferKind.TRANSFER, 20), (TransferKind.BURN, 5)):
        counters = apply_activity(counters, transfer_activity_delta(kind, value))
    assert counters.mint_event_count == 1
    assert counters.transfer_event_count == 1
    assert counters.burn_event_count == 1
    assert counters.total_supply_exact == 45


def test_transfer_stats_delta_counts_volume_only_for_transfers() -> None:
    assert transfer_stats_delta(TransferKind.MINT, 9).minted_exact == 9
    assert transfer_stats_delta(TransferKind.BURN, 9).burned_exact == 9
    delta = transfer_stats_delta(TransferKind.TRANSFER, 9)
    assert delta.volume_exact == 9
    assert delta.transfers == 1
