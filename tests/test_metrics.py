"""Unit tests for derived concentration, collateral and vesting metrics."""

from __future__ import annotations

from decimal import Decimal

from indexer.metrics import (
    collateral_ratio,
    collateral_state,
    concentration,
    free_collateral,
    top_balances,
    underlying_needed,
    vested_amount,
)


def test_top_balances_selects_five_largest_in_descending_order() -> None:
    assert top_balances([5, 1, 9, 3, 7, 2, 8]) == [9, 8, 7, 5, 3]


def test_top_balances_handles_fewer_holders_and_ties() -> None:
    assert top_balances([4, 4]) == [4, 4]
    assert top_balances([]) == []
    assert top_balances([0, 0, 3]) == [3]


def test_concentration_is_share_of_top_holders() -> None:
    balances = [10, 10, 10, 10, 10, 50]
    assert concentration(balances, 100) == Decimal("90")


def test_concentration_of_empty_supply_is_zero() -> None:
    assert concentration([], 0) == Decimal(0)


def test_collateral_ratio_defaults_to_one_hundred_without_collateral() -> None:
    assert collateral_ratio(0, 500) == Decimal(100)
    assert collateral_ratio(0, 0) == Decimal(100)


def test_collateral_ratio_and_free_collateral() -> None:
    assert collateral_ratio(1000, 1000) == Decimal(100)
    assert collateral_ratio(1000, 250) == Decimal(25)
    assert free_collateral(1000, 250) == 750
    assert free_collateral(100, 250) == -150


def test_collateral_state_bundles_derived_values() -> None:
    state = collateral_state(2000, 500)
    assert state.collateral_exact == 2000
    assert state.free_collateral_exact == 1500
    assert state.collateral_ratio == Decimal(25)


def test_underlying_needed_converts_between_decimals() -> None:
    # 10 bonds with face value 1000 redeemed in a 6-decimal underlying.
    assert underlying_needed(10 * 10**18, 1000, 18, 6) == 10_000 * 10**6


def test_vested_amount_respects_cliff_and_duration() -> None:
    assert vested_amount(1000, 100, 400, 100, 150) == 0
    assert vested_amount(1000, 100, 400, 100, 200) == 250
    assert vested_amount(1000, 100, 400, 100, 600) == 1000
    assert vested_amount(1000, 100, 0, 0, 100) == 1000
