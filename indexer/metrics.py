"""Recomputed derived metrics: holder concentration and collateralization."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from indexer.numeric import percentage

TOP_HOLDERS = 5


def top_balances(balances: Iterable[int], k: int = TOP_HOLDERS) -> list[int]:
    """Select the ``k`` largest balances by repeated max-scan, without sorting."""
    remaining = list(balances)
    selected: list[int] = []
    for _ in range(min(k, len(remaining))):
        best_index = 0
        for index in range(1, len(remaining)):
            if remaining[index] > remaining[best_index]:
                best_index = index
        if remaining[best_index] <= 0:
            break
        selected.append(remaining[best_index])
        remaining[best_index] = 0
    return selected


def concentration(balances: Iterable[int], total_supply_exact: int) -> Decimal:
    """Percentage of supply held by the top holders; 0 for an empty supply."""
    if total_supply_exact == 0:
        return Decimal(0)
    return percentage(sum(top_balances(balances)), total_supply_exact)


def collateral_ratio(collateral_exact: int, total_supply_exact: int) -> Decimal:
    """``supply / collateral * 100``, defined as 100 when there is no collateral."""
    if collateral_exact == 0:
        return Decimal(100)
    return percentage(total_supply_exact, collateral_exact)


def free_collateral(collateral_exact: int, total_supply_exact: int) -> int:
    """Unbacked headroom; negative when under-collateralized."""
    return collateral_exact - total_supply_exact


@dataclass(frozen=True)
class CollateralState:
    collateral_exact: int
    free_collateral_exact: int
    collateral_ratio: Decimal


def collateral_state(collateral_exact: int, total_supply_exact: int) -> CollateralState:
    return CollateralState(
        collateral_exact=collateral_exact,
        free_collateral_exact=free_collateral(collateral_exact, total_supply_exact),
        collateral_ratio=collateral_ratio(collateral_exact, total_supply_exact),
    )


def underlying_needed(total_supply_exact: int, face_value: int, decimals: int, underlying_decimals: int) -> int:
    """Underlying exact units required to redeem the whole bond supply at face value."""
    return total_supply_exact * face_value * 10**underlying_decimals // 10**decimals


def vested_amount(total_exact: int, vesting_start: int, vesting_duration: int, cliff_duration: int, at: int) -> int:
    """Linear vesting with cliff evaluated at timestamp ``at``."""
    if at < vesting_start + cliff_duration:
        return 0
    if vesting_duration <= 0 or at >= vesting_start + vesting_duration:
        return total_exact
    return total_exact * (at - vesting_start) // vesting_duration
