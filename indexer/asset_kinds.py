"""Asset-kind descriptors that parameterize the generic asset projector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from backend.db.enums import AssetType, ContractKind
from backend.db.models import Asset, Bond, CryptoCurrency, Deposit, Equity, Fund, StableCoin, TokenizedDeposit


@dataclass(frozen=True)
class AssetKind:
    """What a token family supports and how its record is seeded."""

    asset_type: AssetType
    contract_kind: ContractKind
    factory_kind: ContractKind
    created_event: str
    model: type[Asset]
    pausable: bool = True
    custodian: bool = True
    has_collateral: bool = False
    allowlist: bool = False
    class_function: str | None = None
    category_function: str | None = None

    @property
    def initial_blocked(self) -> bool:
        """Default blocked state of a fresh balance for an unlisted holder."""
        return self.allowlist


ASSET_KINDS: tuple[AssetKind, ...] = (
    AssetKind(
        asset_type=AssetType.BOND,
        contract_kind=ContractKind.BOND,
        factory_kind=ContractKind.BOND_FACTORY,
        created_event="BondCreated",
        model=Bond,
    ),
    AssetKind(
        asset_type=AssetType.EQUITY,
        contract_kind=ContractKind.EQUITY,
        factory_kind=ContractKind.EQUITY_FACTORY,
        created_event="EquityCreated",
        model=Equity,
        class_function="equityClass",
        category_function="equityCategory",
    ),
    AssetKind(
        asset_type=AssetType.FUND,
        contract_kind=ContractKind.FUND,
        factory_kind=ContractKind.FUND_FACTORY,
        created_event="FundCreated",
        model=Fund,
        class_function="fundClass",
        category_function="fundCategory",
    ),
    AssetKind(
        asset_type=AssetType.DEPOSIT,
        contract_kind=ContractKind.DEPOSIT,
        factory_kind=ContractKind.DEPOSIT_FACTORY,
        created_event="DepositCreated",
        model=Deposit,
        has_collateral=True,
        allowlist=True,
    ),
    AssetKind(
        asset_type=AssetType.STABLECOIN,
        contract_kind=ContractKind.STABLECOIN,
        factory_kind=ContractKind.STABLECOIN_FACTORY,
        created_event="StableCoinCreated",
        model=StableCoin,
        has_collateral=True,
    ),
    AssetKind(
        asset_type=AssetType.CRYPTOCURRENCY,
        contract_kind=ContractKind.CRYPTOCURRENCY,
        factory_kind=ContractKind.CRYPTOCURRENCY_FACTORY,
        created_event="CryptoCurrencyCreated",
        model=CryptoCurrency,
        pausable=False,
        custodian=False,
    ),
    AssetKind(
        asset_type=AssetType.TOKENIZED_DEPOSIT,
        contract_kind=ContractKind.TOKENIZED_DEPOSIT,
        factory_kind=ContractKind.TOKENIZED_DEPOSIT_FACTORY,
        created_event="TokenizedDepositCreated",
        model=TokenizedDeposit,
        has_collateral=True,
        allowlist=True,
    ),
)

KIND_BY_ASSET_TYPE: Mapping[AssetType, AssetKind] = {kind.asset_type: kind for kind in ASSET_KINDS}
