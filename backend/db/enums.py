"""Enum contracts shared by the entity graph schema and the projection core."""

from __future__ import annotations

import enum
import logging

from sqlalchemy import Enum as SAEnum

logger = logging.getLogger(__name__)


class AssetType(str, enum.Enum):
    """Asset family of a tokenized asset."""

    BOND = "BOND"
    EQUITY = "EQUITY"
    FUND = "FUND"
    DEPOSIT = "DEPOSIT"
    STABLECOIN = "STABLECOIN"
    CRYPTOCURRENCY = "CRYPTOCURRENCY"
    TOKENIZED_DEPOSIT = "TOKENIZED_DEPOSIT"


class ContractKind(str, enum.Enum):
    """Contract interface an address is watched with."""

    BOND = "BOND"
    EQUITY = "EQUITY"
    FUND = "FUND"
    DEPOSIT = "DEPOSIT"
    STABLECOIN = "STABLECOIN"
    CRYPTOCURRENCY = "CRYPTOCURRENCY"
    TOKENIZED_DEPOSIT = "TOKENIZED_DEPOSIT"
    FIXED_YIELD = "FIXED_YIELD"
    STANDARD_AIRDROP = "STANDARD_AIRDROP"
    VESTING_AIRDROP = "VESTING_AIRDROP"
    PUSH_AIRDROP = "PUSH_AIRDROP"
    LINEAR_VESTING_STRATEGY = "LINEAR_VESTING_STRATEGY"
    VAULT = "VAULT"
    XVP_SETTLEMENT = "XVP_SETTLEMENT"
    IDENTITY = "IDENTITY"
    BOND_FACTORY = "BOND_FACTORY"
    EQUITY_FACTORY = "EQUITY_FACTORY"
    FUND_FACTORY = "FUND_FACTORY"
    DEPOSIT_FACTORY = "DEPOSIT_FACTORY"
    STABLECOIN_FACTORY = "STABLECOIN_FACTORY"
    CRYPTOCURRENCY_FACTORY = "CRYPTOCURRENCY_FACTORY"
    TOKENIZED_DEPOSIT_FACTORY = "TOKENIZED_DEPOSIT_FACTORY"
    FIXED_YIELD_FACTORY = "FIXED_YIELD_FACTORY"
    AIRDROP_FACTORY = "AIRDROP_FACTORY"
    VAULT_FACTORY = "VAULT_FACTORY"
    XVP_SETTLEMENT_FACTORY = "XVP_SETTLEMENT_FACTORY"
    IDENTITY_FACTORY = "IDENTITY_FACTORY"


class AirdropType(str, enum.Enum):
    """Airdrop distribution variant."""

    STANDARD = "STANDARD"
    VESTING = "VESTING"
    PUSH = "PUSH"


class VaultTransactionType(str, enum.Enum):
    """Multisig vault transaction variant."""

    NATIVE_TRANSFER = "NATIVE_TRANSFER"
    ERC20_TRANSFER = "ERC20_TRANSFER"
    CONTRACT_CALL = "CONTRACT_CALL"


class TransferKind(str, enum.Enum):
    """Classification of a fungible Transfer event."""

    MINT = "MINT"
    BURN = "BURN"
    TRANSFER = "TRANSFER"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


asset_type_enum = SAEnum(
    AssetType,
    name="asset_type_enum",
    values_callable=_enum_values,
    validate_strings=True,
)
contract_kind_enum = SAEnum(
    ContractKind,
    name="contract_kind_enum",
    values_callable=_enum_values,
    validate_strings=True,
)
airdrop_type_enum = SAEnum(
    AirdropType,
    name="airdrop_type_enum",
    values_callable=_enum_values,
    validate_strings=True,
)
vault_transaction_type_enum = SAEnum(
    VaultTransactionType,
    name="vault_transaction_type_enum",
    values_callable=_enum_values,
    validate_strings=True,
)
