"""Model module imports for SQLAlchemy metadata registration."""

from __future__ import annotations

import logging

from backend.db.models.account import Account
from backend.db.models.activity_log import ActivityLogEntry, ActivityLogParameter
from backend.db.models.airdrop import (
    Airdrop,
    AirdropClaim,
    AirdropClaimIndex,
    AirdropRecipient,
    LinearVestingStrategy,
    MerkleRootUpdate,
    PushAirdrop,
    PushBatchDistribution,
    StandardAirdrop,
    UserVestingData,
    VestingAirdrop,
)
from backend.db.models.asset import (
    Asset,
    AssetAccessEntry,
    AssetActivity,
    AssetBalance,
    AssetCount,
    Bond,
    CryptoCurrency,
    Deposit,
    Equity,
    Fund,
    FundWithdrawal,
    StableCoin,
    TokenizedDeposit,
)
from backend.db.models.factory import DataSource, Factory
from backend.db.models.identity import Identity, IdentityClaim, IdentityKey
from backend.db.models.settlement import Action, XvPApproval, XvPCancelVote, XvPFlow, XvPSettlement
from backend.db.models.statistics import (
    AirdropStatsData,
    AssetActivityData,
    AssetStatsData,
    PortfolioStatsData,
    VestingStatsData,
)
from backend.db.models.vault import (
    ContractCallTransaction,
    ERC20TransferTransaction,
    NativeTransferTransaction,
    Vault,
    VaultTransaction,
    VaultTransactionConfirmation,
)
from backend.db.models.yield_schedule import FixedYield, YieldPeriod

logger = logging.getLogger(__name__)

# Tables that are insert-only once written.
APPEND_ONLY_TABLES: tuple[str, ...] = (
    "asset_stats_data",
    "portfolio_stats_data",
    "asset_activity_data",
    "airdrop_stats_data",
    "vesting_stats_data",
    "activity_log_entry",
    "activity_log_parameter",
)

__all__ = [
    "APPEND_ONLY_TABLES",
    "Account",
    "Action",
    "ActivityLogEntry",
    "ActivityLogParameter",
    "Airdrop",
    "AirdropClaim",
    "AirdropClaimIndex",
    "AirdropRecipient",
    "AirdropStatsData",
    "Asset",
    "AssetAccessEntry",
    "AssetActivity",
    "AssetActivityData",
    "AssetBalance",
    "AssetCount",
    "AssetStatsData",
    "Bond",
    "ContractCallTransaction",
    "CryptoCurrency",
    "DataSource",
    "Deposit",
    "ERC20TransferTransaction",
    "Equity",
    "Factory",
    "FixedYield",
    "Fund",
    "FundWithdrawal",
    "Identity",
    "IdentityClaim",
    "IdentityKey",
    "LinearVestingStrategy",
    "MerkleRootUpdate",
    "NativeTransferTransaction",
    "PortfolioStatsData",
    "PushAirdrop",
    "PushBatchDistribution",
    "StableCoin",
    "StandardAirdrop",
    "TokenizedDeposit",
    "UserVestingData",
    "Vault",
    "VaultTransaction",
    "VaultTransactionConfirmation",
    "VestingAirdrop",
    "VestingStatsData",
    "XvPApproval",
    "XvPCancelVote",
    "XvPFlow",
    "XvPSettlement",
    "YieldPeriod",
]
