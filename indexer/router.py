"""Static routing table from (contract kind, event name) to projector handler."""

from __future__ import annotations

from functools import partial
import logging
from typing import Callable, Mapping

from backend.db.enums import ContractKind
from indexer.asset_kinds import ASSET_KINDS, AssetKind
from indexer.context import ProjectionContext
from indexer.projectors import airdrops, assets, bond, factories, fixed_yield, fund, identity, vault, xvp

logger = logging.getLogger(__name__)

Handler = Callable[[ProjectionContext], None]
Routes = Mapping[ContractKind, Mapping[str, Handler]]


def _asset_routes(kind: AssetKind) -> dict[str, Handler]:
    routes: dict[str, Handler] = {
        "Transfer": partial(assets.handle_transfer, kind=kind),
        "Approval": partial(assets.handle_approval, kind=kind),
        "RoleGranted": partial(assets.handle_role_granted, kind=kind),
        "RoleRevoked": partial(assets.handle_role_revoked, kind=kind),
    }
    if kind.pausable:
        routes["Paused"] = partial(assets.handle_paused, kind=kind)
        routes["Unpaused"] = partial(assets.handle_unpaused, kind=kind)
    if kind.custodian:
        routes["Clawback"] = partial(assets.handle_clawback, kind=kind)
        routes["TokensFrozen"] = partial(assets.handle_tokens_frozen, kind=kind)
        if kind.allowlist:
            routes["UserAllowed"] = partial(assets.handle_user_allowed, kind=kind)
            routes["UserDisallowed"] = partial(assets.handle_user_disallowed, kind=kind)
        else:
            routes["UserBlocked"] = partial(assets.handle_user_blocked, kind=kind)
            routes["UserUnblocked"] = partial(assets.handle_user_unblocked, kind=kind)
    if kind.has_collateral:
        routes["CollateralUpdated"] = partial(assets.handle_collateral_updated, kind=kind)
    return routes


def build_routes() -> Routes:
    routes: dict[ContractKind, dict[str, Handler]] = {}
    for kind in ASSET_KINDS:
        routes[kind.contract_kind] = _asset_routes(kind)
        routes[kind.factory_kind] = {kind.created_event: partial(factories.handle_asset_created, kind=kind)}

    routes[ContractKind.BOND].update(
        {
            "BondMatured": bond.handle_bond_matured,
            "BondRedeemed": bond.handle_bond_redeemed,
            "UnderlyingAssetTopUp": bond.handle_underlying_top_up,
            "UnderlyingAssetWithdrawn": bond.handle_underlying_withdrawn,
        }
    )
    routes[ContractKind.FUND].update(
        {
            "ManagementFeeCollected": fund.handle_management_fee_collected,
            "PerformanceFeeCollected": fund.handle_performance_fee_collected,
            "TokenWithdrawn": fund.handle_token_withdrawn,
        }
    )

    routes[ContractKind.FIXED_YIELD_FACTORY] = {"FixedYieldCreated": factories.handle_fixed_yield_created}
    routes[ContractKind.FIXED_YIELD] = {
        "YieldClaimed": fixed_yield.handle_yield_claimed,
        "UnderlyingAssetTopUp": fixed_yield.handle_underlying_top_up,
        "UnderlyingAssetWithdrawn": fixed_yield.handle_underlying_withdrawn,
    }

    routes[ContractKind.AIRDROP_FACTORY] = {
        "StandardAirdropDeployed": factories.handle_standard_airdrop_deployed,
        "VestingAirdropDeployed": factories.handle_vesting_airdrop_deployed,
        "PushAirdropDeployed": factories.handle_push_airdrop_deployed,
    }
    claim_routes: dict[str, Handler] = {
        "Claimed": airdrops.handle_claimed,
        "BatchClaimed": airdrops.handle_batch_claimed,
        "TokensWithdrawn": airdrops.handle_tokens_withdrawn,
    }
    routes[ContractKind.STANDARD_AIRDROP] = dict(claim_routes)
    routes[ContractKind.VESTING_AIRDROP] = dict(claim_routes)
    routes[ContractKind.PUSH_AIRDROP] = {
        **claim_routes,
        "TokensDistributed": airdrops.handle_tokens_distributed,
        "BatchDistributed": airdrops.handle_batch_distributed,
        "MerkleRootUpdated": airdrops.handle_merkle_root_updated,
        "DistributionCapUpdated": airdrops.handle_distribution_cap_updated,
    }
    routes[ContractKind.LINEAR_VESTING_STRATEGY] = {"VestingInitialized": airdrops.handle_vesting_initialized}

    routes[ContractKind.VAULT_FACTORY] = {"VaultCreated": factories.handle_vault_created}
    routes[ContractKind.VAULT] = {
        "Paused": vault.handle_paused,
        "Unpaused": vault.handle_unpaused,
        "Deposit": vault.handle_deposit,
        "RequirementChanged": vault.handle_requirement_changed,
        "RoleGranted": vault.handle_role_granted,
        "RoleRevoked": vault.handle_role_revoked,
        "SubmitTransaction": vault.handle_submit_transaction,
        "SubmitERC20TransferTransaction": vault.handle_submit_erc20_transfer,
        "SubmitContractCallTransaction": vault.handle_submit_contract_call,
        "ConfirmTransaction": vault.handle_confirm_transaction,
        "RevokeConfirmation": vault.handle_revoke_confirmation,
        "ExecuteTransaction": vault.handle_execute_transaction,
    }

    routes[ContractKind.XVP_SETTLEMENT_FACTORY] = {"XvPSettlementCreated": factories.handle_settlement_created}
    routes[ContractKind.XVP_SETTLEMENT] = {
        "XvPSettlementApproved": xvp.handle_approved,
        "XvPSettlementApprovalRevoked": xvp.handle_approval_revoked,
        "XvPSettlementClaimed": xvp.handle_claimed,
        "XvPSettlementExecuted": xvp.handle_claimed,
        "XvPSettlementCancelled": xvp.handle_cancelled,
        "XvPSettlementCancelVoteCast": xvp.handle_cancel_vote_cast,
        "XvPSettlementCancelVoteWithdrawn": xvp.handle_cancel_vote_withdrawn,
        "XvPSettlementSecretRevealed": xvp.handle_secret_revealed,
    }

    routes[ContractKind.IDENTITY_FACTORY] = {
        "IdentityCreated": factories.handle_identity_created,
        "TokenIdentityCreated": factories.handle_token_identity_created,
    }
    routes[ContractKind.IDENTITY] = {
        "KeyAdded": identity.handle_key_added,
        "KeyRemoved": identity.handle_key_removed,
        "ClaimAdded": identity.handle_claim_added,
        "ClaimChanged": identity.handle_claim_changed,
        "ClaimRemoved": identity.handle_claim_removed,
        "ClaimRevoked": identity.handle_claim_revoked,
    }
    return routes


def resolve(routes: Routes, kind: ContractKind, event_name: str) -> Handler | None:
    return routes.get(kind, {}).get(event_name)
