"""Projection tests for XvP settlements and their approval gate."""

from __future__ import annotations

import pytest

from backend.db.enums import ContractKind
from backend.db.models import Action, XvPApproval, XvPCancelVote, XvPFlow, XvPSettlement
from indexer.chain import StaticChainReader
from indexer.engine import EventIndexer, ProcessOutcome
from indexer.projectors.xvp import claim_action_id, flow_id, participant_id
from tests.utils.events import ALICE, BOB, CAROL, FACTORY, OTHER_TOKEN, TOKEN, EventStream, addr

SETTLEMENT = addr(0x8000)
HASHLOCK = "0x" + "11" * 32


def _configure(chain: StaticChainReader, *, auto_execute: bool) -> None:
    chain.set_calls(
        SETTLEMENT,
        {
            "name": "Delivery vs payment",
            "cutoffDate": 2_000_000_000,
            "autoExecute": auto_execute,
            "hashlock": HASHLOCK,
            "flows": [
                (TOKEN, ALICE, BOB, 100, 0),
                {"asset": OTHER_TOKEN, "from": BOB, "to": ALICE, "amount": 200, "externalChainId": 0},
                (TOKEN, ALICE, CAROL, 5, 0),
                ("not-an-address",),
            ],
        },
    )


def _create(indexer: EventIndexer, stream: EventStream, watched) -> XvPSettlement:
    watched(FACTORY, ContractKind.XVP_SETTLEMENT_FACTORY)
    event = stream.emit(FACTORY, "XvPSettlementCreated", settlement=SETTLEMENT, creator=CAROL)
    assert indexer.process(event) is ProcessOutcome.APPLIED
    return indexer.store.get(XvPSettlement, SETTLEMENT)


@pytest.fixture
def settlement(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> XvPSettlement:
    _configure(chain, auto_execute=False)
    return _create(indexer, stream, watched)


def _from_participant(stream: EventStream, name: str, sender: str):
    return stream.emit(SETTLEMENT, name, sender=sender)


def test_settlement_seeds_flows_and_participants(indexer: EventIndexer, settlement: XvPSettlement) -> None:
    assert settlement.name == "Delivery vs payment"
    assert settlement.cutoff_date == 2_000_000_000
    assert settlement.auto_execute is False
    assert settlement.hashlock == HASHLOCK
    assert settlement.factory_id == FACTORY

    flows = indexer.store.find(XvPFlow, settlement_id=SETTLEMENT)
    assert [flow.id for flow in flows] == [flow_id(SETTLEMENT, 0), flow_id(SETTLEMENT, 1), flow_id(SETTLEMENT, 2)]
    assert indexer.store.get(XvPFlow, flow_id(SETTLEMENT, 1)).amount_exact == 200

    approvals = indexer.store.find(XvPApproval, settlement_id=SETTLEMENT)
    assert sorted(approval.account_id for approval in approvals) == sorted([ALICE, BOB])
    assert not any(approval.approved for approval in approvals)
    assert indexer.subscriptions.kind_for(SETTLEMENT) is ContractKind.XVP_SETTLEMENT


def test_claim_action_appears_once_all_participants_approve(indexer: EventIndexer, settlement: XvPSettlement, stream: EventStream) -> None:
    indexer.process(_from_participant(stream, "XvPSettlementApproved", ALICE))
    assert indexer.store.get(Action, claim_action_id(SETTLEMENT)) is None

    approve_bob = _from_participant(stream, "XvPSettlementApproved", BOB)
    indexer.process(approve_bob)
    action = indexer.store.get(Action, claim_action_id(SETTLEMENT))
    assert action is not None
    assert sorted(action.executors) == sorted([ALICE, BOB])
    assert action.activate_at == approve_bob.block_timestamp
    assert action.expires_at == 2_000_000_000
    assert action.executed is False

    indexer.process(_from_participant(stream, "XvPSettlementApprovalRevoked", ALICE))
    assert indexer.store.get(Action, claim_action_id(SETTLEMENT)) is None
    approval = indexer.store.get(XvPApproval, participant_id(SETTLEMENT, ALICE))
    assert approval.approved is False

    indexer.process(_from_participant(stream, "XvPSettlementApproved", ALICE))
    indexer.process(_from_participant(stream, "XvPSettlementClaimed", BOB))
    action = indexer.store.get(Action, claim_action_id(SETTLEMENT))
    assert action.executed is True
    assert action.executed_by == BOB
    assert settlement.claimed is True


def test_auto_execute_settlement_creates_no_action(indexer: EventIndexer, chain: StaticChainReader, stream: EventStream, watched) -> None:
    _configure(chain, auto_execute=True)
    settlement = _create(indexer, stream, watched)
    indexer.process(_from_participant(stream, "XvPSettlementApproved", ALICE))
    indexer.process(_from_participant(stream, "XvPSettlementApproved", BOB))
    assert indexer.store.get(Action, claim_action_id(SETTLEMENT)) is None

    indexer.process(_from_participant(stream, "XvPSettlementExecuted", BOB))
    assert settlement.claimed is True


def test_cancel_votes_are_counted_per_participant(indexer: EventIndexer, settlement: XvPSettlement, stream: EventStream) -> None:
    indexer.process(_from_participant(stream, "XvPSettlementCancelVoteCast", ALICE))
    indexer.process(_from_participant(stream, "XvPSettlementCancelVoteCast", ALICE))
    indexer.process(_from_participant(stream, "XvPSettlementCancelVoteCast", BOB))
    assert settlement.cancel_votes_count == 2

    indexer.process(_from_participant(stream, "XvPSettlementCancelVoteWithdrawn", ALICE))
    assert settlement.cancel_votes_count == 1
    assert indexer.store.get(XvPCancelVote, participant_id(SETTLEMENT, ALICE)).active is False

    indexer.process(_from_participant(stream, "XvPSettlementCancelled", BOB))
    assert settlement.cancelled is True


def test_secret_reveal(indexer: EventIndexer, settlement: XvPSettlement, stream: EventStream) -> None:
    secret = "0x" + "22" * 32
    indexer.process(stream.emit(SETTLEMENT, "XvPSettlementSecretRevealed", revealer=ALICE, secret=secret))
    assert settlement.secret == secret
    assert settlement.secret_revealed is True


def test_events_for_unindexed_settlement_are_skipped(indexer: EventIndexer, stream: EventStream, watched) -> None:
    watched(SETTLEMENT, ContractKind.XVP_SETTLEMENT)
    assert indexer.process(_from_participant(stream, "XvPSettlementApproved", ALICE)) is ProcessOutcome.SKIPPED
