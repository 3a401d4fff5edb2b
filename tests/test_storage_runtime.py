"""
Storage & Runtime Test Suite

Coverage:
  - Proposal records: expiry, status replacement, serialization
  - GovernanceStore: tables, snapshot / restore, state root, export
  - Runtime transactions: one clock reading per call, commit, rollback,
    event buffering, re-entrancy
  - Events: serialization and in-memory sink
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from qvote.clock import ManualClock
from qvote.events import (
    InMemoryEventSink,
    ProposalStarted,
    ProposalsVoted,
    ProposalVoted,
    TokensUnreserved,
    VotingEnded,
)
from qvote.exceptions import NotEnoughBalanceError, TransactionError
from qvote.ledger import AccountBalance, InMemoryLedger
from qvote.runtime import Runtime
from qvote.storage import GovernanceStore
from qvote.types import ProposalRecord, ProposalStatus, Vote


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ALICE = "alice"
BOB = "bob"
TEXT_HASH = "ab" * 32


def make_record(index=1, proposer=ALICE, end_time=101, status=ProposalStatus.NOT_STARTED):
    return ProposalRecord(
        index=index,
        text_hash=TEXT_HASH,
        proposer=proposer,
        end_time=end_time,
        status=status,
    )


def make_runtime(start=1, voting_period=100, **balances):
    ledger = InMemoryLedger({
        who: AccountBalance(free=free) for who, free in balances.items()
    })
    return Runtime(ledger=ledger, clock=ManualClock(start), voting_period=voting_period)


# ══════════════════════════════════════════════════════════════════════
#  RECORDS
# ══════════════════════════════════════════════════════════════════════


class TestProposalRecord:

    def test_defaults_to_not_started(self):
        record = make_record()
        assert record.status == ProposalStatus.NOT_STARTED
        assert not record.is_active

    def test_expiry_is_inclusive(self):
        record = make_record(end_time=101)
        assert not record.is_expired(100)
        assert record.is_expired(101)
        assert record.is_expired(250)

    def test_with_status_returns_new_record(self):
        record = make_record()
        started = record.with_status(ProposalStatus.IN_PROGRESS)
        assert started.is_active
        assert record.status == ProposalStatus.NOT_STARTED
        assert started.end_time == record.end_time

    def test_to_dict(self):
        d = make_record(status=ProposalStatus.COMPLETED).to_dict()
        assert d["status"] == "COMPLETED"
        assert d["textHash"] == TEXT_HASH
        assert ProposalRecord.from_dict(d) == make_record(status=ProposalStatus.COMPLETED)


# ══════════════════════════════════════════════════════════════════════
#  STORE
# ══════════════════════════════════════════════════════════════════════


class TestGovernanceStore:

    def test_voters(self):
        store = GovernanceStore()
        store.insert_voter(ALICE)
        assert store.contains_voter(ALICE)
        assert not store.contains_voter(BOB)
        assert store.voters() == [ALICE]

    def test_proposal_count_tracks_inserts(self):
        store = GovernanceStore()
        store.insert_proposal(make_record(1))
        store.insert_proposal(make_record(2))
        assert store.proposal_count == 2
        assert store.contains_proposal(2)

    def test_update_proposal(self):
        store = GovernanceStore()
        store.insert_proposal(make_record(1))
        store.update_proposal(make_record(1, status=ProposalStatus.IN_PROGRESS))
        assert store.get_proposal(1).is_active
        assert store.proposal_count == 1

    def test_update_unknown_is_ignored(self):
        store = GovernanceStore()
        store.update_proposal(make_record(7))
        assert store.get_proposal(7) is None
        assert store.proposal_count == 0

    def test_iter_proposals_ascending(self):
        store = GovernanceStore()
        for index in (3, 1, 2):
            store.insert_proposal(make_record(index))
        assert [r.index for r in store.iter_proposals()] == [1, 2, 3]

    def test_aye_votes(self):
        store = GovernanceStore()
        assert not store.has_aye_vote(1, ALICE)
        assert store.get_aye_vote(1, ALICE) == 0
        store.set_aye_vote(1, ALICE, 7)
        store.set_aye_vote(1, BOB, 6)
        store.set_aye_vote(2, BOB, 9)
        assert store.has_aye_vote(1, ALICE)
        assert dict(store.iter_aye_votes(1)) == {ALICE: 7, BOB: 6}
        assert dict(store.iter_aye_votes(3)) == {}

    def test_snapshot_restore(self):
        store = GovernanceStore()
        store.insert_voter(ALICE)
        store.insert_proposal(make_record(1))
        snapshot = store.take_snapshot()
        root = store.state_root()

        store.insert_voter(BOB)
        store.insert_proposal(make_record(2))
        store.set_aye_vote(1, ALICE, 3)
        assert store.state_root() != root

        store.restore_snapshot(snapshot)
        assert not store.contains_voter(BOB)
        assert store.proposal_count == 1
        assert dict(store.iter_aye_votes(1)) == {}
        assert store.state_root() == root

    def test_state_root_ignores_insertion_order(self):
        a, b = GovernanceStore(), GovernanceStore()
        a.insert_voter(ALICE)
        a.insert_voter(BOB)
        b.insert_voter(BOB)
        b.insert_voter(ALICE)
        a.set_aye_vote(1, ALICE, 2)
        a.set_aye_vote(1, BOB, 3)
        b.set_aye_vote(1, BOB, 3)
        b.set_aye_vote(1, ALICE, 2)
        assert a.state_root() == b.state_root()
        assert len(a.state_root()) == 64

    def test_export(self):
        store = GovernanceStore()
        store.insert_voter(ALICE)
        store.insert_proposal(make_record(1, status=ProposalStatus.IN_PROGRESS))
        store.set_aye_vote(1, ALICE, 7)
        data = store.to_dict()
        assert data["proposalCount"] == 1
        assert data["ayeVotes"] == [{"index": 1, "voter": ALICE, "weight": 7}]

        restored = GovernanceStore.from_dict(data)
        assert restored.state_root() == store.state_root() == data["stateRoot"]
        assert restored.get_proposal(1).is_active


# ══════════════════════════════════════════════════════════════════════
#  RUNTIME
# ══════════════════════════════════════════════════════════════════════


class TestRuntimeTransaction:

    def test_clock_read_once(self):
        runtime = make_runtime(start=10)
        with runtime.transaction("inspect") as tx:
            runtime.clock.advance(5)
            assert runtime.now() == 10
            assert tx.now == 10
        assert runtime.now() == 15

    def test_commit_applies_ledger_and_events(self):
        runtime = make_runtime(alice=95)
        with runtime.transaction("reserve"):
            runtime.ledger.reserve(ALICE, 50)
            runtime.deposit_event(ProposalStarted(index=1))
            assert runtime.host_ledger.free_balance(ALICE) == 95
            assert len(runtime.event_sink) == 0
        assert runtime.host_ledger.free_balance(ALICE) == 45
        assert runtime.event_sink.events == [ProposalStarted(index=1)]

    def test_rollback_on_error(self):
        runtime = make_runtime(alice=95)
        root = runtime.store.state_root()
        with pytest.raises(NotEnoughBalanceError):
            with runtime.transaction("failing"):
                runtime.store.insert_voter(BOB)
                runtime.ledger.set_free_balance(ALICE, 0)
                runtime.deposit_event(ProposalStarted(index=1))
                raise NotEnoughBalanceError()
        assert runtime.store.state_root() == root
        assert not runtime.store.contains_voter(BOB)
        assert runtime.ledger.free_balance(ALICE) == 95
        assert len(runtime.event_sink) == 0
        assert not runtime.in_transaction

    def test_rollback_on_unexpected_error(self):
        runtime = make_runtime(alice=95)
        with pytest.raises(KeyError):
            with runtime.transaction("failing"):
                runtime.ledger.set_free_balance(ALICE, 1)
                raise KeyError("boom")
        assert runtime.ledger.free_balance(ALICE) == 95

    def test_reentrant_transaction_rejected(self):
        runtime = make_runtime()
        with runtime.transaction("outer"):
            with pytest.raises(TransactionError, match="outer"):
                with runtime.transaction("inner"):
                    pass
            assert runtime.in_transaction

    def test_event_outside_transaction_rejected(self):
        runtime = make_runtime()
        with pytest.raises(TransactionError):
            runtime.deposit_event(ProposalStarted(index=1))

    def test_ledger_outside_transaction_is_host(self):
        runtime = make_runtime()
        assert runtime.ledger is runtime.host_ledger

    def test_negative_voting_period_rejected(self):
        with pytest.raises(ValueError):
            make_runtime(voting_period=-1)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════


class TestEvents:

    def test_to_dict(self):
        assert ProposalVoted(index=1, choice=Vote.AYE).to_dict() == {
            "event": "ProposalVoted", "index": 1, "choice": "AYE",
        }
        assert ProposalsVoted(indices=(1, 2)).to_dict()["indices"] == [1, 2]
        assert VotingEnded(winner=None).to_dict() == {"event": "VotingEnded", "winner": None}
        assert TokensUnreserved(who=ALICE, amount=50, updated_balance=70).to_dict()[
            "updatedBalance"
        ] == 70

    def test_sink(self):
        sink = InMemoryEventSink()
        assert sink.last() is None
        sink.deposit(ProposalStarted(index=1))
        sink.deposit(VotingEnded(winner=1))
        assert sink.last() == VotingEnded(winner=1)
        assert sink.of_type(ProposalStarted) == [ProposalStarted(index=1)]
        sink.clear()
        assert len(sink) == 0
