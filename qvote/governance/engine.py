"""
Quadratic Voting Engine

Public entry point of the governance core. Wires the components to one
shared ``Runtime`` and exposes every call as an atomic dispatchable:

    register_voter          root      → VoterRegistered
    create_proposal         signed    → NewProposalCreated
    start_proposal          signed    → ProposalStarted
    reserve_tokens          signed    → TokensReserved
    unreserve_tokens        signed    → TokensUnreserved
    vote_proposal           signed    → ProposalVoted | VotingEnded
    vote_multiple_proposals signed    → ProposalsVoted* | VotingEnded

A failed call leaves storage, balances and the event sink untouched.
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple, Union

from ..clock import Clock
from ..config import QVoteConfig
from ..events import EventSink, GovernanceEvent, InMemoryEventSink
from ..ledger import Ledger
from ..logger import get_logger
from ..origin import Origin
from ..runtime import Runtime, dispatchable
from ..storage import GovernanceStore
from ..types import ProposalRecord, ProposalStatus, Vote
from .economics import Economics
from .proposals import ProposalLedger
from .registry import VoterRegistry
from .tally import BallotTally

logger = get_logger(__name__)


class QuadraticVoting:
    """
    Governance core facade.

    Args:
        ledger:         Host balance store
        clock:          Logical time source
        voting_period:  Blocks from proposal creation to deadline
        store:          Existing table store (fresh if omitted)
        event_sink:     Consumer of committed events (in-memory if omitted)
    """

    def __init__(
        self,
        ledger: Ledger,
        clock: Clock,
        voting_period: Optional[int] = None,
        store: Optional[GovernanceStore] = None,
        event_sink: Optional[EventSink] = None,
    ):
        if voting_period is None:
            voting_period = QVoteConfig().governance.voting_period
        self.runtime = Runtime(
            ledger=ledger,
            clock=clock,
            store=store,
            event_sink=event_sink,
            voting_period=voting_period,
        )
        self.registry = VoterRegistry(self.runtime)
        self.proposals = ProposalLedger(self.runtime, self.registry)
        self.tally = BallotTally(self.runtime, self.registry, self.proposals)
        self.economics = Economics(self.runtime, self.registry)
        logger.debug(f"Governance engine ready (voting period {voting_period} blocks)")

    @classmethod
    def from_config(
        cls,
        config: QVoteConfig,
        ledger: Ledger,
        clock: Clock,
        event_sink: Optional[EventSink] = None,
        store: Optional[GovernanceStore] = None,
    ) -> "QuadraticVoting":
        config.validate()
        return cls(
            ledger=ledger,
            clock=clock,
            voting_period=config.governance.voting_period,
            store=store,
            event_sink=event_sink,
        )

    # =====================================================================
    #  Dispatchable calls
    # =====================================================================

    @dispatchable
    def register_voter(self, origin: Origin, voter: Hashable, fee: int) -> int:
        return self.registry.register_voter(origin, voter, fee)

    @dispatchable
    def create_proposal(self, origin: Origin, text_hash: Union[str, bytes]) -> int:
        return self.proposals.create_proposal(origin, text_hash)

    @dispatchable
    def start_proposal(self, origin: Origin, index: int, fee: int) -> None:
        self.proposals.start_proposal(origin, index, fee)

    @dispatchable
    def reserve_tokens(self, origin: Origin, amount: int) -> None:
        self.economics.reserve_tokens(origin, amount)

    @dispatchable
    def unreserve_tokens(self, origin: Origin, amount: int) -> int:
        return self.economics.unreserve_tokens(origin, amount)

    @dispatchable
    def vote_proposal(self, origin: Origin, index: int, choice: Vote) -> Optional[int]:
        return self.tally.vote_proposal(origin, index, choice)

    @dispatchable
    def vote_multiple_proposals(
        self,
        origin: Origin,
        items: Sequence[Tuple[int, int, Vote]],
    ) -> Optional[int]:
        return self.tally.vote_multiple_proposals(origin, items)

    # =====================================================================
    #  Queries
    # =====================================================================

    def is_voter_registered(self, who: Hashable) -> bool:
        return self.registry.is_registered(who)

    def get_proposal(self, index: int) -> Optional[ProposalRecord]:
        return self.proposals.get(index)

    def get_proposal_status(self, index: int) -> Optional[ProposalStatus]:
        record = self.proposals.get(index)
        return record.status if record else None

    def get_proposal_end_time(self, index: int) -> Optional[int]:
        record = self.proposals.get(index)
        return record.end_time if record else None

    def is_proposal_registered(self, index: int) -> bool:
        return self.proposals.is_registered(index)

    def is_proposal_active(self, index: int) -> bool:
        return self.proposals.is_active(index)

    def voter_has_voted(self, index: int, who: Hashable) -> bool:
        return self.tally.has_voted(index, who)

    def get_aye_votes(self, index: int, who: Hashable) -> int:
        return self.tally.aye_weight(index, who)

    def get_voter_balance(self, who: Hashable) -> int:
        return self.economics.free_balance(who)

    def get_reserved_balance(self, who: Hashable) -> int:
        return self.economics.reserved_balance(who)

    @property
    def proposal_count(self) -> int:
        return self.proposals.count

    def proposal_tally(self, index: int) -> int:
        return self.tally.proposal_total(index)

    def get_winner(self) -> Optional[int]:
        """Current leader, computed without ending voting."""
        return self.tally.compute_winner().winner

    @property
    def events(self) -> List[GovernanceEvent]:
        sink = self.runtime.event_sink
        if isinstance(sink, InMemoryEventSink):
            return sink.events
        raise TypeError(f"{type(sink).__name__} does not retain events")

    def state_root(self) -> str:
        return self.runtime.store.state_root()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "votingPeriod": self.runtime.voting_period,
            "now": self.runtime.now(),
            "store": self.runtime.store.to_dict(),
            "winner": self.get_winner(),
        }

    def __repr__(self) -> str:
        return (
            f"<QuadraticVoting voters={len(self.runtime.store.voters())} "
            f"proposals={self.proposal_count}>"
        )
