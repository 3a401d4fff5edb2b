"""
Ballot Tally — quadratic voting engine

Implements:
  - Aye weight = floor(sqrt(reserved tokens committed))
  - One aye record per (proposal, voter); records only ever grow
  - Nay / Abstain are accepted but not tallied
  - Lazy deadline: the first vote call that observes ``end_time <= now``
    ends voting and selects a winner
  - Batch voting across several proposals, all-or-nothing
"""

from dataclasses import dataclass
from typing import Hashable, Iterable, List, Optional, Sequence, Tuple

from ..arithmetic import checked_add, checked_sum, ensure_amount, vote_weight
from ..events import ProposalVoted, ProposalsVoted, VotingEnded
from ..exceptions import (
    AtLeastOneProposalNotRegisteredOrNotActiveError,
    InvalidValueError,
    NotEnoughReservedTokensError,
    ProposalNotActiveError,
    VoterAlreadyVotedError,
)
from ..logger import get_logger
from ..origin import Origin, ensure_signed
from ..runtime import Runtime
from ..types import ProposalRecord, Vote
from .proposals import ProposalLedger
from .registry import VoterRegistry

logger = get_logger(__name__)


def coerce_vote(choice) -> Vote:
    """Map an int or ``Vote`` to ``Vote``; bools and unknown values are rejected."""
    if isinstance(choice, bool):
        raise InvalidValueError(f"Invalid vote choice: {choice!r}")
    try:
        return Vote(choice)
    except (TypeError, ValueError) as e:
        raise InvalidValueError(f"Invalid vote choice: {choice!r}") from e


@dataclass(frozen=True)
class BallotItem:
    """One entry of a batch vote."""
    index: int
    amount: int
    choice: Vote

    @classmethod
    def coerce(cls, item) -> "BallotItem":
        if isinstance(item, cls):
            return item
        try:
            index, amount, choice = item
        except (TypeError, ValueError) as e:
            raise InvalidValueError(
                f"Ballot item must be (index, amount, choice), got {item!r}"
            ) from e
        return cls(index=index, amount=amount, choice=coerce_vote(choice))


@dataclass(frozen=True)
class WinnerSelection:
    """Outcome of a full scan. ``winner`` is None when no proposal has votes."""
    winner: Optional[int]
    total: int


def select_winner(totals: Iterable[Tuple[int, int]]) -> Tuple[Optional[int], int]:
    """
    Pick the winner from ``(index, total)`` pairs in ascending index order.

    The running maximum is replaced only on a strictly greater total, so
    the earliest proposal keeps any tie. A zero total never wins.
    """
    max_total = 0
    winner = None
    for index, total in totals:
        if total > max_total:
            max_total = total
            winner = index
    return winner, max_total


class BallotTally:
    """Owns the ``aye_votes`` table."""

    def __init__(self, runtime: Runtime, registry: VoterRegistry, proposals: ProposalLedger):
        self._runtime = runtime
        self._registry = registry
        self._proposals = proposals

    # ── Queries ───────────────────────────────────────────────────────

    def has_voted(self, index: int, who: Hashable) -> bool:
        return self._runtime.store.has_aye_vote(index, who)

    def aye_weight(self, index: int, who: Hashable) -> int:
        return self._runtime.store.get_aye_vote(index, who)

    def proposal_total(self, index: int) -> int:
        return checked_sum(w for _, w in self._runtime.store.iter_aye_votes(index))

    def compute_winner(self) -> WinnerSelection:
        """
        Deterministic full scan over every proposal, in ascending index order.

        Cost is linear in proposals × voters per proposal.
        """
        totals = tuple(
            (record.index, self.proposal_total(record.index))
            for record in self._runtime.store.iter_proposals()
        )
        winner, total = select_winner(totals)
        return WinnerSelection(winner=winner, total=total)

    # ── Single vote ───────────────────────────────────────────────────

    def vote_proposal(self, origin: Origin, index: int, choice: Vote) -> Optional[int]:
        """
        Cast a vote on one proposal.

        If the proposal's deadline has passed, the call instead completes
        that proposal, selects a winner over all proposals and returns it,
        without recording a vote.

        Returns:
            The winner when the call ended voting, otherwise None.

        Raises:
            NotRegisteredVoterError, ProposalNotFoundError,
            ProposalNotActiveError, NotEnoughReservedTokensError,
            VoterAlreadyVotedError, InvalidValueError
        """
        who = ensure_signed(origin)
        self._registry.ensure_registered(who)
        record = self._proposals.require(index)
        if not record.is_active:
            raise ProposalNotActiveError(
                f"Proposal #{index} is {record.status.name}, not IN_PROGRESS"
            )
        choice = coerce_vote(choice)

        now = self._runtime.now()
        if record.is_expired(now):
            self._proposals.mark_completed(index)
            return self._end_voting(trigger=record, now=now)

        ledger = self._runtime.ledger
        reserved = ledger.reserved_balance(who)
        if reserved <= 0:
            raise NotEnoughReservedTokensError(f"voter={who} has no reserved tokens")

        if choice != Vote.AYE:
            logger.debug(
                f"[GOVERNANCE] {choice.name} on proposal #{index} is not tallied"
            )
            return None

        if self.has_voted(index, who):
            raise VoterAlreadyVotedError(f"voter={who} already voted on proposal #{index}")

        weight = vote_weight(reserved)
        self._runtime.store.set_aye_vote(index, who, weight)
        # Re-assert the free balance; no economic effect
        ledger.set_free_balance(who, ledger.free_balance(who))

        self._runtime.deposit_event(ProposalVoted(index=index, choice=choice))
        logger.info(
            f"[GOVERNANCE] AYE on proposal #{index} "
            f"(reserved={reserved}, weight={weight})"
        )
        return None

    # ── Batch vote ────────────────────────────────────────────────────

    def vote_multiple_proposals(
        self,
        origin: Origin,
        items: Sequence[Tuple[int, int, Vote]],
    ) -> Optional[int]:
        """
        Vote on several proposals in one call, splitting reserved tokens
        across them.

        All checks run for the whole batch before any record is written.
        If any listed proposal is past its deadline, the call instead
        selects a winner over all proposals, completes only the winner
        and returns it; no votes are recorded.

        ``ProposalsVoted`` is emitted once per Aye item, each time listing
        every index of the batch.

        Returns:
            The winner when the call ended voting, otherwise None.

        Raises:
            NotRegisteredVoterError,
            AtLeastOneProposalNotRegisteredOrNotActiveError,
            NotEnoughReservedTokensError, VoterAlreadyVotedError,
            ArithmeticOverflowError
        """
        who = ensure_signed(origin)
        self._registry.ensure_registered(who)
        ballot: List[BallotItem] = [BallotItem.coerce(item) for item in items]

        records: List[ProposalRecord] = []
        for item in ballot:
            record = self._proposals.get(item.index)
            if record is None or not record.is_active:
                raise AtLeastOneProposalNotRegisteredOrNotActiveError(
                    f"Proposal #{item.index} is not registered or not IN_PROGRESS"
                )
            records.append(record)

        ledger = self._runtime.ledger
        reserved = ledger.reserved_balance(who)
        committed = checked_sum(ensure_amount(item.amount) for item in ballot)
        if reserved < committed:
            raise NotEnoughReservedTokensError(
                f"voter={who} reserved {reserved} but the batch commits {committed}"
            )

        for item in ballot:
            if self.has_voted(item.index, who):
                raise VoterAlreadyVotedError(
                    f"voter={who} already voted on proposal #{item.index}"
                )

        now = self._runtime.now()
        expired = next((r for r in records if r.is_expired(now)), None)
        if expired is not None:
            selection = self.compute_winner()
            if selection.winner is not None:
                self._proposals.mark_completed(selection.winner)
            return self._end_voting(trigger=expired, now=now, selection=selection)

        indices = tuple(item.index for item in ballot)
        for item in ballot:
            if item.choice != Vote.AYE:
                continue
            current = self.aye_weight(item.index, who)
            updated = checked_add(current, vote_weight(item.amount))
            self._runtime.store.set_aye_vote(item.index, who, updated)
            self._runtime.deposit_event(ProposalsVoted(indices=indices))
            logger.info(
                f"[GOVERNANCE] Batch AYE on proposal #{item.index} "
                f"(amount={item.amount}, weight={updated})"
            )
        return None

    # ── Deadline ──────────────────────────────────────────────────────

    def _end_voting(
        self,
        trigger: ProposalRecord,
        now: int,
        selection: Optional[WinnerSelection] = None,
    ) -> Optional[int]:
        selection = selection or self.compute_winner()
        self._runtime.deposit_event(VotingEnded(winner=selection.winner))
        if selection.winner is None:
            logger.info(
                f"[GOVERNANCE] Voting ended at block {now} (deadline of proposal "
                f"#{trigger.index}); no proposal received votes"
            )
        else:
            logger.info(
                f"[GOVERNANCE] Voting ended at block {now} (deadline of proposal "
                f"#{trigger.index}) → winner #{selection.winner} weight={selection.total}"
            )
        return selection.winner
