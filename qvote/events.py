"""
Governance events.

Events are the public output contract of the core besides return values.
They are buffered during a call and delivered to the ``EventSink`` only
when the call commits.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Tuple, Type

from .types import Vote


class GovernanceEvent:
    """Marker base for all governance events."""
    name = "GovernanceEvent"

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class VoterRegistered(GovernanceEvent):
    """New voter registered."""
    voter: Hashable
    initial_balance: int
    name = "VoterRegistered"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "voter": self.voter,
            "initialBalance": self.initial_balance,
        }


@dataclass(frozen=True)
class NewProposalCreated(GovernanceEvent):
    """New proposal created."""
    index: int
    text_hash: str
    end_time: int
    name = "NewProposalCreated"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "index": self.index,
            "textHash": self.text_hash,
            "endTime": self.end_time,
        }


@dataclass(frozen=True)
class ProposalStarted(GovernanceEvent):
    index: int
    name = "ProposalStarted"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "index": self.index}


@dataclass(frozen=True)
class TokensReserved(GovernanceEvent):
    who: Hashable
    amount: int
    name = "TokensReserved"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "who": self.who, "amount": self.amount}


@dataclass(frozen=True)
class TokensUnreserved(GovernanceEvent):
    """Tokens unreserved; ``updated_balance`` is the free balance after the penalty."""
    who: Hashable
    amount: int
    updated_balance: int
    name = "TokensUnreserved"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "who": self.who,
            "amount": self.amount,
            "updatedBalance": self.updated_balance,
        }


@dataclass(frozen=True)
class ProposalVoted(GovernanceEvent):
    """Single vote recorded. The voter is not exposed."""
    index: int
    choice: Vote
    name = "ProposalVoted"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "index": self.index, "choice": self.choice.name}


@dataclass(frozen=True)
class ProposalsVoted(GovernanceEvent):
    """Batch vote item recorded; lists every index of the batch."""
    indices: Tuple[int, ...]
    name = "ProposalsVoted"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "indices": list(self.indices)}


@dataclass(frozen=True)
class VotingEnded(GovernanceEvent):
    """Voting deadline observed. ``winner`` is None when no proposal has votes."""
    winner: Optional[int]
    name = "VotingEnded"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "winner": self.winner}


# ══════════════════════════════════════════════════════════════════════
#  SINKS
# ══════════════════════════════════════════════════════════════════════

class EventSink(ABC):
    """Append-only, ordered consumer of committed events."""

    @abstractmethod
    def deposit(self, event: GovernanceEvent) -> None:
        ...


class InMemoryEventSink(EventSink):

    def __init__(self):
        self._events: List[GovernanceEvent] = []

    def deposit(self, event: GovernanceEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> List[GovernanceEvent]:
        return list(self._events)

    def last(self) -> Optional[GovernanceEvent]:
        return self._events[-1] if self._events else None

    def of_type(self, event_type: Type[GovernanceEvent]) -> List[GovernanceEvent]:
        return [e for e in self._events if isinstance(e, event_type)]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
