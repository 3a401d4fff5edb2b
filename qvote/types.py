"""
Core governance records.

Proposal records are immutable; a status change replaces the record in
storage (``with_status``), which keeps storage snapshots shallow.
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, Hashable


class ProposalStatus(IntEnum):
    """Lifecycle stage. COMPLETED is terminal."""
    NOT_STARTED = 0
    IN_PROGRESS = 1
    COMPLETED = 2


class Vote(IntEnum):
    AYE = 0
    NAY = 1
    ABSTAIN = 2


@dataclass(frozen=True)
class ProposalRecord:
    """
    A registered proposal.

    Fields:
        index:      Unique, strictly increasing identifier (>= 1)
        text_hash:  Hex digest of the proposal text
        proposer:   Account that created the proposal
        end_time:   Creation time + voting period, fixed forever
        status:     Current lifecycle stage
    """
    index: int
    text_hash: str
    proposer: Hashable
    end_time: int
    status: ProposalStatus = ProposalStatus.NOT_STARTED

    @property
    def is_active(self) -> bool:
        return self.status == ProposalStatus.IN_PROGRESS

    def is_expired(self, now: int) -> bool:
        """Deadline passed but not necessarily marked COMPLETED yet."""
        return self.end_time <= now

    def with_status(self, status: ProposalStatus) -> "ProposalRecord":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "textHash": self.text_hash,
            "proposer": self.proposer,
            "endTime": self.end_time,
            "status": self.status.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProposalRecord":
        return cls(
            index=data["index"],
            text_hash=data["textHash"],
            proposer=data["proposer"],
            end_time=data["endTime"],
            status=ProposalStatus[data["status"]],
        )

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.index} status={self.status.name} "
            f"end={self.end_time}>"
        )
