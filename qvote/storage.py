"""
Governance Store

Owns the three logical tables of the governance core:

  - ``voters``          AccountId → bool
  - ``proposals``       index → ProposalRecord, plus ``proposal_count``
  - ``aye_votes``       (index, AccountId) → accumulated aye weight

Provides snapshot / restore for transactional rollback, a deterministic
state root for audits, and dict serialization for host persistence.
"""

from __future__ import annotations

import hashlib
from typing import Any, Dict, Hashable, Iterator, List, Optional, Tuple

from .logger import get_logger
from .types import ProposalRecord

logger = get_logger(__name__)


def _sort_key(value: Any) -> Tuple[str, str]:
    # Account ids may be ints or strings; order by type name then repr
    return type(value).__name__, repr(value)


class GovernanceStore:
    """In-memory table store. Single writer; the runtime serializes access."""

    def __init__(self) -> None:
        self._voters: Dict[Hashable, bool] = {}
        self._proposals: Dict[int, ProposalRecord] = {}
        self._proposal_count: int = 0
        self._aye_votes: Dict[Tuple[int, Hashable], int] = {}
        # Secondary index: proposal → voters with a record, in insertion order
        self._voters_by_proposal: Dict[int, Dict[Hashable, None]] = {}

    # =====================================================================
    #  Voters
    # =====================================================================

    def contains_voter(self, who: Hashable) -> bool:
        return who in self._voters

    def insert_voter(self, who: Hashable) -> None:
        self._voters[who] = True

    def voters(self) -> List[Hashable]:
        return list(self._voters)

    # =====================================================================
    #  Proposals
    # =====================================================================

    @property
    def proposal_count(self) -> int:
        return self._proposal_count

    def get_proposal(self, index: int) -> Optional[ProposalRecord]:
        return self._proposals.get(index)

    def contains_proposal(self, index: int) -> bool:
        return index in self._proposals

    def insert_proposal(self, record: ProposalRecord) -> None:
        if record.index not in self._proposals:
            self._proposal_count += 1
        self._proposals[record.index] = record

    def update_proposal(self, record: ProposalRecord) -> None:
        """Replace an existing record; unknown indices are ignored."""
        if record.index in self._proposals:
            self._proposals[record.index] = record

    def iter_proposals(self) -> Iterator[ProposalRecord]:
        """Proposals in ascending index order."""
        for index in sorted(self._proposals):
            yield self._proposals[index]

    # =====================================================================
    #  Aye votes
    # =====================================================================

    def has_aye_vote(self, index: int, who: Hashable) -> bool:
        return (index, who) in self._aye_votes

    def get_aye_vote(self, index: int, who: Hashable) -> int:
        return self._aye_votes.get((index, who), 0)

    def set_aye_vote(self, index: int, who: Hashable, weight: int) -> None:
        self._aye_votes[(index, who)] = weight
        self._voters_by_proposal.setdefault(index, {})[who] = None

    def iter_aye_votes(self, index: int) -> Iterator[Tuple[Hashable, int]]:
        for who in self._voters_by_proposal.get(index, {}):
            yield who, self._aye_votes[(index, who)]

    # =====================================================================
    #  Snapshot / restore (for rollback)
    # =====================================================================

    def take_snapshot(self) -> Dict[str, Any]:
        """Capture current state. Records are immutable, so shallow copies suffice."""
        return {
            "voters": dict(self._voters),
            "proposals": dict(self._proposals),
            "proposal_count": self._proposal_count,
            "aye_votes": dict(self._aye_votes),
            "voters_by_proposal": {
                index: dict(voters) for index, voters in self._voters_by_proposal.items()
            },
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self._voters = snapshot["voters"]
        self._proposals = snapshot["proposals"]
        self._proposal_count = snapshot["proposal_count"]
        self._aye_votes = snapshot["aye_votes"]
        self._voters_by_proposal = snapshot["voters_by_proposal"]

    # =====================================================================
    #  State root
    # =====================================================================

    def state_root(self) -> str:
        """
        Deterministic blake2b digest over all tables.

        Two stores with the same logical content produce the same root
        regardless of insertion order.
        """
        hasher = hashlib.blake2b(digest_size=32)

        for who in sorted(self._voters, key=_sort_key):
            hasher.update(f"voter:{who!r}:{self._voters[who]}".encode())

        hasher.update(f"count:{self._proposal_count}".encode())
        for record in self.iter_proposals():
            hasher.update(
                f"proposal:{record.index}:{record.text_hash}:{record.proposer!r}:"
                f"{record.end_time}:{record.status.value}".encode()
            )

        for (index, who) in sorted(self._aye_votes, key=lambda k: (k[0], _sort_key(k[1]))):
            hasher.update(f"aye:{index}:{who!r}:{self._aye_votes[(index, who)]}".encode())

        return hasher.hexdigest()

    # =====================================================================
    #  Serialization
    # =====================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voters": [who for who in self._voters],
            "proposalCount": self._proposal_count,
            "proposals": [record.to_dict() for record in self.iter_proposals()],
            "ayeVotes": [
                {"index": index, "voter": who, "weight": weight}
                for (index, who), weight in self._aye_votes.items()
            ],
            "stateRoot": self.state_root(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceStore":
        store = cls()
        for who in data.get("voters", []):
            store.insert_voter(who)
        for entry in data.get("proposals", []):
            store.insert_proposal(ProposalRecord.from_dict(entry))
        store._proposal_count = data.get("proposalCount", store._proposal_count)
        for entry in data.get("ayeVotes", []):
            store.set_aye_vote(entry["index"], entry["voter"], entry["weight"])
        logger.debug(
            f"Store restored: {len(store._voters)} voters, "
            f"{store._proposal_count} proposals, {len(store._aye_votes)} aye votes"
        )
        return store

    def __repr__(self) -> str:
        return (
            f"<GovernanceStore voters={len(self._voters)} "
            f"proposals={self._proposal_count} votes={len(self._aye_votes)}>"
        )
