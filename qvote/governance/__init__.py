"""
qvote Quadratic Voting Governance

Provides:
  - VoterRegistry                               (registry.py)
  - ProposalLedger / hash_proposal_text         (proposals.py)
  - BallotTally / select_winner                 (tally.py)
  - Economics / unreserve_penalty               (economics.py)
  - QuadraticVoting                             (engine.py)
"""

from .registry import VoterRegistry
from .proposals import (
    ProposalLedger,
    hash_proposal_text,
    normalize_text_hash,
)
from .tally import (
    BallotItem,
    BallotTally,
    WinnerSelection,
    select_winner,
)
from .economics import (
    Economics,
    unreserve_penalty,
)
from .engine import QuadraticVoting

__all__ = [
    # Registry
    "VoterRegistry",
    # Proposals
    "ProposalLedger",
    "hash_proposal_text",
    "normalize_text_hash",
    # Tally
    "BallotItem",
    "BallotTally",
    "WinnerSelection",
    "select_winner",
    # Economics
    "Economics",
    "unreserve_penalty",
    # Engine
    "QuadraticVoting",
]
