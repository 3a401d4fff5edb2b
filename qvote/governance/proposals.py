"""
Proposal Ledger

Creation and status lifecycle of governance proposals:

    NOT_STARTED ──start_proposal──▶ IN_PROGRESS ──deadline observed──▶ COMPLETED

Indices are assigned from a monotone counter and never reused. The
deadline (``end_time``) is fixed at creation; the IN_PROGRESS → COMPLETED
transition is performed lazily by the tally engine.
"""

import hashlib
from typing import Optional, Union

from ..arithmetic import checked_sub, ensure_positive
from ..constants import PROPOSAL_INDEX_MAX, TEXT_HASH_SIZE, VALID_TEXT_HASH_PATTERN
from ..events import NewProposalCreated, ProposalStarted
from ..exceptions import (
    ArithmeticOverflowError,
    InsufficientFeeError,
    InvalidTextHashError,
    NotEnoughBalanceError,
    ProposalAlreadyStartedError,
    ProposalNotFoundError,
)
from ..logger import get_logger
from ..origin import Origin, ensure_signed
from ..runtime import Runtime
from ..types import ProposalRecord, ProposalStatus
from .registry import VoterRegistry

logger = get_logger(__name__)


def hash_proposal_text(text: str) -> str:
    """Deterministic 32-byte blake2b digest of a proposal text, as hex."""
    return hashlib.blake2b(text.encode("utf-8"), digest_size=TEXT_HASH_SIZE).hexdigest()


def normalize_text_hash(text_hash: Union[str, bytes]) -> str:
    """
    Accept a 32-byte digest as raw bytes or hex (with or without ``0x``)
    and return lowercase hex without prefix.
    """
    if isinstance(text_hash, (bytes, bytearray)):
        if len(text_hash) != TEXT_HASH_SIZE:
            raise InvalidTextHashError(
                f"Text hash must be {TEXT_HASH_SIZE} bytes, got {len(text_hash)}"
            )
        return bytes(text_hash).hex()
    if not isinstance(text_hash, str) or not VALID_TEXT_HASH_PATTERN.match(text_hash):
        raise InvalidTextHashError(f"Invalid text hash: {text_hash!r}")
    return text_hash[2:].lower() if text_hash.startswith("0x") else text_hash.lower()


class ProposalLedger:
    """Owns the ``proposals`` table and the proposal counter."""

    def __init__(self, runtime: Runtime, registry: VoterRegistry):
        self._runtime = runtime
        self._registry = registry

    # ── Queries ───────────────────────────────────────────────────────

    def get(self, index: int) -> Optional[ProposalRecord]:
        return self._runtime.store.get_proposal(index)

    def require(self, index: int) -> ProposalRecord:
        record = self.get(index)
        if record is None:
            raise ProposalNotFoundError(f"Proposal #{index} not found")
        return record

    def is_registered(self, index: int) -> bool:
        return self._runtime.store.contains_proposal(index)

    def is_active(self, index: int) -> bool:
        record = self.get(index)
        return record is not None and record.is_active

    @property
    def count(self) -> int:
        return self._runtime.store.proposal_count

    # ── Calls ─────────────────────────────────────────────────────────

    def create_proposal(self, origin: Origin, text_hash: Union[str, bytes]) -> int:
        """
        Register a new proposal for the signing voter.

        Returns:
            The new proposal index.

        Raises:
            NotRegisteredVoterError: signer is not a voter
            InvalidTextHashError: text_hash is not a 32-byte digest
        """
        proposer = ensure_signed(origin)
        self._registry.ensure_registered(proposer)
        text_hash = normalize_text_hash(text_hash)

        index = self.count + 1
        if index > PROPOSAL_INDEX_MAX:
            raise ArithmeticOverflowError("Proposal index space exhausted")
        end_time = self._runtime.now() + self._runtime.voting_period

        record = ProposalRecord(
            index=index,
            text_hash=text_hash,
            proposer=proposer,
            end_time=end_time,
        )
        self._runtime.store.insert_proposal(record)
        self._runtime.deposit_event(
            NewProposalCreated(index=index, text_hash=text_hash, end_time=end_time)
        )
        logger.info(
            f"[GOVERNANCE] Proposal #{index} created by voter={proposer} "
            f"(ends at block {end_time})"
        )
        return index

    def start_proposal(self, origin: Origin, index: int, fee: int) -> None:
        """
        Open voting on a proposal. Any registered voter may start any
        proposal; the fee is debited from the caller and burned.

        Raises:
            NotRegisteredVoterError, ProposalNotFoundError,
            ProposalAlreadyStartedError, InsufficientFeeError,
            NotEnoughBalanceError
        """
        who = ensure_signed(origin)
        self._registry.ensure_registered(who)
        record = self.require(index)
        if record.status != ProposalStatus.NOT_STARTED:
            raise ProposalAlreadyStartedError(
                f"Proposal #{index} is {record.status.name}, not NOT_STARTED"
            )
        ensure_positive(fee, InsufficientFeeError, "fee")

        ledger = self._runtime.ledger
        balance = ledger.free_balance(who)
        if balance < fee:
            raise NotEnoughBalanceError(
                f"Free balance {balance} is below the start fee {fee}"
            )

        # Start fee is burned, not credited anywhere
        ledger.set_free_balance(who, checked_sub(balance, fee))
        self._runtime.store.update_proposal(record.with_status(ProposalStatus.IN_PROGRESS))
        self._runtime.deposit_event(ProposalStarted(index=index))
        logger.info(
            f"[GOVERNANCE] Proposal #{index}: NOT_STARTED → IN_PROGRESS "
            f"(started by voter={who}, fee={fee})"
        )

    # ── Lifecycle (tally engine only) ─────────────────────────────────

    def mark_completed(self, index: int) -> bool:
        """
        Move a proposal to COMPLETED. Unknown indices are ignored.

        Returns:
            True if a record was updated.
        """
        record = self.get(index)
        if record is None:
            return False
        if record.status != ProposalStatus.COMPLETED:
            logger.info(
                f"[GOVERNANCE] Proposal #{index}: {record.status.name} → COMPLETED"
            )
        self._runtime.store.update_proposal(record.with_status(ProposalStatus.COMPLETED))
        return True
