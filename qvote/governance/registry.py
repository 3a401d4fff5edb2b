"""
Voter Registry

Membership set of authorized voters. Registration is an administrative
onboarding step: only a privileged origin may provision a voter, and the
voter's free balance is set to the fixed endowment minus the fee.
"""

from typing import Hashable

from ..arithmetic import checked_sub, ensure_positive
from ..constants import ONBOARDING_ENDOWMENT
from ..events import VoterRegistered
from ..exceptions import (
    AlreadyRegisteredError,
    ArithmeticUnderflowError,
    InsufficientFeeError,
    NotRegisteredVoterError,
)
from ..logger import get_logger
from ..origin import Origin, ensure_root
from ..runtime import Runtime

logger = get_logger(__name__)


class VoterRegistry:
    """Owns the ``voters`` table."""

    def __init__(self, runtime: Runtime):
        self._runtime = runtime

    def is_registered(self, who: Hashable) -> bool:
        return self._runtime.store.contains_voter(who)

    def ensure_registered(self, who: Hashable) -> None:
        if not self.is_registered(who):
            raise NotRegisteredVoterError(f"{who!r} is not a registered voter")

    def register_voter(self, origin: Origin, voter: Hashable, fee: int) -> int:
        """
        Provision *voter* with ``ONBOARDING_ENDOWMENT - fee`` free balance.

        Returns:
            The initial free balance.

        Raises:
            BadOriginError: origin is not privileged
            AlreadyRegisteredError: voter is already a member
            InsufficientFeeError: fee <= 0
            ArithmeticUnderflowError: fee > ONBOARDING_ENDOWMENT
        """
        ensure_root(origin)
        if self.is_registered(voter):
            raise AlreadyRegisteredError(f"{voter!r} is already registered")
        if isinstance(fee, int) and fee > ONBOARDING_ENDOWMENT:
            raise ArithmeticUnderflowError(
                f"fee {fee} exceeds the onboarding endowment {ONBOARDING_ENDOWMENT}"
            )
        ensure_positive(fee, InsufficientFeeError, "fee")
        initial_balance = checked_sub(ONBOARDING_ENDOWMENT, fee)

        # Overwrite, not a credit: any previous free balance is replaced
        self._runtime.ledger.set_free_balance(voter, initial_balance)
        self._runtime.store.insert_voter(voter)
        self._runtime.deposit_event(
            VoterRegistered(voter=voter, initial_balance=initial_balance)
        )
        logger.info(
            f"[GOVERNANCE] Registered voter={voter} "
            f"(fee={fee}, initial balance={initial_balance})"
        )
        return initial_balance
