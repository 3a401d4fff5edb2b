"""
Economics — reserve / unreserve with withdrawal penalty

Reserved balance is the voting budget: single votes weigh
floor(sqrt(reserved)), batch votes split it across proposals. Pulling
tokens back out costs half of the amount, burned.
"""

from typing import Hashable

from ..arithmetic import checked_div, ensure_positive
from ..constants import UNRESERVE_PENALTY_DIVISOR
from ..events import TokensReserved, TokensUnreserved
from ..exceptions import (
    InvalidTokensAmountToReserveError,
    InvalidTokensAmountToUnreserveError,
    NotEnoughBalanceError,
    NotEnoughReservedTokensError,
)
from ..logger import get_logger
from ..origin import Origin, ensure_signed
from ..runtime import Runtime
from .registry import VoterRegistry

logger = get_logger(__name__)


def unreserve_penalty(amount: int) -> int:
    """Penalty burned when *amount* is unreserved."""
    return checked_div(amount, UNRESERVE_PENALTY_DIVISOR)


class Economics:

    def __init__(self, runtime: Runtime, registry: VoterRegistry):
        self._runtime = runtime
        self._registry = registry

    def free_balance(self, who: Hashable) -> int:
        return self._runtime.ledger.free_balance(who)

    def reserved_balance(self, who: Hashable) -> int:
        return self._runtime.ledger.reserved_balance(who)

    def reserve_tokens(self, origin: Origin, amount: int) -> None:
        """
        Move *amount* from the caller's free balance to reserved.

        Raises:
            NotRegisteredVoterError, InvalidTokensAmountToReserveError,
            NotEnoughBalanceError
        """
        who = ensure_signed(origin)
        self._registry.ensure_registered(who)
        ensure_positive(amount, InvalidTokensAmountToReserveError)

        ledger = self._runtime.ledger
        free = ledger.free_balance(who)
        if free < amount:
            raise NotEnoughBalanceError(f"Cannot reserve {amount}: free balance is {free}")

        ledger.reserve(who, amount)
        self._runtime.deposit_event(TokensReserved(who=who, amount=amount))
        logger.info(
            f"[GOVERNANCE] voter={who} reserved {amount} "
            f"(reserved now {ledger.reserved_balance(who)})"
        )

    def unreserve_tokens(self, origin: Origin, amount: int) -> int:
        """
        Move *amount* from reserved back to free, then burn
        ``floor(amount / 2)`` from the caller as a withdrawal penalty.

        The penalty is taken from free balance first and, if that runs
        short, from what remains reserved. Any shortfall is absorbed.

        Returns:
            The caller's free balance after the penalty.

        Raises:
            NotRegisteredVoterError, InvalidTokensAmountToUnreserveError,
            NotEnoughReservedTokensError
        """
        who = ensure_signed(origin)
        self._registry.ensure_registered(who)
        ensure_positive(amount, InvalidTokensAmountToUnreserveError)

        ledger = self._runtime.ledger
        reserved = ledger.reserved_balance(who)
        if reserved < amount:
            raise NotEnoughReservedTokensError(
                f"Cannot unreserve {amount}: reserved balance is {reserved}"
            )

        ledger.unreserve(who, amount)
        penalty = unreserve_penalty(amount)
        slashed, shortfall = ledger.slash(who, penalty)
        if shortfall:
            logger.warning(
                f"[GOVERNANCE] Unreserve penalty for voter={who} fell short "
                f"by {shortfall} (slashed {slashed} of {penalty})"
            )

        updated = ledger.free_balance(who)
        self._runtime.deposit_event(
            TokensUnreserved(who=who, amount=amount, updated_balance=updated)
        )
        logger.info(
            f"[GOVERNANCE] voter={who} unreserved {amount}, penalty {slashed} burned "
            f"(free balance {updated})"
        )
        return updated
