"""
qvote Exceptions

Every rejected governance call raises a subclass of ``GovernanceError``.
Each concrete error carries a stable ``code`` so hosts can report the
failure without depending on Python class names.
"""

from typing import Any, Dict


class GovernanceError(Exception):
    """Base exception for the governance core."""
    code = "GovernanceError"
    category = "governance"

    def __init__(self, message: str = None):
        super().__init__(message or self.__doc__ or self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "category": self.category,
            "message": str(self),
        }


# ══════════════════════════════════════════════════════════════════════
#  CATEGORIES
# ══════════════════════════════════════════════════════════════════════

class AuthorizationError(GovernanceError):
    """Call issued with the wrong origin class."""
    category = "authorization"


class NotFoundError(GovernanceError):
    """Unknown voter or proposal."""
    category = "not_found"


class StateError(GovernanceError):
    """Call not allowed in the current lifecycle state."""
    category = "state"


class InvalidValueError(GovernanceError, ValueError):
    """Non-positive or malformed input value."""
    category = "value"


class InsufficientFundsError(GovernanceError):
    """Balance or reservation shortfall."""
    category = "insufficient_funds"


class CheckedArithmeticError(GovernanceError, ArithmeticError):
    """Checked add/sub/div left the unsigned 128-bit range."""
    category = "arithmetic"


# ══════════════════════════════════════════════════════════════════════
#  AUTHORIZATION
# ══════════════════════════════════════════════════════════════════════

class BadOriginError(AuthorizationError):
    """Origin is not allowed to dispatch this call."""
    code = "BadOrigin"


# ══════════════════════════════════════════════════════════════════════
#  NOT FOUND
# ══════════════════════════════════════════════════════════════════════

class NotRegisteredVoterError(NotFoundError):
    """Not a registered voter."""
    code = "NotRegisteredVoter"


class ProposalNotFoundError(NotFoundError):
    """Proposal not found."""
    code = "ProposalNotFound"


# ══════════════════════════════════════════════════════════════════════
#  STATE
# ══════════════════════════════════════════════════════════════════════

class AlreadyRegisteredError(StateError):
    """Voter already registered."""
    code = "VoterAlreadyRegistered"


class ProposalAlreadyStartedError(StateError):
    """Proposal already started."""
    code = "ProposalAlreadyStarted"


class ProposalNotActiveError(StateError):
    """Proposal is not active."""
    code = "ProposalNotActive"


class VoterAlreadyVotedError(StateError):
    """Voter already voted."""
    code = "VoterAlreadyVoted"


class AtLeastOneProposalNotRegisteredOrNotActiveError(StateError):
    """At least one of the proposals given is not registered or not active."""
    code = "AtLeastOneProposalNotRegisteredOrNotActive"


class TransactionError(StateError):
    """A governance transaction is already open on this runtime."""
    code = "TransactionInProgress"


# ══════════════════════════════════════════════════════════════════════
#  VALUES
# ══════════════════════════════════════════════════════════════════════

class InsufficientFeeError(InvalidValueError):
    """Insufficient fee."""
    code = "InsufficientFee"


class InvalidTokensAmountToReserveError(InvalidValueError):
    """Invalid tokens amount to reserve."""
    code = "InvalidTokensAmountToReserve"


class InvalidTokensAmountToUnreserveError(InvalidValueError):
    """Invalid tokens amount to unreserve."""
    code = "InvalidTokensAmountToUnreserve"


class InvalidAmountError(InvalidValueError):
    """Amount is not a non-negative integer."""
    code = "InvalidAmount"


class InvalidTextHashError(InvalidValueError):
    """Proposal text hash is not a 32-byte digest."""
    code = "InvalidTextHash"


# ══════════════════════════════════════════════════════════════════════
#  FUNDS
# ══════════════════════════════════════════════════════════════════════

class NotEnoughBalanceError(InsufficientFundsError):
    """Not enough balance."""
    code = "NotEnoughBalance"


class NotEnoughReservedTokensError(InsufficientFundsError):
    """Not enough reserved tokens."""
    code = "NotEnoughReservedTokens"


class InsufficientBalanceError(InsufficientFundsError):
    """Ledger cannot reserve more than the free balance."""
    code = "InsufficientBalance"


# ══════════════════════════════════════════════════════════════════════
#  ARITHMETIC
# ══════════════════════════════════════════════════════════════════════

class ArithmeticOverflowError(CheckedArithmeticError):
    """Balance addition overflow."""
    code = "AdditionOverflow"


class ArithmeticUnderflowError(CheckedArithmeticError):
    """Balance subtraction underflow."""
    code = "SubstractionOverflow"


class DivisionByZeroError(CheckedArithmeticError):
    """Checked division by zero."""
    code = "SlashFailed"


# ══════════════════════════════════════════════════════════════════════
#  CONFIGURATION
# ══════════════════════════════════════════════════════════════════════

class ConfigurationError(Exception):
    """Configuration error."""
    pass
