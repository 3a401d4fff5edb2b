"""
Checked balance arithmetic.

Balances and vote weights are unsigned 128-bit integers. Python ints never
wrap, so every helper here enforces the range explicitly and raises instead
of saturating.
"""

import math

from .constants import BALANCE_MAX
from .exceptions import (
    ArithmeticOverflowError,
    ArithmeticUnderflowError,
    DivisionByZeroError,
    InvalidAmountError,
)


def ensure_amount(value, name: str = "amount") -> int:
    """
    Validate that *value* is a balance: a non-negative int within u128.

    Raises:
        InvalidAmountError: not an int, a bool, or negative
        ArithmeticOverflowError: above BALANCE_MAX
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidAmountError(f"{name} must be non-negative, got {value}")
    if value > BALANCE_MAX:
        raise ArithmeticOverflowError(f"{name} {value} exceeds the 128-bit balance range")
    return value


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > BALANCE_MAX:
        raise ArithmeticOverflowError(f"{a} + {b} overflows the 128-bit balance range")
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticUnderflowError(f"{a} - {b} underflows")
    return a - b


def checked_div(a: int, b: int) -> int:
    """Integer floor division; division by zero raises instead of returning."""
    if b == 0:
        raise DivisionByZeroError(f"{a} / 0")
    return a // b


def checked_sum(values) -> int:
    total = 0
    for value in values:
        total = checked_add(total, value)
    return total


def vote_weight(amount: int) -> int:
    """Quadratic dampening: floor(sqrt(amount))."""
    return math.isqrt(amount)


def ensure_positive(value, error_cls, name: str = "amount") -> int:
    """
    Validate a strictly positive balance.

    Zero and negative values raise *error_cls* (the call-specific error,
    e.g. InsufficientFeeError); non-ints and out-of-range values raise as
    in ``ensure_amount``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(f"{name} must be an integer, got {type(value).__name__}")
    if value <= 0:
        raise error_cls(f"{name} must be greater than 0, got {value}")
    return ensure_amount(value, name)
