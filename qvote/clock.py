"""
Logical clock consumed by the governance core.

Time is a block height: a non-negative, monotonically non-decreasing int.
The host drives it forward between calls; the core reads it once per call.
"""

from abc import ABC, abstractmethod

from .logger import get_logger

logger = get_logger(__name__)


class Clock(ABC):
    """Source of the current logical time."""

    @abstractmethod
    def now(self) -> int:
        ...


class ManualClock(Clock):
    """Clock advanced explicitly by the host (or a test)."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before 0")
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, value: int) -> None:
        """Jump to *value*. Going backwards is rejected."""
        if value < self._now:
            raise ValueError(f"Clock cannot move backwards ({self._now} -> {value})")
        self._now = value
        logger.debug(f"Clock set to {value}")

    def advance(self, delta: int = 1) -> int:
        if delta < 0:
            raise ValueError("Clock cannot advance by a negative delta")
        self._now += delta
        return self._now

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"
