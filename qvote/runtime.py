"""
Governance Runtime — transactional boundary

Every dispatchable call runs inside ``Runtime.transaction()``:

  - the clock is read exactly once, on entry
  - storage tables are snapshotted and restored on any failure
  - ledger writes go to a ``LedgerOverlay`` and reach the host ledger
    only on commit
  - events are buffered and delivered to the sink only on commit

Callers therefore observe either the complete post-state of a successful
call or the unchanged pre-state.
"""

from __future__ import annotations

import functools
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .clock import Clock
from .constants import DEFAULT_VOTING_PERIOD
from .events import EventSink, GovernanceEvent, InMemoryEventSink
from .exceptions import GovernanceError, TransactionError
from .ledger import Ledger, LedgerOverlay
from .logger import get_logger
from .storage import GovernanceStore

logger = get_logger(__name__)


@dataclass
class Transaction:
    """State of the call currently executing."""
    call: str
    now: int
    ledger: LedgerOverlay
    snapshot: Dict[str, Any]
    events: List[GovernanceEvent] = field(default_factory=list)


class Runtime:
    """
    Shared execution context for the governance components.

    Args:
        ledger:         Host balance store
        clock:          Logical time source
        store:          Table store (a fresh one if omitted)
        event_sink:     Consumer of committed events (in-memory if omitted)
        voting_period:  Blocks between proposal creation and deadline
    """

    def __init__(
        self,
        ledger: Ledger,
        clock: Clock,
        store: Optional[GovernanceStore] = None,
        event_sink: Optional[EventSink] = None,
        voting_period: int = DEFAULT_VOTING_PERIOD,
    ):
        if voting_period < 0:
            raise ValueError("voting_period must be non-negative")
        self._base_ledger = ledger
        self.clock = clock
        self.store = store if store is not None else GovernanceStore()
        self.event_sink = event_sink if event_sink is not None else InMemoryEventSink()
        self.voting_period = voting_period

        self._lock = threading.RLock()
        self._tx: Optional[Transaction] = None

    # ── Context accessors ─────────────────────────────────────────────

    @property
    def ledger(self) -> Ledger:
        """The buffered ledger inside a transaction, the host ledger outside."""
        if self._tx is not None:
            return self._tx.ledger
        return self._base_ledger

    @property
    def host_ledger(self) -> Ledger:
        return self._base_ledger

    @property
    def in_transaction(self) -> bool:
        return self._tx is not None

    def now(self) -> int:
        """The clock reading of the current call (a fresh reading outside one)."""
        if self._tx is not None:
            return self._tx.now
        return self.clock.now()

    def deposit_event(self, event: GovernanceEvent) -> None:
        if self._tx is None:
            raise TransactionError("Events can only be deposited inside a transaction")
        self._tx.events.append(event)

    # ── Transaction boundary ──────────────────────────────────────────

    @contextmanager
    def transaction(self, call: str) -> Iterator[Transaction]:
        """
        Run one governance call atomically.

        Raises:
            TransactionError: a transaction is already open (re-entrant call)
        """
        with self._lock:
            if self._tx is not None:
                raise TransactionError(
                    f"Cannot start {call} while {self._tx.call} is executing"
                )
            tx = Transaction(
                call=call,
                now=self.clock.now(),
                ledger=LedgerOverlay(self._base_ledger),
                snapshot=self.store.take_snapshot(),
            )
            self._tx = tx
            try:
                yield tx
                # Host ledger first; events go out only once balances are in
                applied = tx.ledger.commit()
            except Exception as e:
                self.store.restore_snapshot(tx.snapshot)
                tx.ledger.discard()
                if isinstance(e, GovernanceError):
                    logger.debug(f"[GOVERNANCE] {call} rejected code={e.code}: {e}")
                else:
                    logger.error(f"[GOVERNANCE] {call} aborted by unexpected error: {e!r}")
                raise
            else:
                for event in tx.events:
                    self.event_sink.deposit(event)
                logger.debug(
                    f"[GOVERNANCE] {call} committed at block {tx.now} "
                    f"({applied} ledger writes, {len(tx.events)} events)"
                )
            finally:
                self._tx = None


def dispatchable(func):
    """Run a facade method as one atomic governance call."""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        with self.runtime.transaction(func.__name__):
            return func(self, *args, **kwargs)

    return wrapper
