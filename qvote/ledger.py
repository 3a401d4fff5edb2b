"""
Balance Ledger Interface

The governance core never stores balances. It reads and mutates them
through an injected ``Ledger``:

  - free / reserved split per account
  - ``reserve`` moves free → reserved and fails on shortfall
  - ``unreserve`` moves reserved → free, clamped to what is reserved
  - ``slash`` burns from free first, then reserved, and never fails

``InMemoryLedger`` is the dictionary-backed ledger used by tests and
embedded deployments. ``LedgerOverlay`` buffers writes on top of any
ledger and replays them on commit, which is how a governance call stays
all-or-nothing against a host-owned balance store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Tuple

from .arithmetic import checked_add, checked_sub, ensure_amount
from .exceptions import InsufficientBalanceError
from .logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountBalance:
    """Free / reserved split of one account."""
    free: int = 0
    reserved: int = 0

    @property
    def total(self) -> int:
        return checked_add(self.free, self.reserved)

    def to_dict(self) -> Dict[str, int]:
        return {"free": self.free, "reserved": self.reserved}


# ══════════════════════════════════════════════════════════════════════
#  BALANCE TRANSITIONS
# ══════════════════════════════════════════════════════════════════════

def _apply_reserve(balance: AccountBalance, amount: int) -> AccountBalance:
    if balance.free < amount:
        raise InsufficientBalanceError(
            f"Cannot reserve {amount}: free balance is {balance.free}"
        )
    return AccountBalance(
        free=balance.free - amount,
        reserved=checked_add(balance.reserved, amount),
    )


def _apply_unreserve(balance: AccountBalance, amount: int) -> Tuple[AccountBalance, int]:
    actual = min(amount, balance.reserved)
    updated = AccountBalance(
        free=checked_add(balance.free, actual),
        reserved=balance.reserved - actual,
    )
    return updated, actual


def _apply_slash(balance: AccountBalance, amount: int) -> Tuple[AccountBalance, int, int]:
    from_free = min(amount, balance.free)
    from_reserved = min(amount - from_free, balance.reserved)
    slashed = from_free + from_reserved
    updated = AccountBalance(
        free=balance.free - from_free,
        reserved=balance.reserved - from_reserved,
    )
    return updated, slashed, amount - slashed


# ══════════════════════════════════════════════════════════════════════
#  INTERFACE
# ══════════════════════════════════════════════════════════════════════

class Ledger(ABC):
    """Host balance store consumed by the governance core."""

    @abstractmethod
    def free_balance(self, who: Hashable) -> int:
        ...

    @abstractmethod
    def reserved_balance(self, who: Hashable) -> int:
        ...

    @abstractmethod
    def set_free_balance(self, who: Hashable, amount: int) -> None:
        """Overwrite the free balance (absolute, not a delta)."""

    @abstractmethod
    def reserve(self, who: Hashable, amount: int) -> None:
        """Move *amount* from free to reserved; raise InsufficientBalanceError on shortfall."""

    @abstractmethod
    def unreserve(self, who: Hashable, amount: int) -> int:
        """Move up to *amount* from reserved to free; return the amount moved."""

    @abstractmethod
    def slash(self, who: Hashable, amount: int) -> Tuple[int, int]:
        """Burn up to *amount*; return ``(slashed, shortfall)``."""

    def total_balance(self, who: Hashable) -> int:
        return checked_add(self.free_balance(who), self.reserved_balance(who))


# ══════════════════════════════════════════════════════════════════════
#  IN-MEMORY LEDGER
# ══════════════════════════════════════════════════════════════════════

class InMemoryLedger(Ledger):
    """
    Dictionary-backed ledger.

    Tracks total issuance so tests can observe that start fees and
    unreserve penalties are burned rather than moved.
    """

    def __init__(self, balances: Dict[Hashable, AccountBalance] = None):
        self._accounts: Dict[Hashable, AccountBalance] = dict(balances or {})
        self.total_issuance = sum(b.total for b in self._accounts.values())

    def _load(self, who: Hashable) -> AccountBalance:
        return self._accounts.get(who, AccountBalance())

    def _store(self, who: Hashable, balance: AccountBalance) -> None:
        self._accounts[who] = balance

    # ── Queries ───────────────────────────────────────────────────────

    def free_balance(self, who: Hashable) -> int:
        return self._load(who).free

    def reserved_balance(self, who: Hashable) -> int:
        return self._load(who).reserved

    # ── Mutations ─────────────────────────────────────────────────────

    def set_free_balance(self, who: Hashable, amount: int) -> None:
        ensure_amount(amount)
        current = self._load(who)
        if amount >= current.free:
            self.total_issuance = checked_add(self.total_issuance, amount - current.free)
        else:
            self.total_issuance = checked_sub(self.total_issuance, current.free - amount)
        self._store(who, AccountBalance(free=amount, reserved=current.reserved))

    def reserve(self, who: Hashable, amount: int) -> None:
        ensure_amount(amount)
        self._store(who, _apply_reserve(self._load(who), amount))

    def unreserve(self, who: Hashable, amount: int) -> int:
        ensure_amount(amount)
        updated, actual = _apply_unreserve(self._load(who), amount)
        self._store(who, updated)
        return actual

    def slash(self, who: Hashable, amount: int) -> Tuple[int, int]:
        ensure_amount(amount)
        updated, slashed, shortfall = _apply_slash(self._load(who), amount)
        self._store(who, updated)
        self.total_issuance = checked_sub(self.total_issuance, slashed)
        if shortfall:
            logger.debug(f"Slash of {amount} on {who!r} fell short by {shortfall}")
        return slashed, shortfall

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalIssuance": self.total_issuance,
            "accounts": [
                {"who": who, **balance.to_dict()}
                for who, balance in self._accounts.items()
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryLedger":
        ledger = cls({
            entry["who"]: AccountBalance(free=entry["free"], reserved=entry["reserved"])
            for entry in data.get("accounts", [])
        })
        if "totalIssuance" in data:
            ledger.total_issuance = data["totalIssuance"]
        return ledger

    def __repr__(self) -> str:
        return f"<InMemoryLedger accounts={len(self._accounts)} issuance={self.total_issuance}>"


# ══════════════════════════════════════════════════════════════════════
#  WRITE BUFFER
# ══════════════════════════════════════════════════════════════════════

class LedgerOverlay(Ledger):
    """
    Buffers ledger writes for one governance transaction.

    Reads fall through to the base ledger until an account is touched.
    Every mutation is applied to the local copy and journaled; ``commit``
    replays the journal against the base ledger in order. Dropping the
    overlay discards the writes.
    """

    def __init__(self, base: Ledger):
        self._base = base
        self._touched: Dict[Hashable, AccountBalance] = {}
        self._journal: List[Tuple[str, Tuple[Any, ...]]] = []

    @property
    def base(self) -> Ledger:
        return self._base

    @property
    def pending_writes(self) -> int:
        return len(self._journal)

    def _load(self, who: Hashable) -> AccountBalance:
        if who not in self._touched:
            return AccountBalance(
                free=self._base.free_balance(who),
                reserved=self._base.reserved_balance(who),
            )
        return self._touched[who]

    def free_balance(self, who: Hashable) -> int:
        return self._load(who).free

    def reserved_balance(self, who: Hashable) -> int:
        return self._load(who).reserved

    def set_free_balance(self, who: Hashable, amount: int) -> None:
        ensure_amount(amount)
        current = self._load(who)
        self._touched[who] = AccountBalance(free=amount, reserved=current.reserved)
        self._journal.append(("set_free_balance", (who, amount)))

    def reserve(self, who: Hashable, amount: int) -> None:
        ensure_amount(amount)
        self._touched[who] = _apply_reserve(self._load(who), amount)
        self._journal.append(("reserve", (who, amount)))

    def unreserve(self, who: Hashable, amount: int) -> int:
        ensure_amount(amount)
        updated, actual = _apply_unreserve(self._load(who), amount)
        self._touched[who] = updated
        self._journal.append(("unreserve", (who, amount)))
        return actual

    def slash(self, who: Hashable, amount: int) -> Tuple[int, int]:
        ensure_amount(amount)
        updated, slashed, shortfall = _apply_slash(self._load(who), amount)
        self._touched[who] = updated
        self._journal.append(("slash", (who, amount)))
        return slashed, shortfall

    def commit(self) -> int:
        """
        Replay buffered writes on the base ledger. Returns the number applied.

        If the base ledger raises partway, every account the journal touches
        is put back to its balance from before the replay and the original
        error is re-raised.
        """
        accounts = list(dict.fromkeys(args[0] for _, args in self._journal))
        before = {
            who: AccountBalance(
                free=self._base.free_balance(who),
                reserved=self._base.reserved_balance(who),
            )
            for who in accounts
        }
        applied = 0
        try:
            for op, args in self._journal:
                getattr(self._base, op)(*args)
                applied += 1
        except Exception:
            if applied:
                logger.warning(
                    f"Ledger commit failed after {applied} of {len(self._journal)} "
                    f"writes; restoring {len(before)} accounts"
                )
                self._restore_base(before)
            self.discard()
            raise
        self.discard()
        return applied

    def _restore_base(self, before: Dict[Hashable, AccountBalance]) -> None:
        """Bring base accounts back to *before* using only Ledger operations."""
        for who, target in before.items():
            reserved = self._base.reserved_balance(who)
            try:
                if reserved > target.reserved:
                    self._base.unreserve(who, reserved - target.reserved)
                    self._base.set_free_balance(who, target.free)
                elif reserved < target.reserved:
                    self._base.set_free_balance(
                        who, checked_add(target.free, target.reserved - reserved)
                    )
                    self._base.reserve(who, target.reserved - reserved)
                else:
                    self._base.set_free_balance(who, target.free)
            except Exception as e:
                logger.critical(
                    f"Could not restore {who!r} to free={target.free} "
                    f"reserved={target.reserved} after a failed commit: {e!r}"
                )
                raise

    def discard(self) -> None:
        self._touched.clear()
        self._journal.clear()

    def __repr__(self) -> str:
        return f"<LedgerOverlay touched={len(self._touched)} pending={len(self._journal)}>"
