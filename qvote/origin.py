"""
Call origins.

Every dispatchable call carries an ``Origin``: either privileged (root,
used for administrative onboarding) or signed by exactly one account,
which is then the acting voter. No call lets one account act for another.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, Optional

from .exceptions import BadOriginError


class OriginKind(Enum):
    ROOT = "root"
    SIGNED = "signed"


@dataclass(frozen=True)
class Origin:
    kind: OriginKind
    account: Optional[Any] = None

    @classmethod
    def root(cls) -> "Origin":
        return cls(OriginKind.ROOT)

    @classmethod
    def signed(cls, account: Hashable) -> "Origin":
        if account is None:
            raise BadOriginError("Signed origin requires an account")
        return cls(OriginKind.SIGNED, account)

    @property
    def is_root(self) -> bool:
        return self.kind is OriginKind.ROOT

    def __repr__(self) -> str:
        if self.is_root:
            return "<Origin root>"
        return f"<Origin signed={self.account!r}>"


def ensure_root(origin: Origin) -> None:
    if not isinstance(origin, Origin) or not origin.is_root:
        raise BadOriginError(f"Privileged origin required, got {origin!r}")


def ensure_signed(origin: Origin) -> Hashable:
    """Return the signing account, or raise if the origin is not signed."""
    if not isinstance(origin, Origin) or origin.kind is not OriginKind.SIGNED:
        raise BadOriginError(f"Signed origin required, got {origin!r}")
    return origin.account
