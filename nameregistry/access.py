"""
nameregistry.access
===================

Ownership gates: the capability check the engine consults before any
operator-only operation.

The engine only needs `AccessGate.is_privileged(caller) -> bool`; how the
privilege is decided is the gate's business. Two gates are provided:

- `OwnerGate`: a single owner with transfer/renounce (Ownable-style).
- `RoleGate`: an operator set administered by one admin address; the admin
  is always privileged.

Addresses compare case-insensitively and are stored in checksum form.

Events are not emitted here; ownership changes are logged.
"""

from __future__ import annotations

import threading
from typing import Iterable, Optional, Protocol, Set, runtime_checkable

from core.logging import get_logger

from .errors import Unauthorized
from .types import normalize_address, same_address

log = get_logger("nameregistry.access")


@runtime_checkable
class AccessGate(Protocol):
    def is_privileged(self, caller: str) -> bool:
        ...


def require_privileged(gate: AccessGate, caller: str) -> None:
    """Raise Unauthorized unless `gate` admits `caller`."""
    if not gate.is_privileged(caller):
        raise Unauthorized("caller is not the registry operator", caller=caller)


class OwnerGate:
    """
    Single-owner gate.

    - `transfer_ownership` rejects an empty new owner; use
      `renounce_ownership` to leave the registry without an operator.
    - After renounce, every privileged call fails until a new gate is
      installed.
    """

    def __init__(self, owner: Optional[str]) -> None:
        self._owner = normalize_address(owner) if owner else None
        self._lock = threading.Lock()

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    def is_privileged(self, caller: str) -> bool:
        owner = self._owner
        return owner is not None and same_address(owner, caller)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._lock:
            require_privileged(self, caller)
            if not new_owner:
                raise ValueError("new owner must be non-empty")
            previous, self._owner = self._owner, normalize_address(new_owner)
        log.info(
            "ownership transferred",
            extra={"previous": previous, "new": self._owner},
        )

    def renounce_ownership(self, caller: str) -> None:
        with self._lock:
            require_privileged(self, caller)
            previous, self._owner = self._owner, None
        log.warning("ownership renounced", extra={"previous": previous})


class RoleGate:
    """Operator-set gate; `admin` manages membership and is itself privileged."""

    def __init__(self, admin: str, operators: Iterable[str] = ()) -> None:
        self._admin = normalize_address(admin)
        self._members: Set[str] = {normalize_address(a).lower() for a in operators}
        self._lock = threading.Lock()

    @property
    def admin(self) -> str:
        return self._admin

    def has_role(self, account: str) -> bool:
        return isinstance(account, str) and account.lower() in self._members

    def is_privileged(self, caller: str) -> bool:
        return same_address(self._admin, caller) or self.has_role(caller)

    def grant(self, caller: str, account: str) -> bool:
        """Add `account`; returns False when it already held the role."""
        if not same_address(self._admin, caller):
            raise Unauthorized("only the role admin may grant", caller=caller)
        key = normalize_address(account).lower()
        with self._lock:
            if key in self._members:
                return False
            self._members.add(key)
        log.info("operator granted", extra={"account": account})
        return True

    def revoke(self, caller: str, account: str) -> bool:
        """Remove `account`; returns False when it did not hold the role."""
        if not same_address(self._admin, caller):
            raise Unauthorized("only the role admin may revoke", caller=caller)
        key = normalize_address(account).lower()
        with self._lock:
            if key not in self._members:
                return False
            self._members.discard(key)
        log.info("operator revoked", extra={"account": account})
        return True


__all__ = ["AccessGate", "require_privileged", "OwnerGate", "RoleGate"]
