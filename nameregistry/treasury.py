"""
nameregistry.treasury
=====================

Funds custody for signup fees.

The engine asks custody one question, `payment_received(amount, threshold)`,
and hands the payment over with `collect(payer, amount)` once the new record
has committed. If `collect` raises, the engine removes the record again. The
whole payment is kept: overpayment is not refunded.

`Treasury` is the in-process ledger used by the CLI and tests. Withdrawals
are gated by the same `AccessGate` as the registry's operator calls.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Protocol, runtime_checkable

from core.logging import get_logger

from .access import AccessGate, require_privileged
from .errors import InsufficientFunds

log = get_logger("nameregistry.treasury")


@runtime_checkable
class FundsCustody(Protocol):
    def payment_received(self, amount: int, threshold: int) -> bool:
        ...

    def collect(self, payer: str, amount: int) -> None:
        ...


@dataclass
class Treasury:
    gate: AccessGate
    balance: int = 0
    collected: Dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def payment_received(self, amount: int, threshold: int) -> bool:
        return int(amount) >= int(threshold)

    def collect(self, payer: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        with self._lock:
            self.balance += amount
            key = payer.lower()
            self.collected[key] = self.collected.get(key, 0) + amount

    def paid_by(self, payer: str) -> int:
        return self.collected.get(payer.lower(), 0)

    def withdraw(self, caller: str, amount: int) -> int:
        """Operator-only; returns the remaining balance."""
        require_privileged(self.gate, caller)
        if amount < 0:
            raise ValueError("amount must be non-negative")
        with self._lock:
            if amount > self.balance:
                raise InsufficientFunds(requested=amount, balance=self.balance)
            self.balance -= amount
            remaining = self.balance
        log.info("fees withdrawn", extra={"amount": amount, "remaining": remaining})
        return remaining


__all__ = ["FundsCustody", "Treasury"]
