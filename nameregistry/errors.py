"""
nameregistry.errors
-------------------

Typed exceptions raised by the registry engine. They are:
- Richly structured (machine-parsable context via `.to_dict()`).
- Stable (integer `code` values and snake_case `reason` strings).
- Easy to log (clean __str__ with a compact context preview).

Hierarchy:

    RegistryError (base)
    ├── Unauthorized
    ├── NameAlreadyTaken
    ├── NameNotFound
    ├── ValidationError
    │   ├── NameTooLong
    │   └── InvalidName
    ├── InsufficientFee
    ├── InvalidSignature
    └── InsufficientFunds

Every error is raised before any write; the directories are left exactly as
they were before the call. None of them is retryable by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

__all__ = [
    "RegistryErrorCode",
    "RegistryError",
    "Unauthorized",
    "NameAlreadyTaken",
    "NameNotFound",
    "ValidationError",
    "NameTooLong",
    "InvalidName",
    "InsufficientFee",
    "InvalidSignature",
    "InsufficientFunds",
]


class RegistryErrorCode:
    """
    Stable numeric error codes. Range 2000–2099 is reserved for the registry.
    """

    UNAUTHORIZED = 2000
    NAME_ALREADY_TAKEN = 2001
    NAME_NOT_FOUND = 2002
    NAME_TOO_LONG = 2003
    INVALID_NAME = 2004
    INSUFFICIENT_FEE = 2005
    INVALID_SIGNATURE = 2006
    INSUFFICIENT_FUNDS = 2007


@dataclass(eq=False)
class RegistryError(Exception):
    """
    Base class for registry errors.

    Attributes
    ----------
    code : int
        Stable integer code (see RegistryErrorCode).
    reason : str
        Short, machine-friendly reason (snake_case).
    message : str
        Human-readable message.
    context : Dict[str, Any]
        Structured details safe for logs.
    """

    code: int
    reason: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = []
        for k, v in self.context.items():
            if v is None:
                continue
            s = str(v)
            if len(s) > 64:
                s = s[:61] + "..."
            parts.append(f"{k}={s}")
        ctx = " [" + ", ".join(parts) + "]" if parts else ""
        return f"{self.reason}: {self.message}{ctx}"

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable error object."""
        return {
            "code": self.code,
            "reason": self.reason,
            "message": self.message,
            "context": {k: v for k, v in self.context.items() if v is not None},
        }


class Unauthorized(RegistryError):
    """Caller lacks the required privilege or is not the bound address."""

    def __init__(
        self, message: str = "caller is not authorized", *, caller: Optional[str] = None, **ctx: Any
    ) -> None:
        super().__init__(
            code=RegistryErrorCode.UNAUTHORIZED,
            reason="unauthorized",
            message=message,
            context={"caller": caller, **ctx},
        )


class NameAlreadyTaken(RegistryError):
    def __init__(self, name: str, *, namespace: str) -> None:
        super().__init__(
            code=RegistryErrorCode.NAME_ALREADY_TAKEN,
            reason="name_already_taken",
            message=f"name {name!r} is already taken",
            context={"name": name, "namespace": namespace},
        )


class NameNotFound(RegistryError):
    def __init__(self, name: str, *, namespace: str) -> None:
        super().__init__(
            code=RegistryErrorCode.NAME_NOT_FOUND,
            reason="name_not_found",
            message=f"name {name!r} is not registered",
            context={"name": name, "namespace": namespace},
        )


class ValidationError(RegistryError):
    """Parent for input-validation failures."""


class NameTooLong(ValidationError):
    def __init__(self, name: str, *, length: int, limit: int) -> None:
        super().__init__(
            code=RegistryErrorCode.NAME_TOO_LONG,
            reason="name_too_long",
            message=f"name is {length} bytes; must be fewer than {limit}",
            context={"name": name, "length": length, "limit": limit},
        )


class InvalidName(ValidationError):
    def __init__(self, name: str, *, rule: str = "lowercase") -> None:
        super().__init__(
            code=RegistryErrorCode.INVALID_NAME,
            reason="invalid_name",
            message=f"name {name!r} violates rule: {rule}",
            context={"name": name, "rule": rule},
        )


class InsufficientFee(RegistryError):
    def __init__(self, *, payment: int, fee: int, name: Optional[str] = None) -> None:
        super().__init__(
            code=RegistryErrorCode.INSUFFICIENT_FEE,
            reason="insufficient_fee",
            message=f"payment {payment} is below the signup fee {fee}",
            context={"name": name, "payment": payment, "fee": fee},
        )


class InvalidSignature(RegistryError):
    def __init__(
        self, *, name: str, expected: str, recovered: Optional[str] = None
    ) -> None:
        super().__init__(
            code=RegistryErrorCode.INVALID_SIGNATURE,
            reason="invalid_signature",
            message="signature was not produced by the bound address",
            context={"name": name, "expected": expected, "recovered": recovered},
        )


class InsufficientFunds(RegistryError):
    def __init__(self, *, requested: int, balance: int) -> None:
        super().__init__(
            code=RegistryErrorCode.INSUFFICIENT_FUNDS,
            reason="insufficient_funds",
            message=f"requested {requested} exceeds treasury balance {balance}",
            context={"requested": requested, "balance": balance},
        )
