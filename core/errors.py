"""
Namereg - core.errors
---------------------

Infrastructure errors shared by the registry packages.

Design goals
------------
- One root `NameregError` with machine-friendly `code` and optional `data`.
- Concrete subclasses for the infrastructure concerns (config, db, codec).
- Safe JSON representation (`to_dict`) suitable for logs and CLI output.
- Clear separation of *retryable* vs *permanent* failures.

Registry-domain failures (Unauthorized, NameAlreadyTaken, ...) live in
`nameregistry.errors`; this module stays stdlib-only so it can be imported
from any layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class CoreErrorCode(str, Enum):
    CONFIG = "CORE/CONFIG"
    DESERIALIZATION = "CORE/DESERIALIZATION"
    DB = "CORE/DB"


@dataclass(eq=False)
class NameregError(Exception):
    """
    Root error for namereg infrastructure.

    Attributes
    ----------
    code: str
        Machine-stable error code (see CoreErrorCode).
    message: str
        Human hint suitable for logs.
    data: dict
        Optional JSON-serializable context.
    retryable: bool
        Whether the operation may succeed on retry without changing inputs.
    cause: Optional[BaseException]
        Wrapped original exception.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    retryable: bool = False
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        super().__init__(f"{self.code}: {self.message}")

    def with_context(self, **ctx: Any) -> "NameregError":
        """Return a copy with extra context merged into `data`."""
        d = dict(self.data)
        d.update(_jsonmap(ctx))
        return NameregError(
            code=self.code,
            message=self.message,
            data=d,
            retryable=self.retryable,
            cause=self.cause,
        )

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "code": str(self.code.value if isinstance(self.code, Enum) else self.code),
            "message": self.message,
            "data": _jsonmap(self.data),
            "retryable": self.retryable,
        }
        if include_cause and self.cause is not None:
            out["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}
        return out

    def __str__(self) -> str:
        code = self.code.value if isinstance(self.code, Enum) else self.code
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            return f"{code}: {self.message} [{preview}]"
        return f"{code}: {self.message}"


class ConfigError(NameregError):
    def __init__(self, message: str = "invalid configuration", **data: Any) -> None:
        super().__init__(code=CoreErrorCode.CONFIG, message=message, data=_jsonmap(data))


class DeserializationError(NameregError):
    def __init__(self, message: str = "deserialization failed", **data: Any) -> None:
        super().__init__(
            code=CoreErrorCode.DESERIALIZATION, message=message, data=_jsonmap(data)
        )


class DatabaseError(NameregError):
    def __init__(
        self, message: str = "database error", retryable: bool = True, **data: Any
    ) -> None:
        super().__init__(
            code=CoreErrorCode.DB,
            message=message,
            data=_jsonmap(data),
            retryable=retryable,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coerce_json(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Enum):
        return v.value
    if isinstance(v, Mapping):
        return {str(k): _coerce_json(x) for k, x in v.items()}
    if isinstance(v, (list, tuple, set)):
        return [_coerce_json(x) for x in v]
    return str(v)


def _jsonmap(d: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(k): _coerce_json(v) for k, v in d.items()}


def _preview(v: Any, limit: int = 64) -> str:
    s = str(v)
    return s if len(s) <= limit else s[: limit - 3] + "..."


__all__ = [
    "CoreErrorCode",
    "NameregError",
    "ConfigError",
    "DeserializationError",
    "DatabaseError",
]
