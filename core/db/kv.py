from __future__ import annotations

"""
KV interface & key prefixes
===========================

Backend-agnostic Key–Value interface used by the registry directories.
Backends (`core.db.sqlite`) implement these protocols and the batch
semantics. This file is *pure interface* and contains no I/O.

Key building
------------
`Prefix(ns)` produces a namespace object whose `.key(*parts)` builds
length-prefixed composite keys, so parts never need delimiter escaping:

>>> from core.db.kv import Prefix
>>> USERS = Prefix(b"u")
>>> k = USERS.key(b"\\x01" * 32)
>>> k.startswith(USERS.raw)
True

Batching
--------
`KV.batch()` returns a context manager. Writes inside it are applied
atomically on clean exit and rolled back if an exception escapes:

>>> with kv.batch() as b:
...     b.put(USERS.key(digest), record)
...     b.delete(APPS.key(digest))
"""

from typing import Iterator, Optional, Protocol, Tuple, Union, runtime_checkable

NS_SEP = b":"

KeyPart = Union[bytes, bytearray, memoryview, str, int]


class Prefix:
    """
    A logical namespace prefix (e.g. b"u:" for the user directory).

    .raw gives the raw bytes prefix.
    .key(*parts) builds prefix + ∑ (uvarint(len) | part_bytes).
    """

    __slots__ = ("_raw",)

    def __init__(self, ns: Union[bytes, bytearray, memoryview, str]) -> None:
        ns_b = ns.encode("ascii") if isinstance(ns, str) else bytes(ns)
        if len(ns_b) == 0:
            raise ValueError("namespace must be non-empty")
        self._raw = ns_b.rstrip(NS_SEP) + NS_SEP

    @property
    def raw(self) -> bytes:
        return self._raw

    def key(self, *parts: KeyPart) -> bytes:
        out = bytearray(self._raw)
        for p in parts:
            pb = _part_to_bytes(p)
            out.extend(_uvarint_len(len(pb)))
            out.extend(pb)
        return bytes(out)

    def __repr__(self) -> str:
        return f"Prefix({self._raw!r})"


def _part_to_bytes(p: KeyPart) -> bytes:
    if isinstance(p, (bytes, bytearray, memoryview)):
        return bytes(p)
    if isinstance(p, str):
        return p.encode("utf-8")
    if isinstance(p, int):
        if p < 0:
            raise ValueError("negative ints not supported in key parts")
        return p.to_bytes(max(1, (p.bit_length() + 7) // 8), "big")
    raise TypeError(f"unsupported key part type: {type(p)!r}")


def _uvarint_len(n: int) -> bytes:
    """LEB128-style unsigned length prefix."""
    if n < 0:
        raise ValueError("length must be non-negative")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(0x80 | b)
        else:
            out.append(b)
            return bytes(out)


# ---------------------------------------------------------------------------
# KV protocols & Batch
# ---------------------------------------------------------------------------


@runtime_checkable
class ReadOnlyKV(Protocol):
    def get(self, key: bytes) -> Optional[bytes]:
        """Fetch value or None if missing."""
        ...

    def has(self, key: bytes) -> bool:
        ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """Yield (key, value) pairs under `prefix` in lexicographic key order."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Batch(Protocol):
    """
    A write-batch context manager. Atomic when the context exits without an
    exception; rolled back otherwise.
    """

    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    def put(self, key: bytes, value: bytes) -> None:
        """Persist (key, value). Overwrites if present."""
        ...

    def delete(self, key: bytes) -> None:
        """Remove key if present (idempotent)."""
        ...

    def batch(self) -> Batch:
        ...


__all__ = [
    "ReadOnlyKV",
    "KV",
    "Batch",
    "Prefix",
]
