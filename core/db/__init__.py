from __future__ import annotations

"""
core.db
=======

Thin facade for the key–value backend used by the registry directories.

URIs
----
- "sqlite:///path/to/namereg.db"   → SQLite file
- "sqlite:///:memory:"             → in-memory SQLite
- "memory://"                      → alias of "sqlite:///:memory:"
- bare path ending in ".db"        → SQLite file

Example
-------
>>> from core.db import open_kv
>>> kv = open_kv("memory://")
>>> with kv.batch() as b:
...     b.put(b"u:key", b"hello")
>>> kv.get(b"u:key")
b'hello'
"""

from typing import Tuple

from .kv import KV, Batch, Prefix, ReadOnlyKV
from .sqlite import SQLiteKV, open_sqlite_kv


def _parse_uri(uri: str) -> Tuple[str, str]:
    """Parse a DB URI into (backend, path)."""
    u = uri.strip()
    if u.startswith("sqlite:///"):
        return ("sqlite", u[len("sqlite:///") :])
    if u.startswith("memory://"):
        return ("memory", "")
    if u.endswith(".db"):
        return ("sqlite", u)
    raise ValueError(f"Unsupported DB URI: {uri!r}")


def open_kv(uri: str, create: bool = True) -> SQLiteKV:
    """
    Open a KV database by URI. See module docstring for supported forms.

    Raises:
        ValueError for unsupported URIs.
        core.errors.DatabaseError if the store cannot be opened.
    """
    backend, path = _parse_uri(uri)
    if backend == "memory" or path in ("", ":memory:"):
        return open_sqlite_kv(":memory:")
    return open_sqlite_kv(path, create=create)


__all__ = [
    "KV",
    "ReadOnlyKV",
    "Batch",
    "Prefix",
    "SQLiteKV",
    "open_kv",
    "open_sqlite_kv",
]
