from __future__ import annotations

"""
SQLite-backed KV store
======================

Embedded KV on SQLite (BLOB keys & values) implementing the `KV` /
`ReadOnlyKV` / `Batch` protocols from `core.db.kv`.

- Table schema: kv(k BLOB PRIMARY KEY, v BLOB NOT NULL)
- Keys/values are raw bytes; ordering is lexicographic (memcmp).
- Prefix scans use a bounded range [prefix, prefix_hi) plus a
  `substr(k, 1, len(prefix)) = prefix` guard.

Threading:
- `check_same_thread=False`; the caller serializes write batches (the
  registry engine holds its own writer lock). Each batch runs inside a
  single `BEGIN IMMEDIATE` transaction.
"""

import os
import sqlite3
from typing import Iterator, Optional, Tuple, Union

from core.errors import DatabaseError

from .kv import KV, Batch

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "temp_store": "MEMORY",
    "foreign_keys": "OFF",
}


def _apply_pragmas(conn: sqlite3.Connection, pragmas: Optional[dict] = None) -> None:
    p = dict(DEFAULT_PRAGMAS)
    if pragmas:
        p.update(pragmas)
    cur = conn.cursor()
    for name, value in p.items():
        cur.execute(f"PRAGMA {name}={value}")
    cur.close()


def _migrate(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            k BLOB PRIMARY KEY,
            v BLOB NOT NULL
        )
        """
    )


def _prefix_hi(prefix: bytes) -> Optional[bytes]:
    """
    Smallest byte string strictly greater than every key starting with
    `prefix`; None when no such bound exists (empty or all-0xFF prefix).

    b"ab\\x01" -> b"ab\\x02"; b"\\xff\\xff" -> None
    """
    p = bytearray(prefix)
    for i in range(len(p) - 1, -1, -1):
        if p[i] != 0xFF:
            p[i] += 1
            del p[i + 1 :]
            return bytes(p)
    return None


class SQLiteBatch(Batch):
    __slots__ = ("_conn", "_open")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._open = False

    def __enter__(self) -> "SQLiteBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._conn.execute("BEGIN IMMEDIATE")
        self._open = True
        return self

    def put(self, key: bytes, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._conn.execute(
            "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
            (memoryview(key), memoryview(value)),
        )

    def delete(self, key: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._conn.execute("DELETE FROM kv WHERE k = ?", (memoryview(key),))

    def commit(self) -> None:
        if not self._open:
            return
        self._conn.execute("COMMIT")
        self._open = False

    def rollback(self) -> None:
        if not self._open:
            return
        self._conn.execute("ROLLBACK")
        self._open = False

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self._open = False
        return None


def _open_connection(
    path: PathLike,
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
) -> sqlite3.Connection:
    path_str = str(path)
    if path_str != ":memory:":
        if not create and not os.path.exists(path_str):
            raise DatabaseError("sqlite kv not found", retryable=False, path=path_str)
        parent = os.path.dirname(os.path.abspath(path_str))
        os.makedirs(parent, exist_ok=True)

    try:
        conn = sqlite3.connect(
            path_str,
            isolation_level=None,  # autocommit; batches BEGIN explicitly
            check_same_thread=False,
        )
    except sqlite3.Error as e:
        raise DatabaseError("cannot open sqlite kv", path=path_str).with_context(
            error=str(e)
        ) from e
    _apply_pragmas(conn, pragmas)
    _migrate(conn)
    return conn


class SQLiteKV(KV):
    """
    SQLite-backed KV. Use `open_sqlite_kv(path)` to construct.
    """

    __slots__ = ("_conn", "path")

    def __init__(self, conn: sqlite3.Connection, path: str = ":memory:") -> None:
        self._conn = conn
        self.path = path

    # --- ReadOnlyKV ---

    def get(self, key: bytes) -> Optional[bytes]:
        cur = self._conn.execute("SELECT v FROM kv WHERE k = ?", (memoryview(key),))
        row = cur.fetchone()
        cur.close()
        return bytes(row[0]) if row is not None else None

    def has(self, key: bytes) -> bool:
        cur = self._conn.execute(
            "SELECT 1 FROM kv WHERE k = ? LIMIT 1", (memoryview(key),)
        )
        row = cur.fetchone()
        cur.close()
        return row is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        hi = _prefix_hi(prefix)
        if hi is not None:
            sql = (
                "SELECT k, v FROM kv "
                "WHERE k >= ? AND k < ? AND substr(k,1,?) = ? "
                "ORDER BY k"
            )
            args: tuple = (memoryview(prefix), memoryview(hi), len(prefix), memoryview(prefix))
        else:
            sql = "SELECT k, v FROM kv WHERE substr(k,1,?) = ? ORDER BY k"
            args = (len(prefix), memoryview(prefix))
        # Materialize so a concurrent batch on the shared connection cannot
        # interleave with an open cursor.
        rows = self._conn.execute(sql, args).fetchall()
        for k, v in rows:
            yield bytes(k), bytes(v)

    def close(self) -> None:
        self._conn.close()

    # --- KV ---

    def put(self, key: bytes, value: bytes) -> None:
        self._conn.execute(
            "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
            (memoryview(key), memoryview(value)),
        )

    def delete(self, key: bytes) -> None:
        self._conn.execute("DELETE FROM kv WHERE k = ?", (memoryview(key),))

    def batch(self) -> SQLiteBatch:
        return SQLiteBatch(self._conn)


def open_sqlite_kv(
    path: PathLike,
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
) -> SQLiteKV:
    """
    Open (or create) a SQLite KV at `path`. `create=False` raises
    DatabaseError if the file does not exist.
    """
    conn = _open_connection(path, pragmas=pragmas, create=create)
    return SQLiteKV(conn, str(path))


__all__ = ["SQLiteKV", "SQLiteBatch", "open_sqlite_kv"]
