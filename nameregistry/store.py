"""
nameregistry.store
==================

The three registry directories on top of a `core.db` KV store.

Storage layout
--------------
- Users:                    key = b"u:"  | len | keccak256(name)  → User CBOR
- Official applications:    key = b"ao:" | len | keccak256(name)  → Application CBOR
- Unofficial applications:  key = b"au:" | len | keccak256(name)  → Application CBOR
- Fees:                     key = b"m:"  | "fee" | kind           → uint256 big-endian

Keys are 32-byte digests of the UTF-8 name, so variable-length names map to
fixed-size keys and raw names never appear in key enumeration (the name is
kept inside the record for event payloads).

Reads go straight to the KV. Writes go through `Directories.write()`, which
wraps one KV batch: every staged change lands together or not at all.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

from core.db.kv import KV, Batch, Prefix
from core.utils.hash import keccak256

from .types import Application, Namespace, User

USERS = Prefix(b"u")
OFFICIAL_APPLICATIONS = Prefix(b"ao")
UNOFFICIAL_APPLICATIONS = Prefix(b"au")
META = Prefix(b"m")

_PREFIX_FOR = {
    Namespace.USERS: USERS,
    Namespace.OFFICIAL_APPLICATIONS: OFFICIAL_APPLICATIONS,
    Namespace.UNOFFICIAL_APPLICATIONS: UNOFFICIAL_APPLICATIONS,
}


class FeeKind(str, Enum):
    USER = "user"
    APPLICATION = "application"


def name_digest(name: str) -> bytes:
    """32-byte Keccak-256 digest of the UTF-8 name; the directory key."""
    return keccak256(name.encode("utf-8"))


def _key(ns: Namespace, name: str) -> bytes:
    return _PREFIX_FOR[ns].key(name_digest(name))


def _fee_key(kind: FeeKind) -> bytes:
    return META.key(b"fee", kind.value)


class DirectoryWriter:
    """Stages changes into an open KV batch."""

    __slots__ = ("_batch",)

    def __init__(self, batch: Batch) -> None:
        self._batch = batch

    def put_user(self, user: User) -> None:
        self._batch.put(_key(Namespace.USERS, user.name), user.encode())

    def clear_user(self, name: str) -> None:
        self._batch.delete(_key(Namespace.USERS, name))

    def put_application(self, app: Application) -> None:
        ns = Namespace.for_application(app.official)
        self._batch.put(_key(ns, app.name), app.encode())

    def clear_application(self, name: str, official: bool) -> None:
        self._batch.delete(_key(Namespace.for_application(official), name))

    def set_fee(self, kind: FeeKind, value: int) -> None:
        self._batch.put(_fee_key(kind), value.to_bytes(32, "big"))


class Directories:
    def __init__(self, kv: KV) -> None:
        self.kv = kv

    # ---- reads ----

    def get_user(self, name: str) -> Optional[User]:
        raw = self.kv.get(_key(Namespace.USERS, name))
        if raw is None:
            return None
        user = User.decode(raw)
        return user if user.initialized else None

    def get_application(self, name: str, official: bool) -> Optional[Application]:
        raw = self.kv.get(_key(Namespace.for_application(official), name))
        if raw is None:
            return None
        app = Application.decode(raw)
        return app if app.initialized else None

    def user_taken(self, name: str) -> bool:
        return self.get_user(name) is not None

    def application_taken(self, name: str, official: bool) -> bool:
        return self.get_application(name, official) is not None

    def get_fee(self, kind: FeeKind) -> Optional[int]:
        raw = self.kv.get(_fee_key(kind))
        return int.from_bytes(raw, "big") if raw is not None else None

    def iter_users(self) -> Iterator[User]:
        for _, raw in self.kv.iter_prefix(USERS.raw):
            user = User.decode(raw)
            if user.initialized:
                yield user

    def iter_applications(self, official: bool) -> Iterator[Application]:
        prefix = _PREFIX_FOR[Namespace.for_application(official)]
        for _, raw in self.kv.iter_prefix(prefix.raw):
            app = Application.decode(raw)
            if app.initialized:
                yield app

    # ---- writes ----

    @contextmanager
    def write(self) -> Iterator[DirectoryWriter]:
        with self.kv.batch() as b:
            yield DirectoryWriter(b)

    def close(self) -> None:
        self.kv.close()


__all__ = [
    "USERS",
    "OFFICIAL_APPLICATIONS",
    "UNOFFICIAL_APPLICATIONS",
    "META",
    "FeeKind",
    "name_digest",
    "DirectoryWriter",
    "Directories",
]
