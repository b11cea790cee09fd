"""
nameregistry.types
------------------

Record types stored in the registry directories, plus address helpers.

- `User`         a claimed human identity bound to an address.
- `Application`  a claimed application identity (no address).
- `Namespace`    the three independent keyspaces.

Records carry an explicit `initialized` flag. The directories also delete
the key on removal, so a missing key and an uninitialized record both read
back as "absent".

Records are persisted as canonical CBOR maps (cbor2, canonical=True) so the
encoded bytes are stable across processes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

import cbor2
from eth_utils import is_address, to_checksum_address

from core.errors import DeserializationError
from core.utils.bytes import from_hex

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Namespace(str, Enum):
    USERS = "users"
    OFFICIAL_APPLICATIONS = "official_applications"
    UNOFFICIAL_APPLICATIONS = "unofficial_applications"

    @classmethod
    def for_application(cls, official: bool) -> "Namespace":
        return cls.OFFICIAL_APPLICATIONS if official else cls.UNOFFICIAL_APPLICATIONS


def normalize_address(addr: str) -> str:
    """
    Return the EIP-55 checksum form of a 20-byte hex address.
    Raises ValueError for anything that is not an address.
    """
    if not isinstance(addr, str) or not is_address(addr):
        raise ValueError(f"not an address: {addr!r}")
    return to_checksum_address(addr)


def same_address(a: str, b: str) -> bool:
    """Case-insensitive address equality; never raises."""
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    return a.lower() == b.lower()


@dataclass(frozen=True)
class User:
    name: str
    address: str
    official: bool
    initialized: bool = True

    def encode(self) -> bytes:
        return cbor2.dumps(
            {
                "name": self.name,
                "address": from_hex(self.address),
                "official": self.official,
                "initialized": self.initialized,
            },
            canonical=True,
        )

    @classmethod
    def decode(cls, data: bytes) -> "User":
        m = _loads_map(data, "user")
        try:
            return cls(
                name=str(m["name"]),
                address=to_checksum_address("0x" + bytes(m["address"]).hex()),
                official=bool(m["official"]),
                initialized=bool(m["initialized"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DeserializationError("malformed user record", error=str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "address": self.address, "official": self.official}


@dataclass(frozen=True)
class Application:
    name: str
    official: bool
    initialized: bool = True

    def encode(self) -> bytes:
        return cbor2.dumps(
            {
                "name": self.name,
                "official": self.official,
                "initialized": self.initialized,
            },
            canonical=True,
        )

    @classmethod
    def decode(cls, data: bytes) -> "Application":
        m = _loads_map(data, "application")
        try:
            return cls(
                name=str(m["name"]),
                official=bool(m["official"]),
                initialized=bool(m["initialized"]),
            )
        except (KeyError, TypeError) as e:
            raise DeserializationError("malformed application record", error=str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "official": self.official}


def _loads_map(data: bytes, kind: str) -> Dict[str, Any]:
    try:
        m = cbor2.loads(data)
    except cbor2.CBORDecodeError as e:
        raise DeserializationError(f"undecodable {kind} record", error=str(e)) from e
    if not isinstance(m, dict):
        raise DeserializationError(f"{kind} record is not a map", got=type(m).__name__)
    return m


__all__ = [
    "ZERO_ADDRESS",
    "Namespace",
    "normalize_address",
    "same_address",
    "User",
    "Application",
]
