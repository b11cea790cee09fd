"""
core.utils.bytes
================

Lightweight helpers around byte handling:

- Hex helpers: to_hex/from_hex, 0x-prefix management
- Bytes-like normalization: b()

Examples
--------
>>> to_hex(b"\\x01\\x02")
'0x0102'
>>> from_hex('0xdeadbeef')
b'\\xde\\xad\\xbe\\xef'
"""

from __future__ import annotations

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def b(data: BytesLike) -> bytes:
    """Normalize any bytes-like object to immutable bytes."""
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"expected bytes-like, got {type(data).__name__}")


def strip0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_hex(data: BytesLike, *, prefix: bool = True) -> str:
    """Return the lowercase hex string of data."""
    h = b(data).hex()
    return f"0x{h}" if prefix else h


def from_hex(h: str) -> bytes:
    """Parse a hex string with or without 0x prefix; ignores surrounding whitespace."""
    if not isinstance(h, str):
        raise TypeError("from_hex expects str")
    h = strip0x(h.strip())
    if len(h) % 2 == 1:
        h = "0" + h
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


__all__ = [
    "BytesLike",
    "b",
    "strip0x",
    "to_hex",
    "from_hex",
]
