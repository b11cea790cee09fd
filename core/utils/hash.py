"""
core.utils.hash
===============

Keccak-256 (pycryptodome), the digest behind directory keys and the
"Delete" message the registry checks signatures against.

Keccak-256 is *not* SHA3-256: the padding differs, so the two never agree.
Ethereum tooling that produces the signatures uses Keccak-256.
"""

from __future__ import annotations

from Crypto.Hash import keccak as _keccak

from .bytes import BytesLike
from .bytes import b as _b


def keccak256(data: BytesLike) -> bytes:
    """Keccak-256 digest."""
    h = _keccak.new(digest_bits=256)
    h.update(_b(data))
    return h.digest()


__all__ = ["keccak256"]
