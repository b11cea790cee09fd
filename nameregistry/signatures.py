"""
nameregistry.signatures
=======================

secp256k1 signer recovery for deletion proofs.

A user authorizes an operator-executed deletion by signing the Keccak-256
digest of the fixed message ``b"Delete"`` with the key behind their bound
address. The operator passes the `(v, r, s)` triple to
`RegistryEngine.delete_user_for_user`, and the engine compares the recovered
address with the record's address.

Conventions
-----------
- Digests are raw 32-byte hashes; no "Ethereum Signed Message" prefix is
  applied (the signature is over the digest itself).
- `v` is accepted as 0/1 (recovery id) or 27/28 (legacy Ethereum form).
- The 65-byte wire form is ``r(32) || s(32) || v(1)``.
- Recovery never raises: anything malformed recovers to `ZERO_ADDRESS`,
  which can never equal a bound address.

Recovery goes through `eth_keys` so the comparison logic in the engine stays
independent of the curve implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_utils import ValidationError as EthValidationError

from core.utils.bytes import BytesLike, b, from_hex, to_hex
from core.utils.hash import keccak256

from .types import ZERO_ADDRESS, same_address

DELETE_MESSAGE = b"Delete"
DELETE_DIGEST = keccak256(DELETE_MESSAGE)

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@dataclass(frozen=True)
class Signature:
    v: int
    r: int
    s: int

    @property
    def recovery_id(self) -> int:
        return self.v - 27 if self.v >= 27 else self.v

    @property
    def vrs(self) -> Tuple[int, int, int]:
        return (self.v, self.r, self.s)

    def to_bytes(self) -> bytes:
        return (
            self.r.to_bytes(32, "big")
            + self.s.to_bytes(32, "big")
            + bytes([self.v if self.v >= 27 else self.v + 27])
        )

    def to_hex(self) -> str:
        return to_hex(self.to_bytes())

    @classmethod
    def from_bytes(cls, data: BytesLike) -> "Signature":
        raw = b(data)
        if len(raw) != 65:
            raise ValueError(f"signature must be 65 bytes (got {len(raw)})")
        return cls(
            v=raw[64],
            r=int.from_bytes(raw[0:32], "big"),
            s=int.from_bytes(raw[32:64], "big"),
        )

    @classmethod
    def from_hex(cls, h: str) -> "Signature":
        return cls.from_bytes(from_hex(h))


SignatureLike = Union[Signature, Tuple[int, int, int], BytesLike]


def as_signature(sig: SignatureLike) -> Signature:
    if isinstance(sig, Signature):
        return sig
    if isinstance(sig, tuple):
        v, r, s = sig
        return Signature(v=int(v), r=int(r), s=int(s))
    return Signature.from_bytes(sig)


def recover_signer(digest: BytesLike, sig: SignatureLike) -> str:
    """
    Recover the checksum address that produced `sig` over `digest`.
    Returns ZERO_ADDRESS when the signature is malformed or unrecoverable.
    """
    try:
        s = as_signature(sig)
        msg_hash = b(digest)
    except (TypeError, ValueError):
        return ZERO_ADDRESS
    if len(msg_hash) != 32 or s.recovery_id not in (0, 1):
        return ZERO_ADDRESS
    if not (0 < s.r < SECP256K1_N and 0 < s.s < SECP256K1_N):
        return ZERO_ADDRESS
    try:
        ksig = keys.Signature(vrs=(s.recovery_id, s.r, s.s))
        pub = ksig.recover_public_key_from_msg_hash(msg_hash)
    except (BadSignature, EthValidationError, ValueError):
        return ZERO_ADDRESS
    return pub.to_checksum_address()


def is_signed(address: str, digest: BytesLike, sig: SignatureLike) -> bool:
    """True iff `sig` over `digest` recovers to `address`."""
    recovered = recover_signer(digest, sig)
    return recovered != ZERO_ADDRESS and same_address(recovered, address)


def sign_digest(private_key: BytesLike, digest: BytesLike) -> Signature:
    """
    Sign a 32-byte digest with a raw 32-byte secp256k1 private key.
    Returned `v` is in legacy 27/28 form.
    """
    pk = keys.PrivateKey(b(private_key))
    ksig = pk.sign_msg_hash(b(digest))
    return Signature(v=ksig.v + 27, r=ksig.r, s=ksig.s)


def sign_delete(private_key: BytesLike) -> Signature:
    """Produce the deletion proof for the key's address."""
    return sign_digest(private_key, DELETE_DIGEST)


def address_of(private_key: BytesLike) -> str:
    return keys.PrivateKey(b(private_key)).public_key.to_checksum_address()


__all__ = [
    "DELETE_MESSAGE",
    "DELETE_DIGEST",
    "Signature",
    "SignatureLike",
    "as_signature",
    "recover_signer",
    "is_signed",
    "sign_digest",
    "sign_delete",
    "address_of",
]
