from __future__ import annotations

from typing import Tuple

from eth_keys import keys

from errors import SignerError

from .keys import SECP256K1_HALF_N, SECP256K1_N, KeyMaterial, private_key_of
from .transaction import Signature

DIGEST_BYTES = 32


def _to_digest(digest: bytes) -> bytes:
    if len(digest) != DIGEST_BYTES:
        raise SignerError(
            "invalid_signature",
            f"Expected a {DIGEST_BYTES}-byte digest, got {len(digest)}.",
            {"length": len(digest)},
        )
    return bytes(digest)


def _normalize_sig(r: int, s: int, recovery_id: int) -> Tuple[int, int, int]:
    if r <= 0 or r >= SECP256K1_N:
        raise SignerError("invalid_signature", "invalid r", {})
    if s <= 0 or s >= SECP256K1_N:
        raise SignerError("invalid_signature", "invalid s", {})
    # Negating s mirrors the nonce point, which flips its y parity.
    if s > SECP256K1_HALF_N:
        return r, SECP256K1_N - s, recovery_id ^ 1
    return r, s, recovery_id


def _find_recovery_id(digest: bytes, r: int, s: int, expected: keys.PublicKey) -> int:
    for recid in (0, 1):
        sig = keys.Signature(vrs=(recid, r, s))
        if sig.recover_public_key_from_msg_hash(digest) == expected:
            return recid
    raise SignerError("invalid_signature", "could not determine recovery id (public key mismatch)", {})


def recover_public_key(digest: bytes, sig: Signature) -> keys.PublicKey:
    return keys.Signature(vrs=(sig.recovery_id, sig.r, sig.s)).recover_public_key_from_msg_hash(_to_digest(digest))


def sign(digest: bytes, private_key: KeyMaterial) -> Signature:
    """
    Deterministic (RFC 6979) secp256k1 signature over a 32-byte digest.

    ``s`` is always in the lower half of the curve order and the returned
    recovery id is confirmed by recovering the signer's public key.
    """
    msg_hash = _to_digest(digest)
    pk = private_key_of(private_key)
    raw = pk.sign_msg_hash(msg_hash)
    r, s, recid = _normalize_sig(raw.r, raw.s, raw.v)
    expected = pk.public_key
    if keys.Signature(vrs=(recid, r, s)).recover_public_key_from_msg_hash(msg_hash) != expected:
        recid = _find_recovery_id(msg_hash, r, s, expected)
    return Signature(r=r, s=s, recovery_id=recid)
