from __future__ import annotations

from types import TracebackType
from typing import Optional, Type, Union

from eth_keys import keys

from errors import SignerError

PRIVATE_KEY_BYTES = 32

SECP256K1_N = int(
    "0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141",
    16,
)
SECP256K1_HALF_N = SECP256K1_N // 2

KeyMaterial = Union[bytes, bytearray, memoryview]


def decode_private_key_hex(value: str) -> bytearray:
    """
    Decode a hex private key (``0x`` optional) into a mutable buffer.

    Error messages never include the key text.
    """
    s = (value or "").strip()
    if s[:2] in ("0x", "0X"):
        s = s[2:]
    try:
        buf = bytearray.fromhex(s)
    except ValueError:
        raise SignerError("invalid_key", "Private key is not valid hex.", {}) from None
    if len(buf) != PRIVATE_KEY_BYTES:
        n = len(buf)
        _zero(buf)
        raise SignerError(
            "invalid_key",
            f"Invalid private key length (expected: {PRIVATE_KEY_BYTES}, input: {n}).",
            {"length": n},
        )
    return buf


def validate_private_key(key: KeyMaterial) -> None:
    if len(key) != PRIVATE_KEY_BYTES:
        raise SignerError(
            "invalid_key",
            f"Invalid private key length (expected: {PRIVATE_KEY_BYTES}, input: {len(key)}).",
            {"length": len(key)},
        )
    d = int.from_bytes(bytes(key), "big")
    if d == 0 or d >= SECP256K1_N:
        raise SignerError("invalid_key", "Private key is outside the secp256k1 range [1, n-1].", {})


def private_key_of(key: KeyMaterial) -> keys.PrivateKey:
    validate_private_key(key)
    return keys.PrivateKey(bytes(key))


def public_key_of(key: KeyMaterial) -> keys.PublicKey:
    return private_key_of(key).public_key


def address_of(key: KeyMaterial) -> str:
    return public_key_of(key).to_checksum_address()


def _zero(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0


class KeyBuffer:
    """
    Holds private key bytes for the duration of a ``with`` block and zeroes
    them on exit, whether the block succeeded or raised.

    Copies handed to the secp256k1 backend are immutable ``bytes`` and cannot
    be wiped; only this buffer is.
    """

    def __init__(self, material: KeyMaterial) -> None:
        self._buf = bytearray(material)
        if isinstance(material, bytearray):
            _zero(material)

    @classmethod
    def from_hex(cls, value: str) -> "KeyBuffer":
        buf = decode_private_key_hex(value)
        try:
            return cls(buf)
        finally:
            _zero(buf)

    def __enter__(self) -> bytearray:
        return self._buf

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.wipe()

    def wipe(self) -> None:
        _zero(self._buf)

    @property
    def wiped(self) -> bool:
        return not any(self._buf)

    def __repr__(self) -> str:
        return f"KeyBuffer(<{len(self._buf)} bytes redacted>)"
