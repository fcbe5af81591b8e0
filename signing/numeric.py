"""
Normalization of user-supplied quantities.

Every numeric field arrives either as a decimal string (``"123"``) or a
``0x``-prefixed hex string (``"0x7b"``). JSON integers are accepted as well.
Values are returned in Ethereum's canonical quantity form: big-endian, no
leading zero bytes, zero as the empty byte string.
"""

from __future__ import annotations

import string
from typing import Any

from errors import ParseError

UINT64_BYTES = 8
UINT256_BYTES = 32

_HEX_DIGITS = frozenset(string.hexdigits)


def _strip_hex_prefix(s: str) -> str | None:
    if s[:2] in ("0x", "0X"):
        return s[2:]
    return None


def parse_int(raw: Any, width: int, *, name: str = "value") -> int:
    """
    Parse ``raw`` into a non-negative integer that fits in ``width`` bytes.
    """
    if isinstance(raw, bool):
        raise ParseError("invalid_format", f"Invalid numeric field {name}: boolean", {"field": name})
    if isinstance(raw, int):
        value = raw
        if value < 0:
            raise ParseError("invalid_format", f"Invalid numeric field {name}: negative", {"field": name})
    elif isinstance(raw, str):
        s = raw.strip()
        digits = _strip_hex_prefix(s)
        if digits is not None:
            if not digits or not set(digits) <= _HEX_DIGITS:
                raise ParseError("invalid_format", f"Invalid hex quantity for {name}: {raw!r}", {"field": name})
            value = int(digits, 16)
        else:
            # str.isdigit() accepts non-ASCII digits; int() would too.
            if not s or not s.isascii() or not s.isdigit():
                raise ParseError("invalid_format", f"Invalid decimal quantity for {name}: {raw!r}", {"field": name})
            value = int(s, 10)
    else:
        raise ParseError(
            "invalid_format",
            f"Invalid numeric field {name}: {type(raw).__name__}",
            {"field": name},
        )

    if value.bit_length() > width * 8:
        raise ParseError(
            "overflow",
            f"{name} exceeds {width}-byte maximum",
            {"field": name, "width": width},
        )
    return value


def int_to_quantity(value: int) -> bytes:
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def parse_quantity(raw: Any, width: int, *, name: str = "value") -> bytes:
    return int_to_quantity(parse_int(raw, width, name=name))


def parse_hex_bytes(raw: Any, *, name: str = "data") -> bytes:
    """
    Decode an arbitrary byte string; the ``0x`` prefix is optional and
    ``""``/``"0x"``/``None`` mean empty.
    """
    if raw is None:
        return b""
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if not isinstance(raw, str):
        raise ParseError("invalid_format", f"Invalid bytes field {name}: {type(raw).__name__}", {"field": name})
    s = raw.strip()
    stripped = _strip_hex_prefix(s)
    if stripped is not None:
        s = stripped
    if not s:
        return b""
    if len(s) % 2 or not set(s) <= _HEX_DIGITS:
        raise ParseError("invalid_format", f"Invalid hex bytes for {name}", {"field": name})
    return bytes.fromhex(s)
