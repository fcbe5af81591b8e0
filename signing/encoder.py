"""
RLP serialization of unsigned and signed transactions.

Legacy:   rlp([nonce, gas_price, gas_limit, to, value, data, chain_id, 0, 0])  (EIP-155)
          rlp([nonce, gas_price, gas_limit, to, value, data])                  (pre-EIP-155)
EIP-1559: 0x02 || rlp([chain_id, nonce, max_priority_fee_per_gas, max_fee_per_gas,
                       gas_limit, to, value, data, access_list])

The signed forms append (v, r, s) for legacy and (y_parity, r, s) for EIP-1559.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import rlp
from eth_utils import big_endian_to_int, keccak

from errors import EncoderError

from .numeric import UINT64_BYTES, UINT256_BYTES, int_to_quantity
from .transaction import (
    DynamicFeeTransaction,
    LegacyTransaction,
    Signature,
    TxKind,
    UnsignedTransaction,
)

ADDRESS_BYTES = 20
STORAGE_KEY_BYTES = 32

EIP155_V_OFFSET = 35
PRE_EIP155_V_OFFSET = 27


def _out_of_range(name: str, detail: str) -> EncoderError:
    return EncoderError("field_out_of_range", f"{name} {detail}", {"field": name})


def _uint(value: int, width: int, name: str) -> bytes:
    if value < 0 or value.bit_length() > width * 8:
        raise _out_of_range(name, f"does not fit in {width} bytes")
    return int_to_quantity(value)


def _address(to: Optional[bytes], name: str = "to") -> bytes:
    if to is None:
        return b""
    if len(to) != ADDRESS_BYTES:
        raise _out_of_range(name, f"must be {ADDRESS_BYTES} bytes, got {len(to)}")
    return bytes(to)


def _access_list(tx: DynamicFeeTransaction) -> List[Any]:
    out: List[Any] = []
    for address, storage_keys in tx.access_list:
        keys = []
        for key in storage_keys:
            if len(key) != STORAGE_KEY_BYTES:
                raise _out_of_range("access_list", f"storage key must be {STORAGE_KEY_BYTES} bytes")
            keys.append(bytes(key))
        out.append([_address(address, "access_list"), keys])
    return out


def _legacy_fields(tx: LegacyTransaction) -> List[Any]:
    return [
        _uint(tx.nonce, UINT64_BYTES, "nonce"),
        _uint(tx.gas_price, UINT256_BYTES, "gas_price"),
        _uint(tx.gas_limit, UINT64_BYTES, "gas_limit"),
        _address(tx.to),
        _uint(tx.value, UINT256_BYTES, "value"),
        bytes(tx.data),
    ]


def _dynamic_fields(tx: DynamicFeeTransaction) -> List[Any]:
    return [
        _uint(tx.chain_id, UINT64_BYTES, "chain_id"),
        _uint(tx.nonce, UINT64_BYTES, "nonce"),
        _uint(tx.max_priority_fee_per_gas, UINT256_BYTES, "max_priority_fee_per_gas"),
        _uint(tx.max_fee_per_gas, UINT256_BYTES, "max_fee_per_gas"),
        _uint(tx.gas_limit, UINT64_BYTES, "gas_limit"),
        _address(tx.to),
        _uint(tx.value, UINT256_BYTES, "value"),
        bytes(tx.data),
        _access_list(tx),
    ]


def _signature_fields(v: int, sig: Signature) -> List[bytes]:
    if sig.recovery_id not in (0, 1):
        raise _out_of_range("recovery_id", "must be 0 or 1")
    return [
        int_to_quantity(v),
        _uint(sig.r, 32, "r"),
        _uint(sig.s, 32, "s"),
    ]


def signing_payload(tx: UnsignedTransaction) -> bytes:
    if isinstance(tx, LegacyTransaction):
        fields = _legacy_fields(tx)
        if tx.chain_id is not None:
            fields += [_uint(tx.chain_id, UINT64_BYTES, "chain_id"), b"", b""]
        return rlp.encode(fields)
    if isinstance(tx, DynamicFeeTransaction):
        return bytes([0x02]) + rlp.encode(_dynamic_fields(tx))
    raise TypeError(f"Unsupported transaction: {type(tx).__name__}")


def signing_digest(tx: UnsignedTransaction) -> bytes:
    return keccak(signing_payload(tx))


def legacy_v(recovery_id: int, chain_id: Optional[int]) -> int:
    if chain_id is None:
        return recovery_id + PRE_EIP155_V_OFFSET
    return recovery_id + EIP155_V_OFFSET + 2 * chain_id


def final_payload(tx: UnsignedTransaction, sig: Signature) -> bytes:
    if isinstance(tx, LegacyTransaction):
        fields = _legacy_fields(tx) + _signature_fields(legacy_v(sig.recovery_id, tx.chain_id), sig)
        return rlp.encode(fields)
    if isinstance(tx, DynamicFeeTransaction):
        fields = _dynamic_fields(tx) + _signature_fields(sig.recovery_id, sig)
        return bytes([0x02]) + rlp.encode(fields)
    raise TypeError(f"Unsupported transaction: {type(tx).__name__}")


@dataclass(frozen=True)
class DecodedTransaction:
    tx: UnsignedTransaction
    signature: Signature

    @property
    def kind(self) -> TxKind:
        return self.tx.kind

    def to_dict(self) -> Dict[str, Any]:
        out = self.tx.to_dict()
        out["data"] = "0x" + self.tx.data.hex()
        out["signature"] = {
            "r": hex(self.signature.r),
            "s": hex(self.signature.s),
            "recovery_id": self.signature.recovery_id,
        }
        return out


def _to_field(b: bytes) -> Optional[bytes]:
    return bytes(b) if b else None


def _decode_list(payload: bytes, expected: int) -> List[Any]:
    items = rlp.decode(payload)
    if not isinstance(items, list) or len(items) != expected:
        raise EncoderError(
            "field_out_of_range",
            f"Expected an RLP list of {expected} items",
            {"expected": expected},
        )
    return items


def decode_raw(raw: bytes) -> DecodedTransaction:
    """
    Parse a signed raw transaction (as produced by ``final_payload``).
    """
    if not raw:
        raise EncoderError("field_out_of_range", "Empty raw transaction", {})
    if raw[0] >= 0xC0:
        items = _decode_list(raw, 9)
        nonce, gas_price, gas_limit, to, value, data, v, r, s = items
        v_int = big_endian_to_int(v)
        if v_int in (27, 28):
            chain_id, recovery_id = None, v_int - PRE_EIP155_V_OFFSET
        elif v_int >= EIP155_V_OFFSET:
            chain_id, recovery_id = (v_int - EIP155_V_OFFSET) // 2, (v_int - EIP155_V_OFFSET) % 2
        else:
            raise _out_of_range("v", f"invalid legacy v value {v_int}")
        tx: UnsignedTransaction = LegacyTransaction(
            nonce=big_endian_to_int(nonce),
            gas_price=big_endian_to_int(gas_price),
            gas_limit=big_endian_to_int(gas_limit),
            to=_to_field(to),
            value=big_endian_to_int(value),
            data=bytes(data),
            chain_id=chain_id,
        )
    elif raw[0] == 0x02:
        items = _decode_list(raw[1:], 12)
        chain_id_b, nonce, prio, max_fee, gas_limit, to, value, data, access_list, y, r, s = items
        recovery_id = big_endian_to_int(y)
        tx = DynamicFeeTransaction(
            chain_id=big_endian_to_int(chain_id_b),
            nonce=big_endian_to_int(nonce),
            max_priority_fee_per_gas=big_endian_to_int(prio),
            max_fee_per_gas=big_endian_to_int(max_fee),
            gas_limit=big_endian_to_int(gas_limit),
            to=_to_field(to),
            value=big_endian_to_int(value),
            data=bytes(data),
            access_list=tuple((bytes(a), tuple(bytes(k) for k in keys)) for a, keys in access_list),
        )
    else:
        raise _out_of_range("type", f"unsupported transaction type 0x{raw[0]:02x}")

    sig = Signature(r=big_endian_to_int(r), s=big_endian_to_int(s), recovery_id=recovery_id)
    return DecodedTransaction(tx=tx, signature=sig)
