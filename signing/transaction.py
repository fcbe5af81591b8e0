from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from eth_utils import to_checksum_address

from errors import ModelError, ParseError, missing_field

from .numeric import UINT64_BYTES, UINT256_BYTES, parse_hex_bytes, parse_int

# (address, storage keys) pairs; only ever empty when built from a parameter file.
AccessList = Tuple[Tuple[bytes, Tuple[bytes, ...]], ...]


class TxKind(Enum):
    LEGACY = "legacy"
    EIP1559 = "eip1559"


FIELD_ALIASES = {"to_address": "to", "input": "data"}

LEGACY_FEE_FIELDS = ("gas_price",)
DYNAMIC_FEE_FIELDS = ("max_fee_per_gas", "max_priority_fee_per_gas")

_COMMON_REQUIRED = ("nonce", "gas_limit", "value")


@dataclass(frozen=True)
class LegacyTransaction:
    nonce: int
    gas_price: int
    gas_limit: int
    to: Optional[bytes]
    value: int
    data: bytes = b""
    chain_id: Optional[int] = None

    kind = TxKind.LEGACY

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "chain_id": self.chain_id,
            "nonce": self.nonce,
            "gas_price": self.gas_price,
            "gas_limit": self.gas_limit,
            "to": _address_repr(self.to),
            "value": self.value,
            "data_bytes": len(self.data),
        }


@dataclass(frozen=True)
class DynamicFeeTransaction:
    chain_id: int
    nonce: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int
    gas_limit: int
    to: Optional[bytes]
    value: int
    data: bytes = b""
    access_list: AccessList = field(default=())

    kind = TxKind.EIP1559

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "chain_id": self.chain_id,
            "nonce": self.nonce,
            "max_priority_fee_per_gas": self.max_priority_fee_per_gas,
            "max_fee_per_gas": self.max_fee_per_gas,
            "gas_limit": self.gas_limit,
            "to": _address_repr(self.to),
            "value": self.value,
            "data_bytes": len(self.data),
        }


UnsignedTransaction = Union[LegacyTransaction, DynamicFeeTransaction]


def _address_repr(to: Optional[bytes]) -> Optional[str]:
    if to is None:
        return None
    if len(to) == 20:
        return to_checksum_address(to)
    return "0x" + to.hex()


def is_present(fields: Mapping[str, Any], name: str) -> bool:
    v = fields.get(name)
    return v is not None and not (isinstance(v, str) and v.strip() == "")


def normalize_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Fold known aliases (``to_address``, ``input``) onto canonical names.
    """
    for alias, name in FIELD_ALIASES.items():
        if alias in fields and name in fields:
            raise ModelError("invalid_field", f"Both '{alias}' and '{name}' given; use one.", {"field": name})
    return {FIELD_ALIASES.get(k, k): v for k, v in fields.items()}


def parse_kind(raw: Any) -> TxKind:
    if isinstance(raw, TxKind):
        return raw
    if isinstance(raw, str):
        s = raw.strip().lower()
        for kind in TxKind:
            if s == kind.value:
                return kind
    try:
        type_id = parse_int(raw, 1, name="type")
    except ParseError:
        type_id = None
    if type_id == 0:
        return TxKind.LEGACY
    if type_id == 2:
        return TxKind.EIP1559
    raise ModelError("invalid_field", f"Unsupported transaction type: {raw!r} (supported: 0, 2)", {"field": "type"})


def infer_kind(fields: Mapping[str, Any]) -> TxKind:
    """
    Decide the transaction kind once, from which fee fields are present.
    An explicit ``type`` entry takes precedence.
    """
    fields = normalize_fields(fields)
    if is_present(fields, "type"):
        return parse_kind(fields["type"])
    has_legacy = any(is_present(fields, f) for f in LEGACY_FEE_FIELDS)
    has_dynamic = any(is_present(fields, f) for f in DYNAMIC_FEE_FIELDS)
    if has_legacy and has_dynamic:
        raise ModelError(
            "invalid_field",
            "gas_price cannot be combined with max_fee_per_gas/max_priority_fee_per_gas",
            {"field": "gas_price"},
        )
    if has_dynamic:
        return TxKind.EIP1559
    if has_legacy:
        return TxKind.LEGACY
    raise missing_field("gas_price")


def _required(fields: Mapping[str, Any], names: Tuple[str, ...]) -> None:
    for name in names:
        if not is_present(fields, name):
            raise missing_field(name)


def _parse_to(fields: Mapping[str, Any]) -> Optional[bytes]:
    if not is_present(fields, "to"):
        return None
    to = parse_hex_bytes(fields["to"], name="to")
    # "0x" is treated like an omitted recipient.
    return to or None


def build(kind: TxKind, fields: Mapping[str, Any]) -> UnsignedTransaction:
    """
    Build an immutable unsigned transaction of the given kind from raw
    parameter values. Address width is enforced by the encoder.
    """
    fields = normalize_fields(fields)
    if kind is TxKind.EIP1559:
        _required(fields, ("chain_id",) + _COMMON_REQUIRED + DYNAMIC_FEE_FIELDS)
        stray = [f for f in LEGACY_FEE_FIELDS if is_present(fields, f)]
    else:
        _required(fields, _COMMON_REQUIRED + LEGACY_FEE_FIELDS)
        stray = [f for f in DYNAMIC_FEE_FIELDS if is_present(fields, f)]
    if stray:
        raise ModelError(
            "invalid_field",
            f"Field {stray[0]} does not belong to a {kind.value} transaction",
            {"field": stray[0]},
        )

    to = _parse_to(fields)
    data = parse_hex_bytes(fields.get("data"), name="data")
    if to is None and not data:
        raise ModelError(
            "invalid_creation",
            "Contract creation (no 'to') requires non-empty data.",
            {},
        )

    nonce = parse_int(fields["nonce"], UINT64_BYTES, name="nonce")
    gas_limit = parse_int(fields["gas_limit"], UINT64_BYTES, name="gas_limit")
    value = parse_int(fields["value"], UINT256_BYTES, name="value")

    if kind is TxKind.EIP1559:
        return DynamicFeeTransaction(
            chain_id=parse_int(fields["chain_id"], UINT64_BYTES, name="chain_id"),
            nonce=nonce,
            max_priority_fee_per_gas=parse_int(
                fields["max_priority_fee_per_gas"], UINT256_BYTES, name="max_priority_fee_per_gas"
            ),
            max_fee_per_gas=parse_int(fields["max_fee_per_gas"], UINT256_BYTES, name="max_fee_per_gas"),
            gas_limit=gas_limit,
            to=to,
            value=value,
            data=data,
        )

    chain_id = None
    if is_present(fields, "chain_id"):
        chain_id = parse_int(fields["chain_id"], UINT64_BYTES, name="chain_id")
    return LegacyTransaction(
        nonce=nonce,
        gas_price=parse_int(fields["gas_price"], UINT256_BYTES, name="gas_price"),
        gas_limit=gas_limit,
        to=to,
        value=value,
        data=data,
        chain_id=chain_id,
    )


@dataclass(frozen=True)
class Signature:
    r: int
    s: int
    recovery_id: int

    def to_bytes(self) -> bytes:
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.recovery_id])


@dataclass(frozen=True)
class SignedTransaction:
    tx: UnsignedTransaction
    signature: Signature
    raw: bytes
    hash: bytes
    sender: str

    @property
    def raw_hex(self) -> str:
        return "0x" + self.raw.hex()

    @property
    def hash_hex(self) -> str:
        return "0x" + self.hash.hex()
