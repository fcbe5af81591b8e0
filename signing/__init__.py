from .encoder import DecodedTransaction, decode_raw, final_payload, signing_digest, signing_payload
from .keys import KeyBuffer, address_of, public_key_of
from .numeric import parse_hex_bytes, parse_int, parse_quantity
from .pipeline import Stage, build_signed, run, sign_transaction
from .policy import SignerPolicyConfig, maybe_policy_from_env, policy_config_from_env, validate_transaction
from .signer import recover_public_key, sign
from .transaction import (
    DynamicFeeTransaction,
    LegacyTransaction,
    Signature,
    SignedTransaction,
    TxKind,
    UnsignedTransaction,
    build,
    infer_kind,
)

__all__ = [
    "DecodedTransaction",
    "DynamicFeeTransaction",
    "KeyBuffer",
    "LegacyTransaction",
    "Signature",
    "SignedTransaction",
    "SignerPolicyConfig",
    "Stage",
    "TxKind",
    "UnsignedTransaction",
    "address_of",
    "build",
    "build_signed",
    "decode_raw",
    "final_payload",
    "infer_kind",
    "maybe_policy_from_env",
    "parse_hex_bytes",
    "parse_int",
    "parse_quantity",
    "policy_config_from_env",
    "public_key_of",
    "recover_public_key",
    "run",
    "sign",
    "sign_transaction",
    "signing_digest",
    "signing_payload",
    "validate_transaction",
]
