from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Set

from errors import ConfigError, PolicyViolation

from .transaction import LegacyTransaction, UnsignedTransaction


def _invalid_env(name: str, detail: str) -> ConfigError:
    return ConfigError("invalid_env", f"{name} {detail}", {"env": name})


def _parse_address_set(name: str, value: Optional[str]) -> Set[str]:
    out: Set[str] = set()
    if not value:
        return out
    for part in value.split(","):
        a = part.strip().lower()
        if not a:
            continue
        if not (len(a) == 42 and a.startswith("0x") and all(c in "0123456789abcdef" for c in a[2:])):
            raise _invalid_env(name, "entries must be 0x-prefixed 20-byte hex addresses")
        out.add(a)
    return out


def _parse_int(name: str, s: str) -> int:
    # Decimal or 0x-prefixed hex; anything else is a configuration error.
    t = s.strip()
    is_hex = t[:2].lower() == "0x" and len(t) > 2 and all(c in "0123456789abcdef" for c in t[2:].lower())
    if not (is_hex or (t.isascii() and t.isdigit())):
        raise _invalid_env(name, "must be a decimal or 0x-prefixed hex integer")
    return int(t, 0)


def _parse_int_set(name: str, value: Optional[str]) -> Set[int]:
    out: Set[int] = set()
    if not value:
        return out
    for part in value.split(","):
        if not part.strip():
            continue
        out.add(_parse_int(name, part))
    return out


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return _parse_int(name, raw)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "no", "n", "off"}:
        return False
    raise _invalid_env(name, "must be a boolean (true/false)")


@dataclass(frozen=True)
class SignerPolicyConfig:
    allowed_chain_ids: Set[int]
    allowed_to_addresses: Set[str]
    max_value_wei: Optional[int]
    max_gas: Optional[int]
    max_fee_per_gas_wei: Optional[int]
    max_data_bytes: Optional[int]
    disallow_contract_creation: bool

    @property
    def has_rules(self) -> bool:
        return bool(
            self.allowed_chain_ids
            or self.allowed_to_addresses
            or self.max_value_wei is not None
            or self.max_gas is not None
            or self.max_fee_per_gas_wei is not None
            or self.max_data_bytes is not None
            or self.disallow_contract_creation
        )


def policy_config_from_env() -> SignerPolicyConfig:
    """
    Signer-side guardrails, checked after the transaction is modeled and
    before it is signed.

    All rules are opt-in; defaults are permissive unless env vars are set.
    A set but malformed value raises ``ConfigError(invalid_env)``.
    """
    return SignerPolicyConfig(
        allowed_chain_ids=_parse_int_set("SIGNER_ALLOWED_CHAIN_IDS", os.getenv("SIGNER_ALLOWED_CHAIN_IDS")),
        allowed_to_addresses=_parse_address_set("SIGNER_ALLOWED_TO_ADDRESSES", os.getenv("SIGNER_ALLOWED_TO_ADDRESSES")),
        max_value_wei=_env_int("SIGNER_MAX_VALUE_WEI", None),
        max_gas=_env_int("SIGNER_MAX_GAS", None),
        max_fee_per_gas_wei=_env_int("SIGNER_MAX_FEE_PER_GAS_WEI", None),
        max_data_bytes=_env_int("SIGNER_MAX_DATA_BYTES", None),
        disallow_contract_creation=_env_bool("SIGNER_DISALLOW_CONTRACT_CREATION", False),
    )


def validate_transaction(tx: UnsignedTransaction, cfg: SignerPolicyConfig) -> None:
    if cfg.disallow_contract_creation and tx.is_contract_creation:
        raise PolicyViolation(
            "contract_creation_not_allowed",
            "Contract creation tx (missing 'to') is disallowed by signer policy.",
            {},
        )

    if cfg.allowed_chain_ids and tx.chain_id not in cfg.allowed_chain_ids:
        raise PolicyViolation(
            "chain_id_not_allowed",
            "Transaction chain_id is not allowlisted by signer policy.",
            {"chain_id": tx.chain_id, "allowed_chain_ids": sorted(cfg.allowed_chain_ids)},
        )

    if cfg.allowed_to_addresses and tx.to is not None:
        to = "0x" + tx.to.hex()
        if to not in cfg.allowed_to_addresses:
            raise PolicyViolation(
                "to_not_allowed",
                "Transaction recipient/contract address is not allowlisted by signer policy.",
                {"to": to, "allowed_to_addresses": sorted(cfg.allowed_to_addresses)},
            )

    if cfg.max_value_wei is not None and tx.value > cfg.max_value_wei:
        raise PolicyViolation(
            "value_too_large",
            "Transaction value exceeds signer policy limit.",
            {"value_wei": tx.value, "max_value_wei": cfg.max_value_wei},
        )

    if cfg.max_gas is not None and tx.gas_limit > cfg.max_gas:
        raise PolicyViolation(
            "gas_too_large",
            "Transaction gas limit exceeds signer policy limit.",
            {"gas": tx.gas_limit, "max_gas": cfg.max_gas},
        )

    if cfg.max_fee_per_gas_wei is not None:
        fee = tx.gas_price if isinstance(tx, LegacyTransaction) else tx.max_fee_per_gas
        if fee > cfg.max_fee_per_gas_wei:
            raise PolicyViolation(
                "fee_too_large",
                "Transaction fee per gas exceeds signer policy limit.",
                {"fee_per_gas_wei": fee, "max_fee_per_gas_wei": cfg.max_fee_per_gas_wei},
            )

    if cfg.max_data_bytes is not None and len(tx.data) > cfg.max_data_bytes:
        raise PolicyViolation(
            "data_too_large",
            "Transaction calldata exceeds signer policy limit.",
            {"data_bytes": len(tx.data), "max_data_bytes": cfg.max_data_bytes},
        )


def maybe_policy_from_env() -> Optional[SignerPolicyConfig]:
    """
    Policy config if SIGNER_POLICY_ENABLED is set or any rule is configured.
    """
    cfg = policy_config_from_env()
    if not (_env_bool("SIGNER_POLICY_ENABLED", False) or cfg.has_rules):
        return None
    return cfg
