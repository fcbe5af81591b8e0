"""
rawtx-signer settings

Environment-driven configuration, loaded once per invocation. A ``.env``
file in the working directory is honored via python-dotenv; real environment
variables take precedence over it.

Usage:
    from app.core.settings import load_settings

    settings = load_settings()
    with KeyBuffer(settings.private_key_bytes()) as key:
        ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

from errors import ConfigError
from signing.keys import decode_private_key_hex

# Environment variable -> parameter-file field it may supply.
ENV_FIELD_DEFAULTS: Dict[str, str] = {
    "CHAIN_ID": "chain_id",
    "GAS_PRICE": "gas_price",
    "MAX_FEE_PER_GAS": "max_fee_per_gas",
    "MAX_PRIORITY_FEE_PER_GAS": "max_priority_fee_per_gas",
}

_REDACT_MARKERS = ("SECRET", "PASSWORD", "KEY", "TOKEN")


def _env_str(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


@dataclass(frozen=True)
class Settings:
    """
    Typed view of the process environment.

    Fee and chain values are kept as raw strings: they are parsed by the same
    numeric parser as the parameter file, so both sources obey one format.
    """

    PROJECT_NAME: str = "rawtx-signer"

    PRIVATE_KEY: str | None = field(default_factory=lambda: _env_str("PRIVATE_KEY"), repr=False)

    CHAIN_ID: str | None = field(default_factory=lambda: _env_str("CHAIN_ID"))
    GAS_PRICE: str | None = field(default_factory=lambda: _env_str("GAS_PRICE"))
    MAX_FEE_PER_GAS: str | None = field(default_factory=lambda: _env_str("MAX_FEE_PER_GAS"))
    MAX_PRIORITY_FEE_PER_GAS: str | None = field(default_factory=lambda: _env_str("MAX_PRIORITY_FEE_PER_GAS"))

    # Observability
    RAWTX_LOG_LEVEL: str = field(default_factory=lambda: (os.getenv("RAWTX_LOG_LEVEL") or "warning").strip().lower())

    def private_key_bytes(self) -> bytearray:
        """
        Decode PRIVATE_KEY into a fresh 32-byte buffer. The caller owns it
        and is expected to wipe it (see signing.keys.KeyBuffer).
        """
        if not self.PRIVATE_KEY:
            raise ConfigError("missing_env", "PRIVATE_KEY environment variable not set", {"env": "PRIVATE_KEY"})
        return decode_private_key_hex(self.PRIVATE_KEY)

    def field_defaults(self) -> Dict[str, str]:
        """Parameter-file fields supplied by the environment."""
        out: Dict[str, str] = {}
        for env_name, field_name in ENV_FIELD_DEFAULTS.items():
            value = getattr(self, env_name)
            if value is not None:
                out[field_name] = value
        return out

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary (redacting secrets)."""
        result: dict[str, Any] = {}
        for key in self.__dataclass_fields__:
            value = getattr(self, key)
            if any(s in key.upper() for s in _REDACT_MARKERS):
                result[key] = "***REDACTED***" if value else None
            else:
                result[key] = value
        return result


def load_settings(*, dotenv: bool = True) -> Settings:
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    return Settings()
