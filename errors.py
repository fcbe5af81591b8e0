from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict

from eth_keys.exceptions import ValidationError as EthKeysValidationError
from rlp.exceptions import DecodingError, EncodingError


@dataclass(eq=False)
class AppError(Exception):
    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class ParseError(AppError):
    """Malformed decimal/hex input."""


class ModelError(AppError):
    """Missing or inconsistent transaction fields."""


class EncoderError(AppError):
    """A field does not fit its protocol width."""


class SignerError(AppError):
    """Unusable private key material."""


class ConfigError(AppError):
    """Environment or parameter file problems."""


class PolicyViolation(AppError):
    """Transaction rejected by the opt-in signer policy."""


def missing_field(name: str) -> ModelError:
    return ModelError("missing_field", f"Missing required transaction field: {name}", {"field": name})


def classify_exception(e: Exception) -> AppError:
    """
    Map library / IO failures into stable error codes.
    """
    if isinstance(e, AppError):
        return e
    if isinstance(e, json.JSONDecodeError):
        return ConfigError("invalid_params_file", f"Parameter file is not valid JSON: {e.msg}", {"line": e.lineno})
    if isinstance(e, FileNotFoundError):
        return ConfigError("invalid_params_file", f"Parameter file not found: {e.filename}", {})
    if isinstance(e, OSError):
        return ConfigError("invalid_params_file", f"Parameter file could not be read: {e.strerror}", {})
    # eth_keys messages can echo the offending value; keep them out of the output.
    if isinstance(e, EthKeysValidationError):
        return SignerError("invalid_key", "Private key rejected by secp256k1 backend.", {})
    if isinstance(e, EncodingError):
        return EncoderError("field_out_of_range", str(e), {})
    if isinstance(e, DecodingError):
        return EncoderError("field_out_of_range", f"Raw transaction is not valid RLP: {e}", {})

    return AppError("unknown_error", str(e), {})
