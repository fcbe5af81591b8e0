from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from errors import ConfigError

from .transaction import DYNAMIC_FEE_FIELDS, LEGACY_FEE_FIELDS, TxKind, infer_kind, is_present, normalize_fields

PathLike = Union[str, Path]


def load_params(path: PathLike) -> Dict[str, Any]:
    """
    Read the parameter JSON object. Values are left raw; the transaction
    model decides how each one is interpreted.
    """
    p = Path(path).expanduser()
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ConfigError(
            "invalid_params_file",
            f"Parameter file must contain a JSON object, got {type(data).__name__}",
            {"path": str(p)},
        )
    return data


def _fields_for(kind: TxKind) -> frozenset[str]:
    fees = DYNAMIC_FEE_FIELDS if kind is TxKind.EIP1559 else LEGACY_FEE_FIELDS
    return frozenset(("chain_id",) + fees)


def merge_env_defaults(
    params: Mapping[str, Any],
    defaults: Mapping[str, Any],
    kind: Optional[TxKind] = None,
) -> Dict[str, Any]:
    """
    Fill fields missing from ``params`` with operator-supplied environment
    values. The file always wins. When the kind is pinned, by ``kind`` or by
    the file itself (``type`` or any fee field), only that kind's fields are
    filled.
    """
    merged = normalize_fields(params)
    pinned = is_present(merged, "type") or any(is_present(merged, f) for f in LEGACY_FEE_FIELDS + DYNAMIC_FEE_FIELDS)
    if kind is None and pinned:
        kind = infer_kind(merged)
    allowed = _fields_for(kind) if kind is not None else None
    for name, value in defaults.items():
        if allowed is not None and name not in allowed:
            continue
        if not is_present(merged, name):
            merged[name] = value
    return merged
