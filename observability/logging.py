from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Dict, Optional

LOGGER_NAME = "rawtx"

_REDACT_MARKERS = ("key", "secret", "password", "token")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class _JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = getattr(record, "event_payload", None)
        if payload is None:
            payload = {"event": record.getMessage()}
        return json.dumps(payload, sort_keys=True, default=str)


def configure_logging(level: str = "warning") -> logging.Logger:
    """
    Attach a single JSON-lines handler on stderr. Safe to call repeatedly.

    stdout is reserved for the raw transaction, so nothing here writes to it.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_LEVELS.get((level or "").strip().lower(), logging.WARNING))
    logger.propagate = False
    for handler in list(logger.handlers):
        if getattr(handler, "_rawtx_handler", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonLineFormatter())
    handler._rawtx_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


def build_log_context(**fields: Any) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


def redact(data: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in data.items():
        if any(m in str(k).lower() for m in _REDACT_MARKERS):
            out[k] = "***REDACTED***"
        elif isinstance(v, dict):
            out[k] = redact(v)
        else:
            out[k] = v
    return out


def log_event(
    event: str,
    *,
    ctx: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    level: str = "info",
) -> None:
    logger = logging.getLogger(LOGGER_NAME)
    lvl = _LEVELS.get(level, logging.INFO)
    if not logger.isEnabledFor(lvl):
        return
    payload = {
        "ts_ms": int(time.time() * 1000),
        "event": event,
        "level": level,
        **(ctx or {}),
        "data": redact(data or {}),
    }
    logger.log(lvl, event, extra={"event_payload": payload})
