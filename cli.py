"""
rawtx-signer command line entrypoint.

    PRIVATE_KEY=0x... rawtx-sign params.json

Prints the signed raw transaction (``0x``-prefixed hex) on stdout and exits 0.
On any failure prints ``error[<code>]: <message>`` on stderr, prints nothing
on stdout, and exits 1. Broadcasting is left to the operator, e.g. as the
``params`` element of an ``eth_sendRawTransaction`` call.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from app.core.settings import load_settings
from errors import classify_exception
from observability import build_log_context, configure_logging, log_event
from signing import KeyBuffer, TxKind, decode_raw, maybe_policy_from_env, run
from signing.numeric import parse_hex_bytes
from signing.params import load_params, merge_env_defaults

CLI_CTX = build_log_context(tool="rawtx_cli")

_KIND_CHOICES = {"legacy": TxKind.LEGACY, "eip1559": TxKind.EIP1559}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rawtx-sign",
        description="Build and sign one Ethereum transaction offline.",
    )
    parser.add_argument("params", nargs="?", help="path to the parameter JSON file")
    parser.add_argument(
        "--type",
        dest="kind",
        choices=sorted(_KIND_CHOICES),
        help="transaction kind (default: inferred from the fee fields)",
    )
    parser.add_argument("--decode", metavar="RAW_HEX", help="decode a signed raw transaction and exit")
    parser.add_argument("--no-dotenv", action="store_true", help="do not read a .env file")
    return parser


def _sign(args: argparse.Namespace) -> str:
    settings = load_settings(dotenv=not args.no_dotenv)
    configure_logging(settings.RAWTX_LOG_LEVEL)
    log_event("cli_started", ctx=CLI_CTX, data={"params": args.params}, level="debug")

    params = load_params(args.params)
    kind = _KIND_CHOICES[args.kind] if args.kind else None
    fields = merge_env_defaults(params, settings.field_defaults(), kind)
    policy = maybe_policy_from_env()

    with KeyBuffer(settings.private_key_bytes()) as key:
        return run(fields, key, kind=kind, policy=policy)


def _decode(raw_hex: str) -> str:
    decoded = decode_raw(parse_hex_bytes(raw_hex, name="raw_transaction"))
    return json.dumps(decoded.to_dict(), indent=2, sort_keys=True)


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.decode and not args.params:
        parser.error("the path to the parameter JSON file is required")

    try:
        out = _decode(args.decode) if args.decode else _sign(args)
    except Exception as e:
        err = classify_exception(e)
        print(f"error[{err.code}]: {err.message}", file=sys.stderr)
        return 1

    print(out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
