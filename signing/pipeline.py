"""
Single-shot signing pipeline:

    Parsed -> Modeled -> DigestComputed -> Signed -> Encoded -> Done

Any stage failure aborts the run with the originating error. Nothing is
returned (and so nothing is printed) for a failed run.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

from eth_utils import keccak

from errors import AppError, classify_exception
from observability import build_log_context, log_event

from .encoder import final_payload, signing_digest
from .keys import KeyMaterial, public_key_of
from .policy import SignerPolicyConfig, validate_transaction
from .signer import sign
from .transaction import SignedTransaction, TxKind, UnsignedTransaction, build, infer_kind, normalize_fields

PIPELINE_CTX = build_log_context(tool="rawtx_pipeline")


class Stage(Enum):
    PARSED = "parsed"
    MODELED = "modeled"
    DIGEST_COMPUTED = "digest_computed"
    SIGNED = "signed"
    ENCODED = "encoded"
    DONE = "done"


class _RunState:
    def __init__(self) -> None:
        self.stage: Optional[Stage] = None

    def advance(self, stage: Stage, **data: Any) -> None:
        self.stage = stage
        log_event(f"tx_{stage.value}", ctx=PIPELINE_CTX, data=data, level="debug")


def _fail(state: _RunState, e: Exception) -> AppError:
    err = classify_exception(e)
    log_event(
        "tx_failed",
        ctx=PIPELINE_CTX,
        data={"after_stage": state.stage.value if state.stage else None, "code": err.code, "error": err.message},
        level="error",
    )
    return err


def _sign(state: _RunState, tx: UnsignedTransaction, private_key: KeyMaterial) -> SignedTransaction:
    digest = signing_digest(tx)
    state.advance(Stage.DIGEST_COMPUTED, digest="0x" + digest.hex())

    public_key = public_key_of(private_key)
    sig = sign(digest, private_key)
    sender = public_key.to_checksum_address()
    state.advance(Stage.SIGNED, sender=sender, recovery_id=sig.recovery_id)

    raw = final_payload(tx, sig)
    tx_hash = keccak(raw)
    state.advance(Stage.ENCODED, tx_hash="0x" + tx_hash.hex(), raw_bytes=len(raw))
    return SignedTransaction(tx=tx, signature=sig, raw=raw, hash=tx_hash, sender=sender)


def sign_transaction(tx: UnsignedTransaction, private_key: KeyMaterial) -> SignedTransaction:
    state = _RunState()
    try:
        signed = _sign(state, tx, private_key)
    except Exception as e:
        err = _fail(state, e)
        if err is e:
            raise
        raise err from e
    state.advance(Stage.DONE)
    return signed


def build_signed(
    raw_params: Mapping[str, Any],
    private_key: KeyMaterial,
    *,
    kind: Optional[TxKind] = None,
    policy: Optional[SignerPolicyConfig] = None,
) -> SignedTransaction:
    state = _RunState()
    try:
        fields = normalize_fields(raw_params)
        kind = kind or infer_kind(fields)
        state.advance(Stage.PARSED, kind=kind.value, fields=sorted(fields))

        tx = build(kind, fields)
        if kind is TxKind.LEGACY and tx.chain_id is None:
            log_event(
                "tx_without_chain_id",
                ctx=PIPELINE_CTX,
                data={"note": "legacy transaction is not replay-protected (pre-EIP-155)"},
                level="warning",
            )
        state.advance(Stage.MODELED, **tx.to_dict())

        if policy is not None:
            validate_transaction(tx, policy)

        signed = _sign(state, tx, private_key)
    except Exception as e:
        err = _fail(state, e)
        if err is e:
            raise
        raise err from e
    state.advance(Stage.DONE)
    return signed


def run(
    raw_params: Mapping[str, Any],
    private_key: KeyMaterial,
    *,
    kind: Optional[TxKind] = None,
    policy: Optional[SignerPolicyConfig] = None,
) -> str:
    """
    Build, sign and serialize one transaction; returns the ``0x`` raw hex.
    """
    return build_signed(raw_params, private_key, kind=kind, policy=policy).raw_hex
