from unittest.mock import patch

import pytest
from eth_account import Account
from eth_keys import keys
from eth_utils import keccak

from errors import EncoderError, ModelError, PolicyViolation, SignerError
from signing import decode_raw, run
from signing.encoder import signing_digest
from signing.pipeline import build_signed, sign_transaction
from signing.policy import SignerPolicyConfig
from signing.transaction import TxKind, build

from conftest import SEPOLIA_CHAIN_ID, TEST_ADDRESS, TEST_PRIVATE_KEY_HEX, ZERO_ADDRESS


SEPOLIA_LEGACY_RAW = (
    "0xf86780843b9aca0082520894000000000000000000000000000000000000000080808401546d71"
    "a0d9806f24cc6517e5efdc7db8997eec039ea8cc83bd63c6a83764bbbc13aa7185"
    "a061f89b387b1c409760a252a030a51db20dd282bf0f27fe71a906f2412d7e5d5e"
)


def _reference_raw(tx_dict):
    signed = Account.sign_transaction(tx_dict, "0x" + TEST_PRIVATE_KEY_HEX)
    raw = getattr(signed, "raw_transaction", None) or signed.rawTransaction
    return "0x" + bytes(raw).hex()


def test_legacy_sepolia_matches_reference_signer(legacy_params, private_key):
    expected = _reference_raw(
        {
            "nonce": 0,
            "gasPrice": 1_000_000_000,
            "gas": 21000,
            "to": ZERO_ADDRESS,
            "value": 0,
            "data": b"",
            "chainId": SEPOLIA_CHAIN_ID,
        }
    )
    assert run(legacy_params, private_key) == expected
    assert expected == SEPOLIA_LEGACY_RAW


def test_legacy_sepolia_fixed_vector(legacy_params, private_key):
    assert run(legacy_params, private_key) == SEPOLIA_LEGACY_RAW


def test_legacy_sepolia_structure(legacy_params, private_key):
    raw_hex = run(legacy_params, private_key)
    assert raw_hex.startswith("0xf8")
    decoded = decode_raw(bytes.fromhex(raw_hex[2:]))
    assert decoded.tx.chain_id == SEPOLIA_CHAIN_ID
    tx = build(TxKind.LEGACY, legacy_params)
    sig = keys.Signature(vrs=(decoded.signature.recovery_id, decoded.signature.r, decoded.signature.s))
    assert sig.recover_public_key_from_msg_hash(signing_digest(tx)).to_checksum_address() == TEST_ADDRESS


def test_eip1559_matches_reference_signer(eip1559_params, private_key):
    expected = _reference_raw(
        {
            "type": 2,
            "chainId": SEPOLIA_CHAIN_ID,
            "nonce": 7,
            "maxPriorityFeePerGas": 0x3B9ACA00,
            "maxFeePerGas": 0x77359400,
            "gas": 21000,
            "to": "0x3535353535353535353535353535353535353535",
            "value": 10**15,
            "data": "0x",
            "accessList": [],
        }
    )
    raw_hex = run(eip1559_params, private_key)
    assert raw_hex.startswith("0x02")
    assert raw_hex == expected


def test_run_is_deterministic(eip1559_params, private_key):
    assert run(eip1559_params, private_key) == run(eip1559_params, private_key)


def test_signed_transaction_metadata(eip1559_params, private_key):
    signed = build_signed(eip1559_params, private_key)
    assert signed.sender == TEST_ADDRESS
    assert signed.hash == keccak(signed.raw)
    assert signed.raw_hex == "0x" + signed.raw.hex()
    assert signed.tx.kind is TxKind.EIP1559


def test_missing_chain_id_for_typed_tx(eip1559_params, private_key):
    del eip1559_params["chain_id"]
    with patch("signing.pipeline.sign") as sign_mock:
        with pytest.raises(ModelError) as e:
            run(eip1559_params, private_key)
    assert e.value.code == "missing_field"
    assert e.value.data == {"field": "chain_id"}
    sign_mock.assert_not_called()


def test_contract_creation(legacy_params, private_key):
    del legacy_params["to"]
    legacy_params["data"] = "0x6080604052348015600f57600080fd5b50"
    decoded = decode_raw(bytes.fromhex(run(legacy_params, private_key)[2:]))
    assert decoded.tx.to is None
    assert decoded.tx.data == bytes.fromhex("6080604052348015600f57600080fd5b50")


def test_contract_creation_without_data(legacy_params, private_key):
    del legacy_params["to"]
    with pytest.raises(ModelError) as e:
        run(legacy_params, private_key)
    assert e.value.code == "invalid_creation"


def test_oversized_to_fails_before_signing(legacy_params, private_key):
    legacy_params["to"] = "0x" + "11" * 21
    with patch("signing.pipeline.sign") as sign_mock:
        with pytest.raises(EncoderError) as e:
            run(legacy_params, private_key)
    assert e.value.code == "field_out_of_range"
    sign_mock.assert_not_called()


def test_explicit_kind_overrides_inference(eip1559_params, private_key):
    with pytest.raises(ModelError) as e:
        run(eip1559_params, private_key, kind=TxKind.LEGACY)
    assert e.value.code == "missing_field"
    assert e.value.data["field"] == "gas_price"


def test_invalid_key(legacy_params):
    with pytest.raises(SignerError) as e:
        run(legacy_params, bytes(32))
    assert e.value.code == "invalid_key"


def test_policy_blocks_before_signing(legacy_params, private_key):
    cfg = SignerPolicyConfig(
        allowed_chain_ids={1},
        allowed_to_addresses=set(),
        max_value_wei=None,
        max_gas=None,
        max_fee_per_gas_wei=None,
        max_data_bytes=None,
        disallow_contract_creation=False,
    )
    with patch("signing.pipeline.sign") as sign_mock:
        with pytest.raises(PolicyViolation) as e:
            run(legacy_params, private_key, policy=cfg)
    assert e.value.code == "chain_id_not_allowed"
    sign_mock.assert_not_called()


def test_sign_transaction_for_prebuilt_tx(legacy_params, private_key):
    tx = build(TxKind.LEGACY, legacy_params)
    signed = sign_transaction(tx, private_key)
    assert signed.raw_hex == run(legacy_params, private_key)


def test_logs_never_contain_key(legacy_params, private_key, capsys):
    from observability import configure_logging

    configure_logging("debug")
    run(legacy_params, private_key)
    with pytest.raises(SignerError):
        run(legacy_params, b"\x00" * 32)
    captured = capsys.readouterr()
    assert "tx_done" in captured.err
    assert "tx_failed" in captured.err
    assert TEST_PRIVATE_KEY_HEX not in captured.err
    assert captured.out == ""
