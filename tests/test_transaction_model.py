import pytest

from errors import ModelError, ParseError
from signing.transaction import (
    DynamicFeeTransaction,
    LegacyTransaction,
    TxKind,
    build,
    infer_kind,
    normalize_fields,
)


def test_build_legacy(legacy_params):
    tx = build(TxKind.LEGACY, legacy_params)
    assert isinstance(tx, LegacyTransaction)
    assert tx.kind is TxKind.LEGACY
    assert tx.nonce == 0
    assert tx.gas_price == 1_000_000_000
    assert tx.gas_limit == 21000
    assert tx.to == bytes(20)
    assert tx.data == b""
    assert tx.chain_id == 11155111


def test_build_eip1559(eip1559_params):
    tx = build(TxKind.EIP1559, eip1559_params)
    assert isinstance(tx, DynamicFeeTransaction)
    assert tx.nonce == 7
    assert tx.max_fee_per_gas == 0x77359400
    assert tx.max_priority_fee_per_gas == 0x3B9ACA00
    assert tx.access_list == ()


def test_transaction_is_immutable(legacy_params):
    tx = build(TxKind.LEGACY, legacy_params)
    with pytest.raises(AttributeError):
        tx.nonce = 1


def test_infer_kind():
    assert infer_kind({"gas_price": "1"}) is TxKind.LEGACY
    assert infer_kind({"max_fee_per_gas": "1"}) is TxKind.EIP1559
    assert infer_kind({"max_priority_fee_per_gas": "1"}) is TxKind.EIP1559
    assert infer_kind({"type": "0x2", "gas_price": "1"}) is TxKind.EIP1559
    assert infer_kind({"type": 0}) is TxKind.LEGACY


def test_infer_kind_conflicting_fee_fields():
    with pytest.raises(ModelError) as e:
        infer_kind({"gas_price": "1", "max_fee_per_gas": "2"})
    assert e.value.code == "invalid_field"


def test_infer_kind_without_fee_fields():
    with pytest.raises(ModelError) as e:
        infer_kind({"nonce": "0"})
    assert e.value.code == "missing_field"


def test_unsupported_type():
    with pytest.raises(ModelError) as e:
        infer_kind({"type": "0x3"})
    assert e.value.code == "invalid_field"


def test_eip1559_without_chain_id_fails(eip1559_params):
    del eip1559_params["chain_id"]
    with pytest.raises(ModelError) as e:
        build(TxKind.EIP1559, eip1559_params)
    assert e.value.code == "missing_field"
    assert e.value.data == {"field": "chain_id"}


def test_legacy_without_chain_id_is_allowed(legacy_params):
    del legacy_params["chain_id"]
    tx = build(TxKind.LEGACY, legacy_params)
    assert tx.chain_id is None


@pytest.mark.parametrize("name", ["nonce", "gas_limit", "value", "gas_price"])
def test_missing_required_legacy_field(legacy_params, name):
    del legacy_params[name]
    with pytest.raises(ModelError) as e:
        build(TxKind.LEGACY, legacy_params)
    assert e.value.code == "missing_field"
    assert e.value.data["field"] == name


def test_empty_string_counts_as_missing(eip1559_params):
    eip1559_params["max_fee_per_gas"] = "  "
    with pytest.raises(ModelError) as e:
        build(TxKind.EIP1559, eip1559_params)
    assert e.value.data["field"] == "max_fee_per_gas"


def test_stray_fee_field_rejected(legacy_params):
    legacy_params["max_fee_per_gas"] = "1"
    with pytest.raises(ModelError) as e:
        build(TxKind.LEGACY, legacy_params)
    assert e.value.code == "invalid_field"


def test_contract_creation_with_data(legacy_params):
    del legacy_params["to"]
    legacy_params["data"] = "0x6080604052"
    tx = build(TxKind.LEGACY, legacy_params)
    assert tx.to is None
    assert tx.is_contract_creation
    assert tx.data == bytes.fromhex("6080604052")


@pytest.mark.parametrize("to", [None, "", "0x"])
def test_contract_creation_without_data_fails(legacy_params, to):
    if to is None:
        del legacy_params["to"]
    else:
        legacy_params["to"] = to
    with pytest.raises(ModelError) as e:
        build(TxKind.LEGACY, legacy_params)
    assert e.value.code == "invalid_creation"


def test_non_hex_to_rejected(legacy_params):
    legacy_params["to"] = "0xnothex"
    with pytest.raises(ParseError):
        build(TxKind.LEGACY, legacy_params)


def test_nonce_overflow(legacy_params):
    legacy_params["nonce"] = str(2**64)
    with pytest.raises(ParseError) as e:
        build(TxKind.LEGACY, legacy_params)
    assert e.value.code == "overflow"


def test_to_address_and_input_aliases(legacy_params):
    legacy_params["to_address"] = legacy_params.pop("to")
    legacy_params["input"] = "0x01"
    del legacy_params["data"]
    tx = build(TxKind.LEGACY, legacy_params)
    assert tx.to == bytes(20)
    assert tx.data == b"\x01"


def test_alias_conflict():
    with pytest.raises(ModelError) as e:
        normalize_fields({"to": "0x00", "to_address": "0x01"})
    assert e.value.code == "invalid_field"


def test_to_dict_has_no_raw_data(eip1559_params):
    eip1559_params["data"] = "0xa9059cbb"
    d = build(TxKind.EIP1559, eip1559_params).to_dict()
    assert d["kind"] == "eip1559"
    assert d["data_bytes"] == 4
    assert d["to"] == "0x3535353535353535353535353535353535353535"
