import logging
import os
import sys

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from observability.logging import LOGGER_NAME

# Hardhat/anvil default account #0; public test key, never holds real funds.
TEST_PRIVATE_KEY_HEX = "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

SEPOLIA_CHAIN_ID = 11155111
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@pytest.fixture
def private_key():
    return bytes.fromhex(TEST_PRIVATE_KEY_HEX)


@pytest.fixture
def legacy_params():
    return {
        "nonce": "0",
        "to": ZERO_ADDRESS,
        "value": "0",
        "gas_price": "1000000000",
        "gas_limit": "21000",
        "data": "",
        "chain_id": str(SEPOLIA_CHAIN_ID),
    }


@pytest.fixture
def eip1559_params():
    return {
        "nonce": "0x7",
        "to": "0x3535353535353535353535353535353535353535",
        "value": "1000000000000000",
        "gas_limit": "0x5208",
        "max_fee_per_gas": "0x77359400",
        "max_priority_fee_per_gas": "0x3b9aca00",
        "data": "0x",
        "chain_id": str(SEPOLIA_CHAIN_ID),
    }


@pytest.fixture(autouse=True)
def _reset_rawtx_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_rawtx_handler", False):
            logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def _clean_signer_env(monkeypatch):
    for k in list(os.environ.keys()):
        if k.startswith("SIGNER_") or k in {"PRIVATE_KEY", "CHAIN_ID", "GAS_PRICE", "MAX_FEE_PER_GAS", "MAX_PRIORITY_FEE_PER_GAS", "RAWTX_LOG_LEVEL"}:
            monkeypatch.delenv(k, raising=False)
