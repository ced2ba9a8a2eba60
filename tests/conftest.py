"""Pytest configuration and fixtures."""

import os
from unittest.mock import MagicMock

import pytest

# Keep a developer's .env out of the test run
os.environ["CUSTODIA_API_URL"] = "https://api.test.invalid/platform"
os.environ["CUSTODIA_LOG_LEVEL"] = "DEBUG"

from custodia.api.client import ApiClient
from custodia.hdwallet import derive_key
from custodia.transaction import Eip1559Transaction
from custodia.utils import clear_wallet_locks

NETWORK_ID = "base-sepolia"
CHAIN_ID = 84532
RECIPIENT = "0x000000000000000000000000000000000000dEaD"

ASSET_MODELS = {
    "eth": {"network_id": NETWORK_ID, "asset_id": "eth", "decimals": 18},
    "usdc": {
        "network_id": NETWORK_ID,
        "asset_id": "usdc",
        "decimals": 6,
        "contract_address": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
    },
}


@pytest.fixture(autouse=True)
def reset_locks():
    """Clear wallet locks before each test."""
    clear_wallet_locks()
    yield
    clear_wallet_locks()


@pytest.fixture
def zero_seed() -> bytes:
    """The fixed all-zero 32-byte seed."""
    return bytes(32)


@pytest.fixture
def zero_key(zero_seed):
    """Key at index 0 of the zero seed."""
    return derive_key(zero_seed, 0)


@pytest.fixture
def make_eip1559():
    """Factory for unsigned EIP-1559 transactions."""

    def _make(**overrides) -> Eip1559Transaction:
        params = {
            "chain_id": CHAIN_ID,
            "nonce": 0,
            "max_priority_fee_per_gas": 1_000_000,
            "max_fee_per_gas": 2_000_000_000,
            "gas_limit": 21_000,
            "to": RECIPIENT,
            "value": 10**18,
            "data": b"",
        }
        params.update(overrides)
        return Eip1559Transaction(**params)

    return _make


@pytest.fixture
def make_transaction_model(make_eip1559, zero_key):
    """Factory for remote transaction snapshots with an unsigned payload."""

    def _make(status: str = "pending", nonce: int = 0, **overrides) -> dict:
        model = {
            "network_id": NETWORK_ID,
            "from_address_id": zero_key.address,
            "to_address_id": RECIPIENT,
            "unsigned_payload": make_eip1559(nonce=nonce).to_unsigned_payload(),
            "status": status,
        }
        model.update(overrides)
        return model

    return _make


@pytest.fixture
def fake_api():
    """ApiClient double; assets resolve from ASSET_MODELS."""
    api = MagicMock(spec=ApiClient)
    api.get_asset.side_effect = lambda network_id, asset_id: dict(ASSET_MODELS[asset_id])
    api.default_network_id = NETWORK_ID
    api.use_server_signer = False
    return api
