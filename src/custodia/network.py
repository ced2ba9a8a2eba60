"""Supported blockchain networks.

All networks here are EVM chains: addresses are derived on the
m/44'/60'/0'/0 path and transactions use the EIP-1559 envelope.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Network:
    """Configuration for a blockchain network."""

    network_id: str
    display_name: str
    chain_id: int
    is_testnet: bool
    protocol_family: str = "evm"
    native_asset_id: str = "eth"
    explorer_url: str = ""


# ======================
# Network Configurations
# ======================

DEFAULT_NETWORK_ID = "base-sepolia"

NETWORKS: dict[str, Network] = {
    "base-sepolia": Network(
        network_id="base-sepolia",
        display_name="Base Sepolia",
        chain_id=84532,
        is_testnet=True,
        explorer_url="https://sepolia.basescan.org",
    ),
    "base-mainnet": Network(
        network_id="base-mainnet",
        display_name="Base",
        chain_id=8453,
        is_testnet=False,
        explorer_url="https://basescan.org",
    ),
    "ethereum-mainnet": Network(
        network_id="ethereum-mainnet",
        display_name="Ethereum",
        chain_id=1,
        is_testnet=False,
        explorer_url="https://etherscan.io",
    ),
    "ethereum-holesky": Network(
        network_id="ethereum-holesky",
        display_name="Ethereum Holesky",
        chain_id=17000,
        is_testnet=True,
        explorer_url="https://holesky.etherscan.io",
    ),
    "polygon-mainnet": Network(
        network_id="polygon-mainnet",
        display_name="Polygon",
        chain_id=137,
        is_testnet=False,
        native_asset_id="pol",
        explorer_url="https://polygonscan.com",
    ),
    "arbitrum-mainnet": Network(
        network_id="arbitrum-mainnet",
        display_name="Arbitrum One",
        chain_id=42161,
        is_testnet=False,
        explorer_url="https://arbiscan.io",
    ),
}


def normalize_network_id(network_id: str) -> str:
    """Normalize a network ID to its hyphenated form (base_sepolia -> base-sepolia)."""
    return str(network_id).strip().lower().replace("_", "-")


def get_network(network_id: str) -> Network:
    """Get the Network for an ID.

    Raises:
        ValueError: If the network is not supported
    """
    normalized = normalize_network_id(network_id)
    try:
        return NETWORKS[normalized]
    except KeyError:
        raise ValueError(f"Unsupported network: {network_id}") from None
