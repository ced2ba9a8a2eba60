"""ETH key derivation using BIP32/BIP44.

Derivation path: m/44'/60'/0'/0/index
Address format: 0x... (checksum encoded)

Works for every EVM network in custodia.network.
"""

import logging
from typing import Union

from bip_utils import Bip32Secp256k1, EthAddrEncoder

from custodia.hdwallet.base import DerivedKey, KeyDeriver, validate_seed

logger = logging.getLogger(__name__)


class ETHKeyDeriver(KeyDeriver):
    """Ethereum key deriver seeded with 32 raw bytes.

    Example:
        deriver = ETHKeyDeriver(bytes(32))
        key = deriver.derive(0)
        # DerivedKey(index=0, address="0x...", ...)
    """

    def __init__(self, seed: Union[bytes, str]):
        """Initialize the BIP32 master key from a seed.

        Args:
            seed: 32-byte seed (raw or hex)

        Raises:
            InvalidSeedError: If the seed is malformed
        """
        self._master = Bip32Secp256k1.FromSeed(validate_seed(seed))

    @property
    def coin_type(self) -> int:
        return 60  # ETH coin type for all EVM chains

    @property
    def purpose(self) -> int:
        return 44

    def derive(self, index: int) -> DerivedKey:
        """Derive the ETH key pair at the given index.

        Args:
            index: Address index (0, 1, 2, ...)

        Returns:
            DerivedKey with checksum address
        """
        path = self.get_derivation_path(index)
        child = self._master.DerivePath(path)

        # ETH addresses hash the uncompressed public key
        uncompressed = child.PublicKey().RawUncompressed().ToBytes()
        address = EthAddrEncoder.EncodeKey(uncompressed)

        logger.debug(f"Derived address {address} at {path}")

        return DerivedKey(
            index=index,
            derivation_path=path,
            address=address,
            public_key=child.PublicKey().RawCompressed().ToBytes(),
            private_key=child.PrivateKey().Raw().ToBytes(),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(path_prefix=m/{self.purpose}'/{self.coin_type}'/0'/0)"


def derive_key(seed: Union[bytes, str], index: int) -> DerivedKey:
    """Derive the key at `index` for `seed`. Pure and deterministic."""
    return ETHKeyDeriver(seed).derive(index)
