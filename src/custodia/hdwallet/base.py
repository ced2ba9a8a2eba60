"""HD key derivation base interface.

A wallet seed is exactly 32 raw bytes. Keys are derived deterministically
along a fixed BIP44 path with the address index as the last component, so a
wallet restored from its seed reproduces the addresses it registered before.

Security: DerivedKey never prints its private key and is never sent to
the remote service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Union

from custodia.errors import InvalidSeedError

SEED_LENGTH = 32

# BIP32 hardened index boundary; address indexes stay below it
MAX_ADDRESS_INDEX = 2**31 - 1


def validate_seed(seed: Union[bytes, str]) -> bytes:
    """Validate a seed and return its raw bytes.

    Args:
        seed: 32 raw bytes, or the same as a hex string (optionally 0x-prefixed)

    Returns:
        The 32 seed bytes

    Raises:
        InvalidSeedError: If the seed is empty, not hex, or not 32 bytes
    """
    if isinstance(seed, str):
        hex_seed = seed[2:] if seed.startswith(("0x", "0X")) else seed
        if not hex_seed:
            raise InvalidSeedError("Seed must not be empty")
        try:
            seed = bytes.fromhex(hex_seed)
        except ValueError:
            raise InvalidSeedError("Seed must be a hex string") from None

    if not isinstance(seed, (bytes, bytearray)):
        raise InvalidSeedError(f"Seed must be bytes or hex string, got {type(seed).__name__}")

    if len(seed) != SEED_LENGTH:
        raise InvalidSeedError(f"Seed must be {SEED_LENGTH} bytes, got {len(seed)}")

    return bytes(seed)


@dataclass(frozen=True, repr=False)
class DerivedKey:
    """A secp256k1 key pair derived at a given address index."""

    index: int
    derivation_path: str
    address: str
    public_key: bytes  # 33-byte compressed
    private_key: bytes = field(compare=False)

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    def private_key_hex(self) -> str:
        """Return the private key as 0x-prefixed hex (for explicit export only)."""
        return "0x" + self.private_key.hex()

    def __repr__(self) -> str:
        return f"DerivedKey(index={self.index}, path='{self.derivation_path}', address='{self.address}')"


class KeyDeriver(ABC):
    """Abstract base class for seed-based key derivation.

    Usage:
        deriver = ETHKeyDeriver(seed)
        key = deriver.derive(index=0)
    """

    @property
    @abstractmethod
    def coin_type(self) -> int:
        """BIP44 coin type number."""
        pass

    @property
    @abstractmethod
    def purpose(self) -> int:
        """BIP purpose number (44, 49, 84, etc.)."""
        pass

    @abstractmethod
    def derive(self, index: int) -> DerivedKey:
        """Derive the key pair at the given address index."""
        pass

    def get_derivation_path(self, index: int, change: int = 0) -> str:
        """Get the full derivation path for an index.

        Format: m/purpose'/coin_type'/0'/change/index
        """
        if not 0 <= index <= MAX_ADDRESS_INDEX:
            raise ValueError(f"Address index out of range: {index}")
        return f"m/{self.purpose}'/{self.coin_type}'/0'/{change}/{index}"
