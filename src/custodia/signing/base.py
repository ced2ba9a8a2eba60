"""Base interfaces for local signing.

Signing flow:
1. Build the unsigned transaction (or receive a payload hash)
2. Hash it into a 32-byte message hash
3. Signer returns the signature (no raw private key exposure)
4. Attach the signature to the transaction
5. Broadcast the signed payload through the remote service
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

MESSAGE_HASH_LENGTH = 32


@dataclass(frozen=True)
class SignatureResult:
    """A recoverable secp256k1 signature.

    Attributes:
        v: Recovery id (0 or 1)
        r: R component of the signature
        s: S component of the signature
    """

    v: int
    r: int
    s: int

    def to_bytes(self) -> bytes:
        """r || s || v with v as the raw recovery id."""
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])

    def to_eth_bytes(self) -> bytes:
        """r || s || v with v offset by 27, as produced by eth_sign."""
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v + 27])

    def to_compact_bytes(self) -> bytes:
        """Header byte (27 + 4 + v, compressed key) followed by r || s."""
        return bytes([self.v + 31]) + self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big")


class SignerBackend(ABC):
    """Abstract base class for signing backends.

    Implementations should NEVER expose raw private keys.
    All signing operations return signatures only.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksum address of the signing key."""
        pass

    @abstractmethod
    def sign_hash(self, message_hash: bytes) -> SignatureResult:
        """Sign a 32-byte message hash.

        Args:
            message_hash: Hash to sign

        Returns:
            SignatureResult with the signature components
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(address={self.address})"
