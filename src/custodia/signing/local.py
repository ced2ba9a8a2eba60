"""Local signing backend.

Signs with a key derived from the wallet seed, held in memory for the
lifetime of the WalletAddress that owns it.
"""

import logging

from eth_keys import keys
from eth_utils import add_0x_prefix, decode_hex

from custodia.hdwallet.base import DerivedKey
from custodia.signing.base import MESSAGE_HASH_LENGTH, SignatureResult, SignerBackend

logger = logging.getLogger(__name__)


class LocalSigner(SignerBackend):
    """Local signing backend using an in-memory derived key."""

    def __init__(self, key: DerivedKey):
        self._key = key
        self._private_key = keys.PrivateKey(key.private_key)

    @property
    def address(self) -> str:
        return self._key.address

    @property
    def public_key(self) -> keys.PublicKey:
        return self._private_key.public_key

    def sign_hash(self, message_hash: bytes) -> SignatureResult:
        """Sign a message hash with the local private key."""
        if len(message_hash) != MESSAGE_HASH_LENGTH:
            raise ValueError(
                f"Message hash must be {MESSAGE_HASH_LENGTH} bytes, got {len(message_hash)}"
            )

        signature = self._private_key.sign_msg_hash(message_hash)
        logger.debug(f"Signed hash 0x{message_hash.hex()} with {self.address}")

        return SignatureResult(v=signature.v, r=signature.r, s=signature.s)

    def sign_payload(self, unsigned_payload: str) -> str:
        """Sign a hex-encoded 32-byte payload hash.

        Returns:
            0x-prefixed hex signature (r || s || v, v offset by 27)
        """
        message_hash = decode_hex(add_0x_prefix(unsigned_payload))
        return "0x" + self.sign_hash(message_hash).to_eth_bytes().hex()


def as_signer(key) -> SignerBackend:
    """Accept either a DerivedKey or an existing backend."""
    if isinstance(key, SignerBackend):
        return key
    if isinstance(key, DerivedKey):
        return LocalSigner(key)
    raise TypeError(f"Invalid key type: {type(key).__name__}")
