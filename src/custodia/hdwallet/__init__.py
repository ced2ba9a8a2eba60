"""HD key derivation from a wallet seed."""

from custodia.hdwallet.base import SEED_LENGTH, DerivedKey, KeyDeriver, validate_seed
from custodia.hdwallet.eth import ETHKeyDeriver, derive_key

__all__ = [
    "SEED_LENGTH",
    "DerivedKey",
    "KeyDeriver",
    "ETHKeyDeriver",
    "derive_key",
    "validate_seed",
]
