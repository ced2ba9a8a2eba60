"""Transaction and payload signing.

Provides the local signing implementation:
- LocalSigner: signs with a seed-derived key held in memory
"""

from custodia.signing.base import SignatureResult, SignerBackend
from custodia.signing.local import LocalSigner, as_signer

__all__ = [
    "SignatureResult",
    "SignerBackend",
    "LocalSigner",
    "as_signer",
]
