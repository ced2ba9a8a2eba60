"""Concurrency control for wallet address allocation.

Provides per-wallet locking so that concurrent create_address calls on the
same wallet never derive the same index twice.
"""

import logging
import threading
from typing import Optional

from custodia.errors import CustodiaError

logger = logging.getLogger(__name__)

# Global lock registry: wallet_id -> threading.Lock
_wallet_locks: dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def get_wallet_lock(wallet_id: str) -> threading.Lock:
    """Get or create the lock for a specific wallet.

    Args:
        wallet_id: Remote wallet identifier

    Returns:
        threading.Lock shared by every Wallet instance with this id
    """
    with _registry_lock:
        if wallet_id not in _wallet_locks:
            _wallet_locks[wallet_id] = threading.Lock()
        return _wallet_locks[wallet_id]


class LockTimeoutError(CustodiaError):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


class WalletLock:
    """Context manager for exclusive access to a wallet's address counter.

    Example:
        with WalletLock(wallet.id, operation="create_address"):
            index = len(wallet.addresses)
            ...
    """

    def __init__(
        self,
        wallet_id: str,
        timeout: Optional[float] = 30.0,
        operation: str = "address_allocation",
    ):
        """Initialize the lock.

        Args:
            wallet_id: Remote wallet identifier
            timeout: Maximum time to wait for lock (None = wait forever)
            operation: Description of the operation for logging
        """
        self.wallet_id = wallet_id
        self.timeout = timeout
        self.operation = operation
        self._lock: Optional[threading.Lock] = None
        self._acquired = False

    def __enter__(self) -> "WalletLock":
        self._lock = get_wallet_lock(self.wallet_id)

        if self.timeout:
            self._acquired = self._lock.acquire(timeout=self.timeout)
        else:
            self._acquired = self._lock.acquire()

        if not self._acquired:
            logger.warning(
                f"Lock timeout for wallet {self.wallet_id} after {self.timeout}s: {self.operation}"
            )
            raise LockTimeoutError(
                f"Could not acquire lock for wallet {self.wallet_id} within {self.timeout}s"
            )

        logger.debug(f"Lock acquired for wallet {self.wallet_id}: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            logger.debug(f"Lock released for wallet {self.wallet_id}: {self.operation}")
        return False


def clear_wallet_locks() -> None:
    """Clear all wallet locks (useful for testing)."""
    with _registry_lock:
        _wallet_locks.clear()
