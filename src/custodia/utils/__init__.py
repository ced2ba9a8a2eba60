"""Utility modules for custodia."""

from custodia.utils.deadline import Deadline
from custodia.utils.locks import LockTimeoutError, WalletLock, clear_wallet_locks, get_wallet_lock


def pretty_print_object(name: str, /, **details) -> str:
    """Render `Name{key: 'value', ...}`, skipping unset values."""
    fields = ", ".join(f"{key}: '{value}'" for key, value in details.items() if value is not None)
    return f"{name}{{{fields}}}"


__all__ = [
    "Deadline",
    "LockTimeoutError",
    "WalletLock",
    "clear_wallet_locks",
    "get_wallet_lock",
    "pretty_print_object",
]
