"""Operation status shared by every asset-moving operation kind.

Shape: PENDING -> (SIGNED) -> BROADCAST -> {COMPLETE | FAILED}

SIGNED is skipped when the service signs on the caller's behalf. Which
labels are terminal depends on the operation kind: a payload signature is
finished once SIGNED, everything else once COMPLETE or FAILED.
"""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    """Kind of long-running operation."""

    TRANSACTION = "transaction"
    TRANSFER = "transfer"
    TRADE = "trade"
    CONTRACT_INVOCATION = "contract_invocation"
    STAKING = "staking_operation"
    PAYLOAD_SIGNATURE = "payload_signature"
    SPONSORED_SEND = "sponsored_send"
    FAUCET = "faucet_transaction"
    FUND = "fund_operation"
    SMART_CONTRACT = "smart_contract"


class OperationStatus(str, Enum):
    """Status of an operation or of one of its embedded transactions."""

    INITIALIZED = "initialized"  # Staking: created, no transactions yet
    PENDING = "pending"          # Created, awaiting signature or broadcast
    SIGNED = "signed"            # Signed locally, not yet broadcast
    SUBMITTED = "submitted"      # Sponsored send handed to the sponsor
    BROADCAST = "broadcast"      # Sent to network
    COMPLETE = "complete"        # Confirmed on the network
    FAILED = "failed"            # Failed at any stage
    UNSPECIFIED = "unspecified"  # Service did not report a status

    @classmethod
    def parse(cls, value: Optional[str]) -> "OperationStatus":
        """Parse a service status label; unknown labels map to UNSPECIFIED."""
        if value is None:
            return cls.UNSPECIFIED
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning(f"Unknown operation status: {value}")
            return cls.UNSPECIFIED

    def is_terminal(self, kind: OperationKind = OperationKind.TRANSACTION) -> bool:
        """Whether no further transition can leave this status for `kind`."""
        return self in TERMINAL_STATUSES.get(kind, DEFAULT_TERMINAL_STATUSES)


DEFAULT_TERMINAL_STATUSES = frozenset({OperationStatus.COMPLETE, OperationStatus.FAILED})

TERMINAL_STATUSES: dict[OperationKind, frozenset] = {
    OperationKind.PAYLOAD_SIGNATURE: frozenset({OperationStatus.SIGNED, OperationStatus.FAILED}),
}
