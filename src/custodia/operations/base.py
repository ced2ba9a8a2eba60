"""Shared lifecycle of long-running asset operations.

Lifecycle:
1. create: the service builds the operation and its unsigned transaction(s)
2. sign: every embedded transaction not yet signed is signed locally
3. broadcast: signed payloads are submitted, the snapshot is replaced
4. wait: reload until the status is terminal or the deadline passes

The local snapshot is only ever replaced wholesale, by reload() or by the
response to broadcast(). Instances are not thread-safe.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Optional, Union

from custodia.errors import OperationTimeoutError, TransactionNotSignedError
from custodia.pagination import PageEnumerator, enumerate_pages
from custodia.status import OperationKind, OperationStatus
from custodia.transaction import SponsoredSend, Transaction
from custodia.utils import Deadline, pretty_print_object

logger = logging.getLogger(__name__)

Signable = Union[Transaction, SponsoredSend]


class Operation(ABC):
    """Base class for every operation kind.

    Subclasses set the kind, the snapshot id field and the polling defaults,
    and implement _fetch() (and _submit() if they can be broadcast).
    """

    kind: ClassVar[OperationKind]
    label: ClassVar[str] = "Operation"
    id_field: ClassVar[str] = "id"
    default_interval: ClassVar[float] = 0.2
    default_timeout: ClassVar[float] = 20.0

    def __init__(self, api: Any, model: dict):
        self._api = api
        self._model = model
        self._signables: list[Signable] = self._build_signables(model)

    # ======================
    # Snapshot accessors
    # ======================

    @property
    def model(self) -> dict:
        return self._model

    @property
    def id(self) -> Optional[str]:
        return self._model.get(self.id_field)

    @property
    def wallet_id(self) -> Optional[str]:
        return self._model.get("wallet_id")

    @property
    def address_id(self) -> Optional[str]:
        return self._model.get("address_id")

    @property
    def network_id(self) -> Optional[str]:
        return self._model.get("network_id")

    @property
    def transactions(self) -> list[Signable]:
        """Embedded items that need a local signature."""
        return list(self._signables)

    @property
    def status(self) -> OperationStatus:
        return OperationStatus.parse(self._model.get("status"))

    @property
    def terminal(self) -> bool:
        return self.status.is_terminal(self.kind)

    @property
    def signed(self) -> bool:
        """True when every embedded transaction is signed (trivially so with none)."""
        return all(item.signed for item in self._signables)

    def _build_signables(self, model: dict) -> list[Signable]:
        return []

    def _replace(self, model: dict) -> None:
        previous = self.status
        self._model = model
        self._signables = self._build_signables(model)
        if self.status != previous:
            logger.info(f"{self.label} {self.id}: {previous.value} -> {self.status.value}")

    # ======================
    # Lifecycle
    # ======================

    @abstractmethod
    def _fetch(self) -> dict:
        """Fetch the latest snapshot from the service."""

    def _submit(self) -> dict:
        """Submit signed payloads and return the post-broadcast snapshot."""
        raise NotImplementedError(f"{self.label} cannot be broadcast")

    def sign(self, key: Any) -> "Operation":
        """Sign every embedded transaction that is not signed yet.

        Args:
            key: DerivedKey or SignerBackend
        """
        for item in self._signables:
            if not item.signed:
                item.sign(key)
        logger.debug(f"Signed {self.label} {self.id}")
        return self

    def broadcast(self) -> "Operation":
        """Submit the signed payload(s) and take the service's snapshot.

        Raises:
            TransactionNotSignedError: If any embedded transaction is unsigned
        """
        if not self.signed:
            raise TransactionNotSignedError(f"{self.label} {self.id} must be signed before broadcast")

        self._replace(self._submit())
        logger.info(f"Broadcast {self.label} {self.id}: {self.status.value}")
        return self

    def reload(self) -> "Operation":
        """Replace the local snapshot with the service's latest one."""
        self._replace(self._fetch())
        return self

    def wait(self, interval: Optional[float] = None, timeout: Optional[float] = None) -> "Operation":
        """Reload until the status is terminal.

        Args:
            interval: Seconds between reloads (kind default if None)
            timeout: Seconds before giving up (kind default if None)

        Raises:
            OperationTimeoutError: If the deadline passes first
        """
        interval = self.default_interval if interval is None else interval
        timeout = self.default_timeout if timeout is None else timeout
        deadline = Deadline(timeout, label=f"{self.label} {self.id}")

        try:
            while True:
                self.reload()
                if self.terminal:
                    return self
                deadline.check()
                deadline.sleep(interval)
                deadline.check()
        except OperationTimeoutError:
            logger.warning(f"{self.label} {self.id} not terminal after {timeout}s: {self.status.value}")
            raise

    # ======================
    # Listing
    # ======================

    @classmethod
    def _enumerate(cls, api: Any, fetch_page: Callable[[Optional[str]], dict]) -> PageEnumerator:
        return enumerate_pages(fetch_page, build=lambda model: cls(api, model))

    def _describe(self) -> dict:
        return {
            "id": self.id,
            "wallet_id": self.wallet_id,
            "address_id": self.address_id,
            "network_id": self.network_id,
            "status": self.status.value,
        }

    def __str__(self) -> str:
        return pretty_print_object(self.__class__.__name__, **self._describe())

    __repr__ = __str__


class SingleTransactionOperation(Operation):
    """An operation carrying exactly one chain transaction."""

    @property
    def transaction(self) -> Optional[Transaction]:
        model = self._model.get("transaction")
        if model is None:
            return None
        for item in self._signables:
            if isinstance(item, Transaction) and item.model is model:
                return item
        return Transaction(model)

    @property
    def transaction_hash(self) -> Optional[str]:
        return self.transaction.transaction_hash if self.transaction else None

    @property
    def transaction_link(self) -> Optional[str]:
        return self.transaction.transaction_link if self.transaction else None

    @property
    def status(self) -> OperationStatus:
        if self.transaction is not None:
            return self.transaction.status
        return super().status

    def _build_signables(self, model: dict) -> list[Signable]:
        transaction = model.get("transaction")
        return [Transaction(transaction)] if transaction else []

    def _signed_payload(self) -> str:
        return self._signables[0].signature

    def _describe(self) -> dict:
        details = super()._describe()
        details["transaction_hash"] = self.transaction_hash
        details["transaction_link"] = self.transaction_link
        return details
