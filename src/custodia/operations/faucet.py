"""Faucet transactions: testnet funds sent by the service to an address."""

from typing import Optional

from custodia.operations.base import Signable, SingleTransactionOperation
from custodia.status import OperationKind


class FaucetTransaction(SingleTransactionOperation):
    """A server-signed faucet transaction, identified by its transaction hash."""

    kind = OperationKind.FAUCET
    label = "Faucet transaction"

    @property
    def id(self) -> Optional[str]:
        return self.transaction_hash

    @property
    def network_id(self) -> Optional[str]:
        transaction = self.transaction
        return transaction.network_id if transaction else self._model.get("network_id")

    @property
    def address_id(self) -> Optional[str]:
        transaction = self.transaction
        return transaction.to_address_id if transaction else None

    @property
    def transaction_hash(self) -> Optional[str]:
        return super().transaction_hash or self._model.get("transaction_hash")

    @property
    def transaction_link(self) -> Optional[str]:
        return super().transaction_link or self._model.get("transaction_link")

    def _build_signables(self, model: dict) -> list[Signable]:
        # Signed by the faucet, nothing to do locally
        return []

    def _fetch(self) -> dict:
        return self._api.get_faucet_transaction(self.network_id, self.address_id, self.transaction_hash)

    def _describe(self) -> dict:
        return {
            "status": self.status.value,
            "transaction_hash": self.transaction_hash,
            "transaction_link": self.transaction_link,
        }
