"""Staking operations: stake, unstake and claim rewards.

A staking operation may produce its transactions over time: the service
adds them to the snapshot as earlier steps settle. complete() drives the
operation to a terminal status by repeatedly signing whatever is new,
broadcasting it by index and reloading.
"""

import logging
from typing import Any, Optional

from custodia.asset import Amount, Asset
from custodia.errors import ExternalOperationError, TransactionNotSignedError
from custodia.network import normalize_network_id
from custodia.operations.base import Operation, Signable
from custodia.status import OperationKind
from custodia.transaction import Transaction
from custodia.utils import Deadline

logger = logging.getLogger(__name__)

STAKING_ACTIONS = ("stake", "unstake", "claim_stake")


def _request_body(
    api: Any,
    network_id: str,
    asset_id: str,
    amount: Optional[Amount],
    action: str,
    mode: str,
    options: Optional[dict],
) -> dict:
    if action not in STAKING_ACTIONS:
        raise ValueError(f"Unsupported staking action: {action}")

    network_id = normalize_network_id(network_id)
    merged_options = {"mode": mode, **(options or {})}
    if amount is not None:
        asset = Asset.fetch(api, network_id, asset_id)
        merged_options["amount"] = str(asset.to_atomic_amount(amount))

    return {
        "network_id": network_id,
        "asset_id": asset_id,
        "action": action,
        "options": merged_options,
    }


class StakingOperation(Operation):
    kind = OperationKind.STAKING
    label = "Staking operation"
    default_interval = 5.0
    default_timeout = 600.0

    def __init__(self, api: Any, model: dict):
        self._broadcast_payloads: set[str] = set()
        super().__init__(api, model)

    @classmethod
    def create(
        cls,
        api: Any,
        wallet_id: str,
        address_id: str,
        network_id: str,
        asset_id: str,
        action: str,
        amount: Optional[Amount] = None,
        mode: str = "default",
        options: Optional[dict] = None,
    ) -> "StakingOperation":
        """Create a staking operation for a wallet address."""
        body = _request_body(api, network_id, asset_id, amount, action, mode, options)
        operation = cls(api, api.create_staking_operation(wallet_id, address_id, body))
        logger.info(f"Created {operation}")
        return operation

    @classmethod
    def build(
        cls,
        api: Any,
        network_id: str,
        address_id: str,
        asset_id: str,
        action: str,
        amount: Optional[Amount] = None,
        mode: str = "default",
        options: Optional[dict] = None,
    ) -> "StakingOperation":
        """Build a staking operation for an external address.

        The caller signs and broadcasts the resulting transactions with its
        own tooling; the operation can still be reloaded and waited on.
        """
        body = _request_body(api, network_id, asset_id, amount, action, mode, options)
        body["address_id"] = address_id
        return cls(api, api.build_staking_operation(body))

    def _build_signables(self, model: dict) -> list[Signable]:
        """Wrap transaction snapshots, keeping local signatures across reloads."""
        existing = {
            item.unsigned_payload: item
            for item in getattr(self, "_signables", [])
            if isinstance(item, Transaction) and item.unsigned_payload
        }

        signables: list[Signable] = []
        for transaction in model.get("transactions") or []:
            local = existing.get(transaction.get("unsigned_payload"))
            if local is not None and local.signed and not transaction.get("signed_payload"):
                signables.append(local)
            else:
                signables.append(Transaction(transaction))
        return signables

    def _fetch(self) -> dict:
        if self.wallet_id is None:
            return self._api.get_external_staking_operation(self.network_id, self.address_id, self.id)
        return self._api.get_staking_operation(self.wallet_id, self.address_id, self.id)

    def broadcast(self) -> "StakingOperation":
        """Broadcast every signed transaction not yet broadcast, by index.

        Raises:
            ExternalOperationError: If the operation was built for an external address
            TransactionNotSignedError: If any transaction is unsigned
        """
        if self.wallet_id is None:
            raise ExternalOperationError(f"{self.label} {self.id}", "broadcast")
        if not self.signed:
            raise TransactionNotSignedError(f"{self.label} {self.id} must be signed before broadcast")

        for index, transaction in enumerate(self.transactions):
            if transaction.signed_payload or transaction.unsigned_payload in self._broadcast_payloads:
                continue
            model = self._api.broadcast_staking_operation(
                self.wallet_id,
                self.address_id,
                self.id,
                transaction.signature,
                transaction_index=index,
            )
            self._broadcast_payloads.add(transaction.unsigned_payload)
            logger.info(f"Broadcast {self.label} {self.id} transaction {index}")
            self._replace(model)

        return self

    def complete(
        self,
        key: Any = None,
        interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> "StakingOperation":
        """Sign, broadcast and reload until the operation is terminal.

        Args:
            key: DerivedKey or SignerBackend; None when a server signer is in use
            interval: Seconds between reloads
            timeout: Seconds before giving up

        Raises:
            OperationTimeoutError: If the deadline passes first
        """
        interval = self.default_interval if interval is None else interval
        timeout = self.default_timeout if timeout is None else timeout
        deadline = Deadline(timeout, label=f"{self.label} {self.id}")

        while True:
            if key is not None:
                self.sign(key)
                self.broadcast()
            if self.terminal:
                return self
            deadline.check()
            deadline.sleep(interval)
            deadline.check()
            self.reload()
