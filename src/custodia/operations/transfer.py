"""Transfers: move an asset from a wallet address to a destination."""

import logging
from decimal import Decimal
from typing import Any, Optional

from custodia.asset import Amount, Asset
from custodia.destination import DestinationRef, resolve_destination
from custodia.network import normalize_network_id
from custodia.operations.base import Signable, SingleTransactionOperation
from custodia.pagination import PageEnumerator
from custodia.status import OperationKind, OperationStatus
from custodia.transaction import SponsoredSend, Transaction

logger = logging.getLogger(__name__)


class Transfer(SingleTransactionOperation):
    """A transfer, either a regular transaction or a gasless sponsored send."""

    kind = OperationKind.TRANSFER
    label = "Transfer"
    id_field = "transfer_id"

    @classmethod
    def create(
        cls,
        api: Any,
        wallet_id: str,
        address_id: str,
        network_id: str,
        amount: Amount,
        asset_id: str,
        destination: DestinationRef,
        gasless: bool = False,
    ) -> "Transfer":
        """Create a transfer on the service.

        Args:
            api: ApiClient
            wallet_id: Sending wallet
            address_id: Sending address
            network_id: Network of the sending address
            amount: Amount in units of asset_id
            asset_id: Asset or denomination (eth, gwei, wei, usdc, ...)
            destination: Address string, Address, Wallet or Destination
            gasless: Whether a sponsor pays the gas
        """
        network_id = normalize_network_id(network_id)
        asset = Asset.fetch(api, network_id, asset_id)
        resolved = resolve_destination(destination, network_id)

        model = api.create_transfer(
            wallet_id,
            address_id,
            {
                "amount": str(asset.to_atomic_amount(amount)),
                "asset_id": asset.primary_denomination,
                "network_id": network_id,
                "destination": resolved.address_id,
                "gasless": gasless,
            },
        )
        transfer = cls(api, model)
        logger.info(f"Created {transfer}")
        return transfer

    @property
    def destination_address_id(self) -> Optional[str]:
        return self._model.get("destination")

    @property
    def asset_id(self) -> Optional[str]:
        return self._model.get("asset_id")

    @property
    def asset(self) -> Optional[Asset]:
        model = self._model.get("asset")
        return Asset.from_model(model) if model else None

    @property
    def amount(self) -> Decimal:
        asset = self.asset
        atomic = self._model.get("amount") or 0
        return asset.from_atomic_amount(atomic) if asset else Decimal(int(atomic))

    @property
    def gasless(self) -> bool:
        return bool(self._model.get("gasless"))

    @property
    def sponsored_send(self) -> Optional[SponsoredSend]:
        for item in self._signables:
            if isinstance(item, SponsoredSend):
                return item
        return None

    @property
    def status(self) -> OperationStatus:
        sponsored = self.sponsored_send
        if sponsored is not None:
            return sponsored.status
        return super().status

    @property
    def transaction_hash(self) -> Optional[str]:
        sponsored = self.sponsored_send
        return sponsored.transaction_hash if sponsored else super().transaction_hash

    @property
    def transaction_link(self) -> Optional[str]:
        sponsored = self.sponsored_send
        return sponsored.transaction_link if sponsored else super().transaction_link

    def _build_signables(self, model: dict) -> list[Signable]:
        if model.get("gasless") and model.get("sponsored_send"):
            return [SponsoredSend(model["sponsored_send"])]
        transaction = model.get("transaction")
        return [Transaction(transaction)] if transaction else []

    def _fetch(self) -> dict:
        return self._api.get_transfer(self.wallet_id, self.address_id, self.id)

    def _submit(self) -> dict:
        return self._api.broadcast_transfer(self.wallet_id, self.address_id, self.id, self._signed_payload())

    def _describe(self) -> dict:
        details = super()._describe()
        details.update(
            destination_address_id=self.destination_address_id,
            asset_id=self.asset_id,
            amount=self.amount,
        )
        return details

    @classmethod
    def list(cls, api: Any, wallet_id: str, address_id: str) -> PageEnumerator:
        return cls._enumerate(api, lambda page: api.list_transfers(wallet_id, address_id, page=page))
