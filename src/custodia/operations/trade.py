"""Trades: swap one asset for another from a wallet address."""

import logging
from decimal import Decimal
from typing import Any, Optional

from custodia.asset import Amount, Asset
from custodia.network import normalize_network_id
from custodia.operations.base import Signable, SingleTransactionOperation
from custodia.pagination import PageEnumerator
from custodia.status import OperationKind
from custodia.transaction import Transaction

logger = logging.getLogger(__name__)


def _amount(model: dict, amount_field: str, asset_field: str) -> Optional[Decimal]:
    if model.get(amount_field) is None or not model.get(asset_field):
        return None
    return Asset.from_model(model[asset_field]).from_atomic_amount(model[amount_field])


class Trade(SingleTransactionOperation):
    """A trade; may carry an approve transaction that must be signed too."""

    kind = OperationKind.TRADE
    label = "Trade"
    id_field = "trade_id"
    default_timeout = 10.0

    @classmethod
    def create(
        cls,
        api: Any,
        wallet_id: str,
        address_id: str,
        network_id: str,
        amount: Amount,
        from_asset_id: str,
        to_asset_id: str,
    ) -> "Trade":
        network_id = normalize_network_id(network_id)
        from_asset = Asset.fetch(api, network_id, from_asset_id)
        to_asset = Asset.fetch(api, network_id, to_asset_id)

        model = api.create_trade(
            wallet_id,
            address_id,
            {
                "amount": str(from_asset.to_atomic_amount(amount)),
                "from_asset_id": from_asset.primary_denomination,
                "to_asset_id": to_asset.primary_denomination,
            },
        )
        trade = cls(api, model)
        logger.info(f"Created {trade}")
        return trade

    @property
    def from_asset_id(self) -> Optional[str]:
        asset = self._model.get("from_asset")
        return asset["asset_id"] if asset else None

    @property
    def to_asset_id(self) -> Optional[str]:
        asset = self._model.get("to_asset")
        return asset["asset_id"] if asset else None

    @property
    def from_amount(self) -> Optional[Decimal]:
        return _amount(self._model, "from_amount", "from_asset")

    @property
    def to_amount(self) -> Optional[Decimal]:
        return _amount(self._model, "to_amount", "to_asset")

    @property
    def approve_transaction(self) -> Optional[Transaction]:
        model = self._model.get("approve_transaction")
        if model is None:
            return None
        for item in self._signables:
            if isinstance(item, Transaction) and item.model is model:
                return item
        return Transaction(model)

    def _build_signables(self, model: dict) -> list[Signable]:
        signables = super()._build_signables(model)
        if model.get("approve_transaction"):
            signables.append(Transaction(model["approve_transaction"]))
        return signables

    def _fetch(self) -> dict:
        return self._api.get_trade(self.wallet_id, self.address_id, self.id)

    def _submit(self) -> dict:
        approve = self.approve_transaction
        return self._api.broadcast_trade(
            self.wallet_id,
            self.address_id,
            self.id,
            self.transaction.signature,
            approve_transaction_signed_payload=approve.signature if approve else None,
        )

    def _describe(self) -> dict:
        details = super()._describe()
        details.update(
            from_asset_id=self.from_asset_id,
            to_asset_id=self.to_asset_id,
            from_amount=self.from_amount,
            to_amount=self.to_amount,
        )
        return details

    @classmethod
    def list(cls, api: Any, wallet_id: str, address_id: str) -> PageEnumerator:
        return cls._enumerate(api, lambda page: api.list_trades(wallet_id, address_id, page=page))
