"""Fund operations: buy crypto into a wallet address with fiat.

Settlement happens on the service side; there is nothing to sign or
broadcast, only to wait for. A FundQuote prices a fund operation up
front and can be passed to FundOperation.create() to lock that price.
"""

import logging
from decimal import Decimal
from typing import Any, Optional, Union

from custodia.asset import Amount, Asset
from custodia.network import normalize_network_id
from custodia.operations.base import Operation
from custodia.pagination import PageEnumerator
from custodia.status import OperationKind
from custodia.utils import pretty_print_object

logger = logging.getLogger(__name__)


def _crypto_asset(crypto_amount: Optional[dict]) -> Optional[Asset]:
    if not crypto_amount or not crypto_amount.get("asset"):
        return None
    return Asset.from_model(crypto_amount["asset"])


def _crypto_value(crypto_amount: Optional[dict]) -> Optional[Decimal]:
    asset = _crypto_asset(crypto_amount)
    if asset is None:
        return None
    return asset.from_atomic_amount(crypto_amount["amount"])


def _fiat_value(fiat_amount: Optional[dict]) -> Optional[Decimal]:
    return Decimal(fiat_amount["amount"]) if fiat_amount else None


def _fund_request(api: Any, network_id: str, amount: Amount, asset_id: str) -> dict:
    asset = Asset.fetch(api, normalize_network_id(network_id), asset_id)
    return {"amount": str(asset.to_atomic_amount(amount)), "asset_id": asset.primary_denomination}


class FundQuote:
    """Price of buying an amount of crypto into a wallet address.

    Amounts are Decimals: crypto ones in whole units of the asset, fiat
    ones in fiat_currency.
    """

    def __init__(self, api: Any, model: dict):
        self._api = api
        self._model = model

    @classmethod
    def create(
        cls,
        api: Any,
        wallet_id: str,
        address_id: str,
        network_id: str,
        amount: Amount,
        asset_id: str,
    ) -> "FundQuote":
        model = api.create_fund_quote(wallet_id, address_id, _fund_request(api, network_id, amount, asset_id))
        quote = cls(api, model)
        logger.info(f"Created {quote}")
        return quote

    @property
    def model(self) -> dict:
        return self._model

    @property
    def id(self) -> str:
        return self._model["fund_quote_id"]

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
    def asset(self) -> Optional[Asset]:
        return _crypto_asset(self._model.get("crypto_amount"))

    @property
    def amount(self) -> Optional[Decimal]:
        """Crypto the address receives."""
        return _crypto_value(self._model.get("crypto_amount"))

    @property
    def fiat_amount(self) -> Optional[Decimal]:
        """Fiat the owner pays, fees included."""
        return _fiat_value(self._model.get("fiat_amount"))

    @property
    def fiat_currency(self) -> Optional[str]:
        fiat = self._model.get("fiat_amount")
        return fiat.get("currency") if fiat else None

    @property
    def buy_fee(self) -> Optional[Decimal]:
        """Fiat fee for buying the crypto."""
        return _fiat_value((self._model.get("fees") or {}).get("buy_fee"))

    @property
    def transfer_fee(self) -> Optional[Decimal]:
        """Crypto fee for sending the bought crypto to the address."""
        return _crypto_value((self._model.get("fees") or {}).get("transfer_fee"))

    def __str__(self) -> str:
        return pretty_print_object(
            "FundQuote",
            network_id=self.network_id,
            wallet_id=self.wallet_id,
            address_id=self.address_id,
            crypto_amount=self.amount,
            fiat_amount=self.fiat_amount,
            buy_fee=self.buy_fee,
            transfer_fee=self.transfer_fee,
        )

    __repr__ = __str__


class FundOperation(Operation):
    kind = OperationKind.FUND
    label = "Fund operation"
    id_field = "fund_operation_id"
    default_interval = 1.0
    default_timeout = 30.0

    @classmethod
    def create(
        cls,
        api: Any,
        wallet_id: str,
        address_id: str,
        network_id: str,
        amount: Amount,
        asset_id: str,
        quote: Optional[Union[FundQuote, str]] = None,
    ) -> "FundOperation":
        """Start buying amount of asset_id into the address.

        Args:
            quote: FundQuote (or its id) whose price to use; the service prices it otherwise
        """
        body = _fund_request(api, network_id, amount, asset_id)
        body["fund_quote_id"] = quote.id if isinstance(quote, FundQuote) else quote
        operation = cls(api, api.create_fund_operation(wallet_id, address_id, body))
        logger.info(f"Created {operation}")
        return operation

    @property
    def asset(self) -> Optional[Asset]:
        return _crypto_asset(self._model.get("crypto_amount"))

    @property
    def amount(self) -> Optional[Decimal]:
        return _crypto_value(self._model.get("crypto_amount"))

    @property
    def fiat_amount(self) -> Optional[Decimal]:
        return _fiat_value(self._model.get("fiat_amount"))

    @property
    def fiat_currency(self) -> Optional[str]:
        fiat = self._model.get("fiat_amount")
        return fiat.get("currency") if fiat else None

    def _fetch(self) -> dict:
        return self._api.get_fund_operation(self.wallet_id, self.address_id, self.id)

    def _describe(self) -> dict:
        details = super()._describe()
        asset = self.asset
        details.update(amount=self.amount, asset_id=asset.asset_id if asset else None)
        return details

    @classmethod
    def list(cls, api: Any, wallet_id: str, address_id: str) -> PageEnumerator:
        return cls._enumerate(api, lambda page: api.list_fund_operations(wallet_id, address_id, page=page))
