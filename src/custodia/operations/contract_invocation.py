"""Contract invocations: call a smart contract method from a wallet address."""

import json
import logging
from decimal import Decimal
from typing import Any, Optional

from custodia.asset import Amount, Asset
from custodia.network import normalize_network_id
from custodia.operations.base import SingleTransactionOperation
from custodia.pagination import PageEnumerator
from custodia.status import OperationKind

logger = logging.getLogger(__name__)


class ContractInvocation(SingleTransactionOperation):
    kind = OperationKind.CONTRACT_INVOCATION
    label = "Contract invocation"
    id_field = "contract_invocation_id"

    @classmethod
    def create(
        cls,
        api: Any,
        wallet_id: str,
        address_id: str,
        network_id: str,
        contract_address: str,
        method: str,
        abi: Optional[list] = None,
        args: Optional[dict] = None,
        amount: Optional[Amount] = None,
        asset_id: Optional[str] = None,
    ) -> "ContractInvocation":
        """Create a contract invocation on the service.

        Args:
            contract_address: Contract to call
            method: Method name
            abi: Contract ABI (JSON-serializable)
            args: Method arguments by name
            amount: Optional native value sent with the call, in units of asset_id
            asset_id: Denomination of amount
        """
        atomic_amount = None
        if amount is not None and asset_id:
            asset = Asset.fetch(api, normalize_network_id(network_id), asset_id)
            atomic_amount = str(asset.to_atomic_amount(amount))

        model = api.create_contract_invocation(
            wallet_id,
            address_id,
            {
                "contract_address": contract_address,
                "method": method,
                "abi": json.dumps(abi) if abi is not None else None,
                "args": json.dumps(args or {}),
                "amount": atomic_amount,
            },
        )
        invocation = cls(api, model)
        logger.info(f"Created {invocation}")
        return invocation

    @property
    def contract_address(self) -> Optional[str]:
        return self._model.get("contract_address")

    @property
    def method(self) -> Optional[str]:
        return self._model.get("method")

    @property
    def abi(self) -> Optional[list]:
        raw = self._model.get("abi")
        return json.loads(raw) if raw else None

    @property
    def args(self) -> dict:
        raw = self._model.get("args")
        return json.loads(raw) if raw else {}

    @property
    def amount(self) -> Decimal:
        return Decimal(self._model.get("amount") or 0)

    def _fetch(self) -> dict:
        return self._api.get_contract_invocation(self.wallet_id, self.address_id, self.id)

    def _submit(self) -> dict:
        return self._api.broadcast_contract_invocation(
            self.wallet_id, self.address_id, self.id, self._signed_payload()
        )

    def _describe(self) -> dict:
        details = super()._describe()
        details.update(contract_address=self.contract_address, method=self.method)
        return details

    @classmethod
    def list(cls, api: Any, wallet_id: str, address_id: str) -> PageEnumerator:
        return cls._enumerate(api, lambda page: api.list_contract_invocations(wallet_id, address_id, page=page))
