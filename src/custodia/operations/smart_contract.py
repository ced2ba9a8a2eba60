"""Smart contracts: deploy token, NFT and multi-token contracts, or register one.

A contract created through the service carries one deployment transaction
that is signed and then deployed like any other broadcast. A registered
(external) contract has no transaction: it can be read and updated, but
never signed, deployed, reloaded or waited on.
"""

import json
import logging
from enum import Enum
from typing import Any, Optional, Union

from custodia.asset import Amount, to_decimal
from custodia.errors import ExternalOperationError
from custodia.network import normalize_network_id
from custodia.operations.base import SingleTransactionOperation
from custodia.pagination import PageEnumerator
from custodia.status import OperationKind

logger = logging.getLogger(__name__)

INTEGER_TYPES = frozenset(f"{prefix}int{bits}" for prefix in ("u", "") for bits in (8, 16, 32, 64, 128, 256))


class SmartContractType(str, Enum):
    """Contract templates the service can deploy, plus registered custom contracts."""

    ERC20 = "erc20"
    ERC721 = "erc721"
    ERC1155 = "erc1155"
    CUSTOM = "custom"


def normalize_abi(abi: Union[list, str]) -> list:
    """Accept an ABI as a list of entries or as its JSON text.

    Raises:
        ValueError: If the ABI is neither, or the JSON is malformed
    """
    if isinstance(abi, list):
        return abi
    if not isinstance(abi, str):
        raise ValueError("ABI must be a list or a JSON string")
    try:
        return json.loads(abi)
    except json.JSONDecodeError:
        raise ValueError("Invalid ABI JSON") from None


def convert_solidity_value(solidity_value: Optional[dict]) -> Any:
    """Convert a typed contract read result ({type, value, values, name}) to Python.

    Integers become int, bools become bool, arrays become lists and
    tuples become dicts keyed by component name.

    Raises:
        ValueError: On an unsupported type or an unnamed tuple component
    """
    if solidity_value is None:
        return None

    value_type = solidity_value.get("type") or ""
    value = solidity_value.get("value")
    values = solidity_value.get("values")

    if value_type in INTEGER_TYPES:
        return int(value) if value is not None else None
    if value_type in ("address", "string") or value_type.startswith("bytes"):
        return value
    if value_type == "bool":
        if isinstance(value, str):
            return value == "true"
        return bool(value)
    if value_type == "array":
        return [convert_solidity_value(item) for item in values or []]
    if value_type == "tuple":
        result = {}
        for item in values or []:
            if not item.get("name"):
                raise ValueError("Tuple value without a name")
            result[item["name"]] = convert_solidity_value(item)
        return result

    raise ValueError(f"Unsupported Solidity type: {value_type}")


class SmartContract(SingleTransactionOperation):
    kind = OperationKind.SMART_CONTRACT
    label = "Smart contract"
    id_field = "smart_contract_id"

    # ======================
    # Constructors
    # ======================

    @classmethod
    def _create(
        cls, api: Any, wallet_id: str, address_id: str, contract_type: SmartContractType, options: dict
    ) -> "SmartContract":
        model = api.create_smart_contract(
            wallet_id, address_id, {"type": contract_type.value, "options": options}
        )
        contract = cls(api, model)
        logger.info(f"Created {contract}")
        return contract

    @classmethod
    def create_token_contract(
        cls, api: Any, wallet_id: str, address_id: str, name: str, symbol: str, total_supply: Amount
    ) -> "SmartContract":
        """Create an ERC20 contract; total_supply is in whole tokens."""
        options = {"name": name, "symbol": symbol, "total_supply": str(int(to_decimal(total_supply)))}
        return cls._create(api, wallet_id, address_id, SmartContractType.ERC20, options)

    @classmethod
    def create_nft_contract(
        cls, api: Any, wallet_id: str, address_id: str, name: str, symbol: str, base_uri: str
    ) -> "SmartContract":
        """Create an ERC721 contract whose token metadata lives under base_uri."""
        options = {"name": name, "symbol": symbol, "base_uri": base_uri}
        return cls._create(api, wallet_id, address_id, SmartContractType.ERC721, options)

    @classmethod
    def create_multi_token_contract(cls, api: Any, wallet_id: str, address_id: str, uri: str) -> "SmartContract":
        """Create an ERC1155 contract with the given metadata URI."""
        return cls._create(api, wallet_id, address_id, SmartContractType.ERC1155, {"uri": uri})

    @classmethod
    def register(
        cls,
        api: Any,
        network_id: str,
        contract_address: str,
        abi: Union[list, str],
        name: Optional[str] = None,
    ) -> "SmartContract":
        """Register a contract deployed elsewhere so it can be read and named.

        Raises:
            ValueError: If the ABI is malformed
        """
        body = {"abi": json.dumps(normalize_abi(abi)), "contract_name": name}
        contract = cls(api, api.register_smart_contract(normalize_network_id(network_id), contract_address, body))
        logger.info(f"Registered {contract}")
        return contract

    @classmethod
    def read(
        cls,
        api: Any,
        network_id: str,
        contract_address: str,
        method: str,
        abi: Optional[list] = None,
        args: Optional[dict] = None,
    ) -> Any:
        """Call a view method and return its result as a Python value.

        Without an abi the service uses the one it has for the contract.
        """
        body = {
            "method": method,
            "args": json.dumps(args or {}),
            "abi": json.dumps(abi) if abi is not None else None,
        }
        return convert_solidity_value(
            api.read_contract(normalize_network_id(network_id), contract_address, body)
        )

    # ======================
    # Snapshot accessors
    # ======================

    @property
    def address_id(self) -> Optional[str]:
        return self.deployer_address

    @property
    def contract_address(self) -> Optional[str]:
        return self._model.get("contract_address")

    @property
    def name(self) -> Optional[str]:
        return self._model.get("contract_name")

    @property
    def deployer_address(self) -> Optional[str]:
        """Deploying wallet address; None for registered contracts."""
        return self._model.get("deployer_address")

    @property
    def abi(self) -> Optional[list]:
        raw = self._model.get("abi")
        return json.loads(raw) if raw else None

    @property
    def type(self) -> Optional[SmartContractType]:
        raw = self._model.get("type")
        return SmartContractType(raw) if raw else None

    @property
    def options(self) -> Optional[dict]:
        return self._model.get("options")

    @property
    def is_external(self) -> bool:
        return bool(self._model.get("is_external"))

    # ======================
    # Lifecycle
    # ======================

    def _require_managed(self, action: str) -> None:
        if self.is_external:
            raise ExternalOperationError(f"{self.label} {self.contract_address}", action)

    def update(self, name: Optional[str] = None, abi: Optional[Union[list, str]] = None) -> "SmartContract":
        """Rename the contract or replace its ABI; unset arguments are left as is."""
        body = {
            "contract_name": name,
            "abi": json.dumps(normalize_abi(abi)) if abi is not None else None,
        }
        self._replace(
            self._api.update_smart_contract(normalize_network_id(self.network_id), self.contract_address, body)
        )
        return self

    def sign(self, key: Any) -> "SmartContract":
        self._require_managed("sign")
        return super().sign(key)

    def broadcast(self) -> "SmartContract":
        self._require_managed("deploy")
        return super().broadcast()

    def deploy(self) -> "SmartContract":
        """Submit the signed deployment transaction.

        Raises:
            ExternalOperationError: If the contract is registered, not deployed by us
            TransactionNotSignedError: If the deployment transaction is unsigned
        """
        return self.broadcast()

    def reload(self) -> "SmartContract":
        self._require_managed("reload")
        return super().reload()

    def wait(self, interval: Optional[float] = None, timeout: Optional[float] = None) -> "SmartContract":
        self._require_managed("wait")
        return super().wait(interval=interval, timeout=timeout)

    def _fetch(self) -> dict:
        return self._api.get_smart_contract(self.wallet_id, self.deployer_address, self.id)

    def _submit(self) -> dict:
        return self._api.deploy_smart_contract(
            self.wallet_id, self.deployer_address, self.id, self._signed_payload()
        )

    def _describe(self) -> dict:
        contract_type = self.type
        return {
            "network_id": self.network_id,
            "contract_address": self.contract_address,
            "type": contract_type.value if contract_type else None,
            "name": self.name,
            "status": None if self.is_external else self.status.value,
            "deployer_address": self.deployer_address,
        }

    @classmethod
    def list(cls, api: Any) -> PageEnumerator:
        return cls._enumerate(api, lambda page: api.list_smart_contracts(page=page))
