"""Synchronous client for the wallet orchestration service.

Every endpoint takes and returns plain JSON snapshots (dicts). Errors are
mapped onto the custodia exception hierarchy:

- transport failures -> APIConnectionError
- non-2xx responses -> APIError.from_response (most specific subclass)

Connection retries are left to httpx.HTTPTransport; this client never
retries a request that reached the service.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from custodia.config import Settings
from custodia.errors import APIConnectionError, APIError
from custodia.network import DEFAULT_NETWORK_ID, normalize_network_id

logger = logging.getLogger(__name__)

SDK_VERSION = "0.1.0"
SDK_LANGUAGE = "python"


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class ApiClient:
    """HTTP client for wallets, addresses and operation endpoints.

    Holds no operation state; one instance can be shared by every wallet,
    address and operation in the process.
    """

    default_network_id: str = DEFAULT_NETWORK_ID
    use_server_signer: bool = False

    def __init__(
        self,
        base_url: str,
        api_key_name: str = "",
        timeout: float = 30.0,
        max_network_tries: int = 3,
        debug: bool = False,
        default_page_limit: int = 100,
        default_network_id: str = DEFAULT_NETWORK_ID,
        use_server_signer: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Service base URL
            api_key_name: API key name sent as bearer credential
            timeout: Per-request timeout in seconds
            max_network_tries: Connection retries performed by the transport
            debug: Log every request and response body
            default_page_limit: Page size for list endpoints
            default_network_id: Network Wallet.create() uses when none is given
            use_server_signer: Whether Wallet.create() defaults to a server signer
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.debug = debug
        self.default_page_limit = default_page_limit
        self.default_network_id = normalize_network_id(default_network_id)
        self.use_server_signer = use_server_signer

        headers = {
            "Accept": "application/json",
            "Correlation-Context": f"sdk_version={SDK_VERSION},sdk_language={SDK_LANGUAGE}",
        }
        if api_key_name:
            headers["Authorization"] = f"Bearer {api_key_name}"

        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport or httpx.HTTPTransport(retries=max_network_tries),
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> "ApiClient":
        """Build a client from loaded settings."""
        if not settings.is_configured:
            logger.warning("No API key configured; requests will be unauthenticated")
        logger.debug(f"Client settings: {settings.get_safe_dict()}")
        return cls(
            base_url=settings.api_url,
            api_key_name=settings.api_key_name,
            timeout=settings.request_timeout,
            max_network_tries=settings.max_network_tries,
            debug=settings.debug_api,
            default_page_limit=settings.default_page_limit,
            default_network_id=settings.default_network_id,
            use_server_signer=settings.use_server_signer,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"ApiClient(base_url='{self.base_url}')"

    # ======================
    # Transport
    # ======================

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Optional[dict]:
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        if json is not None:
            json = {key: value for key, value in json.items() if value is not None}

        if self.debug:
            logger.debug(f"{method} {path} params={params} body={json}")

        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise APIConnectionError(f"{method} {path} failed: {e}") from e

        if self.debug:
            logger.debug(f"{method} {path} -> {response.status_code} {response.text}")

        if response.is_error:
            error = APIError.from_response(response)
            logger.warning(f"{method} {path} -> {error}")
            raise error

        if not response.content:
            return None
        return response.json()

    def _list(self, path: str, page: Optional[str], limit: Optional[int]) -> dict:
        return self._request(
            "GET", path, params={"limit": limit or self.default_page_limit, "page": page}
        ) or {"data": [], "has_more": False}

    # ======================
    # Wallets
    # ======================

    def create_wallet(self, network_id: str, use_server_signer: bool = False) -> dict:
        return self._request(
            "POST",
            "/v1/wallets",
            json={"wallet": {"network_id": network_id, "use_server_signer": use_server_signer}},
        )

    def get_wallet(self, wallet_id: str) -> dict:
        return self._request("GET", f"/v1/wallets/{_segment(wallet_id)}")

    def list_wallets(self, page: Optional[str] = None, limit: Optional[int] = None) -> dict:
        return self._list("/v1/wallets", page, limit)

    # ======================
    # Wallet addresses
    # ======================

    def _address_path(self, wallet_id: str, address_id: Optional[str] = None) -> str:
        path = f"/v1/wallets/{_segment(wallet_id)}/addresses"
        if address_id is not None:
            path += f"/{_segment(address_id)}"
        return path

    def create_address(
        self,
        wallet_id: str,
        public_key: Optional[str] = None,
        attestation: Optional[str] = None,
    ) -> dict:
        """Register an address; the service derives server-signer addresses itself."""
        return self._request(
            "POST",
            self._address_path(wallet_id),
            json={"public_key": public_key, "attestation": attestation},
        )

    def get_address(self, wallet_id: str, address_id: str) -> dict:
        return self._request("GET", self._address_path(wallet_id, address_id))

    def list_addresses(self, wallet_id: str, page: Optional[str] = None, limit: Optional[int] = None) -> dict:
        return self._list(self._address_path(wallet_id), page, limit)

    def get_address_balance(self, wallet_id: str, address_id: str, asset_id: str) -> Optional[dict]:
        return self._request(
            "GET", f"{self._address_path(wallet_id, address_id)}/balances/{_segment(asset_id)}"
        )

    def list_address_balances(self, wallet_id: str, address_id: str, page: Optional[str] = None) -> dict:
        return self._list(f"{self._address_path(wallet_id, address_id)}/balances", page, None)

    # ======================
    # External addresses
    # ======================

    def _external_path(self, network_id: str, address_id: str) -> str:
        return f"/v1/networks/{_segment(network_id)}/addresses/{_segment(address_id)}"

    def get_external_address_balance(self, network_id: str, address_id: str, asset_id: str) -> Optional[dict]:
        return self._request(
            "GET", f"{self._external_path(network_id, address_id)}/balances/{_segment(asset_id)}"
        )

    def list_external_address_balances(self, network_id: str, address_id: str, page: Optional[str] = None) -> dict:
        return self._list(f"{self._external_path(network_id, address_id)}/balances", page, None)

    def request_external_faucet_funds(
        self, network_id: str, address_id: str, asset_id: Optional[str] = None
    ) -> dict:
        return self._request(
            "POST",
            f"{self._external_path(network_id, address_id)}/faucet",
            params={"asset_id": asset_id},
        )

    def get_faucet_transaction(self, network_id: str, address_id: str, transaction_hash: str) -> dict:
        return self._request(
            "GET", f"{self._external_path(network_id, address_id)}/faucet/{_segment(transaction_hash)}"
        )

    # ======================
    # Assets
    # ======================

    def get_asset(self, network_id: str, asset_id: str) -> dict:
        return self._request(
            "GET", f"/v1/networks/{_segment(network_id)}/assets/{_segment(asset_id)}"
        )

    # ======================
    # Wallet address operations
    # ======================

    def _operation_path(
        self, wallet_id: str, address_id: str, collection: str, operation_id: Optional[str] = None
    ) -> str:
        path = f"{self._address_path(wallet_id, address_id)}/{collection}"
        if operation_id is not None:
            path += f"/{_segment(operation_id)}"
        return path

    def create_transfer(self, wallet_id: str, address_id: str, body: dict) -> dict:
        return self._request("POST", self._operation_path(wallet_id, address_id, "transfers"), json=body)

    def get_transfer(self, wallet_id: str, address_id: str, transfer_id: str) -> dict:
        return self._request("GET", self._operation_path(wallet_id, address_id, "transfers", transfer_id))

    def list_transfers(
        self, wallet_id: str, address_id: str, page: Optional[str] = None, limit: Optional[int] = None
    ) -> dict:
        return self._list(self._operation_path(wallet_id, address_id, "transfers"), page, limit)

    def broadcast_transfer(self, wallet_id: str, address_id: str, transfer_id: str, signed_payload: str) -> dict:
        return self._request(
            "POST",
            self._operation_path(wallet_id, address_id, "transfers", transfer_id) + "/broadcast",
            json={"signed_payload": signed_payload},
        )

    def create_trade(self, wallet_id: str, address_id: str, body: dict) -> dict:
        return self._request("POST", self._operation_path(wallet_id, address_id, "trades"), json=body)

    def get_trade(self, wallet_id: str, address_id: str, trade_id: str) -> dict:
        return self._request("GET", self._operation_path(wallet_id, address_id, "trades", trade_id))

    def list_trades(
        self, wallet_id: str, address_id: str, page: Optional[str] = None, limit: Optional[int] = None
    ) -> dict:
        return self._list(self._operation_path(wallet_id, address_id, "trades"), page, limit)

    def broadcast_trade(
        self,
        wallet_id: str,
        address_id: str,
        trade_id: str,
        signed_payload: str,
        approve_transaction_signed_payload: Optional[str] = None,
    ) -> dict:
        return self._request(
            "POST",
            self._operation_path(wallet_id, address_id, "trades", trade_id) + "/broadcast",
            json={
                "signed_payload": signed_payload,
                "approve_transaction_signed_payload": approve_transaction_signed_payload,
            },
        )

    def create_contract_invocation(self, wallet_id: str, address_id: str, body: dict) -> dict:
        return self._request(
            "POST", self._operation_path(wallet_id, address_id, "contract_invocations"), json=body
        )

    def get_contract_invocation(self, wallet_id: str, address_id: str, invocation_id: str) -> dict:
        return self._request(
            "GET", self._operation_path(wallet_id, address_id, "contract_invocations", invocation_id)
        )

    def list_contract_invocations(
        self, wallet_id: str, address_id: str, page: Optional[str] = None, limit: Optional[int] = None
    ) -> dict:
        return self._list(self._operation_path(wallet_id, address_id, "contract_invocations"), page, limit)

    def broadcast_contract_invocation(
        self, wallet_id: str, address_id: str, invocation_id: str, signed_payload: str
    ) -> dict:
        return self._request(
            "POST",
            self._operation_path(wallet_id, address_id, "contract_invocations", invocation_id) + "/broadcast",
            json={"signed_payload": signed_payload},
        )

    def create_payload_signature(
        self, wallet_id: str, address_id: str, unsigned_payload: str, signature: Optional[str] = None
    ) -> dict:
        return self._request(
            "POST",
            self._operation_path(wallet_id, address_id, "payload_signatures"),
            json={"unsigned_payload": unsigned_payload, "signature": signature},
        )

    def get_payload_signature(self, wallet_id: str, address_id: str, payload_signature_id: str) -> dict:
        return self._request(
            "GET", self._operation_path(wallet_id, address_id, "payload_signatures", payload_signature_id)
        )

    def list_payload_signatures(
        self, wallet_id: str, address_id: str, page: Optional[str] = None, limit: Optional[int] = None
    ) -> dict:
        return self._list(self._operation_path(wallet_id, address_id, "payload_signatures"), page, limit)

    def create_fund_operation(self, wallet_id: str, address_id: str, body: dict) -> dict:
        return self._request("POST", self._operation_path(wallet_id, address_id, "fund_operations"), json=body)

    def get_fund_operation(self, wallet_id: str, address_id: str, fund_operation_id: str) -> dict:
        return self._request(
            "GET", self._operation_path(wallet_id, address_id, "fund_operations", fund_operation_id)
        )

    def list_fund_operations(
        self, wallet_id: str, address_id: str, page: Optional[str] = None, limit: Optional[int] = None
    ) -> dict:
        return self._list(self._operation_path(wallet_id, address_id, "fund_operations"), page, limit)

    def create_fund_quote(self, wallet_id: str, address_id: str, body: dict) -> dict:
        return self._request(
            "POST", self._operation_path(wallet_id, address_id, "fund_operations") + "/quote", json=body
        )

    # ======================
    # Smart contracts
    # ======================

    def create_smart_contract(self, wallet_id: str, address_id: str, body: dict) -> dict:
        return self._request("POST", self._operation_path(wallet_id, address_id, "smart_contracts"), json=body)

    def get_smart_contract(self, wallet_id: str, address_id: str, smart_contract_id: str) -> dict:
        return self._request(
            "GET", self._operation_path(wallet_id, address_id, "smart_contracts", smart_contract_id)
        )

    def deploy_smart_contract(
        self, wallet_id: str, address_id: str, smart_contract_id: str, signed_payload: str
    ) -> dict:
        return self._request(
            "POST",
            self._operation_path(wallet_id, address_id, "smart_contracts", smart_contract_id) + "/deploy",
            json={"signed_payload": signed_payload},
        )

    def _contract_path(self, network_id: str, contract_address: str) -> str:
        return f"/v1/networks/{_segment(network_id)}/smart_contracts/{_segment(contract_address)}"

    def register_smart_contract(self, network_id: str, contract_address: str, body: dict) -> dict:
        """Register a contract deployed outside the service, by address and ABI."""
        return self._request("POST", self._contract_path(network_id, contract_address) + "/register", json=body)

    def update_smart_contract(self, network_id: str, contract_address: str, body: dict) -> dict:
        return self._request("PUT", self._contract_path(network_id, contract_address), json=body)

    def read_contract(self, network_id: str, contract_address: str, body: dict) -> dict:
        """Call a view method; the result comes back as a typed solidity value."""
        return self._request("POST", self._contract_path(network_id, contract_address) + "/read", json=body)

    def list_smart_contracts(self, page: Optional[str] = None, limit: Optional[int] = None) -> dict:
        return self._list("/v1/smart_contracts", page, limit)

    # ======================
    # Staking
    # ======================

    def get_staking_context(self, body: dict) -> dict:
        return self._request("POST", "/v1/stake/context", json=body)

    def build_staking_operation(self, body: dict) -> dict:
        """Build a staking operation for an external address."""
        return self._request("POST", "/v1/stake/build", json=body)

    def get_external_staking_operation(self, network_id: str, address_id: str, staking_operation_id: str) -> dict:
        return self._request(
            "GET",
            f"{self._external_path(network_id, address_id)}/staking_operations/{_segment(staking_operation_id)}",
        )

    def create_staking_operation(self, wallet_id: str, address_id: str, body: dict) -> dict:
        return self._request(
            "POST", self._operation_path(wallet_id, address_id, "staking_operations"), json=body
        )

    def get_staking_operation(self, wallet_id: str, address_id: str, staking_operation_id: str) -> dict:
        return self._request(
            "GET", self._operation_path(wallet_id, address_id, "staking_operations", staking_operation_id)
        )

    def broadcast_staking_operation(
        self,
        wallet_id: str,
        address_id: str,
        staking_operation_id: str,
        signed_payload: str,
        transaction_index: int,
    ) -> dict:
        return self._request(
            "POST",
            self._operation_path(wallet_id, address_id, "staking_operations", staking_operation_id) + "/broadcast",
            json={"signed_payload": signed_payload, "transaction_index": transaction_index},
        )
