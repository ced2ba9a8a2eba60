"""Wallets: a seed, the addresses derived from it, and the operations they drive.

Seed states:
- bytes: loaded, every address can sign
- "" (empty): the wallet exists but its seed was not loaded yet; call
  load_seed() before signing
- no seed at all: the wallet uses a server signer

Address i is always derived at index i of m/44'/60'/0'/0, so a wallet
restored from its seed reproduces the addresses it registered before.

Security: the seed is never logged and never part of repr(). Only
export() hands it out, as WalletData.
"""

import hashlib
import json
import logging
import secrets
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Union

from custodia.address import WalletAddress
from custodia.asset import Amount
from custodia.destination import DestinationRef
from custodia.errors import KeyMismatchError, NoDefaultAddressError, SeedNotLoadedError
from custodia.hdwallet import SEED_LENGTH, DerivedKey, ETHKeyDeriver, validate_seed
from custodia.network import get_network, normalize_network_id
from custodia.operations import (
    ContractInvocation,
    FaucetTransaction,
    FundOperation,
    FundQuote,
    PayloadSignature,
    SmartContract,
    StakingOperation,
    Trade,
    Transfer,
)
from custodia.pagination import PageEnumerator, enumerate_pages
from custodia.signing import LocalSigner
from custodia.utils import WalletLock, pretty_print_object

logger = logging.getLogger(__name__)

# Service status of a wallet whose keys live with the server signer
SERVER_SIGNER_ACTIVE = "active_seed"


@dataclass
class WalletData:
    """Exportable wallet state: the wallet id and its hex seed."""

    wallet_id: str
    seed: str = field(repr=False)

    def to_dict(self) -> dict:
        return {"wallet_id": self.wallet_id, "seed": self.seed}

    @classmethod
    def from_dict(cls, data: dict) -> "WalletData":
        return cls(wallet_id=data["wallet_id"], seed=data["seed"])


def _addresses_match(derived: str, registered: str) -> bool:
    return derived.lower() == registered.lower()


class Wallet:
    """A wallet on one network, holding zero or more addresses.

    Example:
        wallet = Wallet.create(api, "base-sepolia")
        transfer = wallet.transfer(Decimal("0.01"), "eth", "0x...")
        transfer.wait()
    """

    def __init__(
        self,
        api: Any,
        model: dict,
        seed: Optional[Union[str, bytes]] = None,
        use_server_signer: Optional[bool] = None,
    ):
        """Initialize a wallet from its service snapshot.

        Args:
            api: ApiClient
            model: Wallet snapshot ({id, network_id, ...})
            seed: 32-byte seed (bytes or hex), "" if not loaded yet, None to generate one
            use_server_signer: Override server-signer detection from the snapshot
        """
        self._api = api
        self._model = model
        self._addresses: Optional[list[WalletAddress]] = None

        if use_server_signer is None:
            use_server_signer = model.get("server_signer_status") == SERVER_SIGNER_ACTIVE
        self.use_server_signer = use_server_signer

        self._seed: Optional[bytes] = None
        self._deriver: Optional[ETHKeyDeriver] = None

        if use_server_signer:
            if seed:
                raise ValueError("Server-signer wallets cannot hold a seed")
        elif seed is None:
            self._attach_seed(secrets.token_bytes(SEED_LENGTH))
        elif seed != "":
            self._attach_seed(validate_seed(seed))

    # ======================
    # Constructors
    # ======================

    @classmethod
    def create(
        cls,
        api: Any,
        network_id: Optional[str] = None,
        use_server_signer: Optional[bool] = None,
    ) -> "Wallet":
        """Create a wallet on the service with a fresh seed and its first address.

        Args:
            api: ApiClient
            network_id: Network for the wallet; defaults to api.default_network_id
            use_server_signer: Defaults to api.use_server_signer

        Raises:
            ValueError: If the network is not supported
        """
        if network_id is None:
            network_id = api.default_network_id
        if use_server_signer is None:
            use_server_signer = api.use_server_signer
        network_id = get_network(network_id).network_id

        model = api.create_wallet(network_id, use_server_signer=use_server_signer)
        wallet = cls(api, model, seed=None, use_server_signer=use_server_signer)
        wallet._addresses = []
        logger.info(f"Created wallet {wallet.id} on {network_id}")

        wallet.create_address()
        return wallet

    @classmethod
    def fetch(cls, api: Any, wallet_id: str) -> "Wallet":
        """Fetch a wallet; its seed must be loaded with load_seed() before signing."""
        return cls(api, api.get_wallet(wallet_id), seed="")

    @classmethod
    def import_data(cls, api: Any, data: Union[WalletData, dict]) -> "Wallet":
        """Restore a wallet from exported data, verifying every derived address.

        Raises:
            KeyMismatchError: If the seed does not reproduce the registered addresses
        """
        if isinstance(data, dict):
            data = WalletData.from_dict(data)

        wallet = cls(api, api.get_wallet(data.wallet_id), seed=data.seed)
        wallet._load_addresses()
        logger.info(f"Imported wallet {wallet.id} with {len(wallet._addresses)} addresses")
        return wallet

    # ======================
    # Snapshot accessors
    # ======================

    @property
    def id(self) -> str:
        return self._model["id"]

    @property
    def network_id(self) -> str:
        return normalize_network_id(self._model["network_id"])

    @property
    def seed_loaded(self) -> bool:
        return self._seed is not None

    @property
    def can_sign(self) -> bool:
        return self.use_server_signer or self.seed_loaded

    # ======================
    # Seed handling
    # ======================

    def _attach_seed(self, seed: bytes) -> None:
        self._seed = seed
        self._deriver = ETHKeyDeriver(seed)

    def _derive(self, index: int, address_id: Optional[str] = None) -> DerivedKey:
        key = self._deriver.derive(index)
        if address_id is not None and not _addresses_match(key.address, address_id):
            raise KeyMismatchError(
                f"Seed does not match wallet {self.id}: index {index} derives {key.address}, "
                f"service has {address_id}"
            )
        return key

    def load_seed(self, seed: Union[str, bytes]) -> None:
        """Load the seed of a fetched wallet and attach keys to its addresses.

        Raises:
            ValueError: If a seed is already loaded or the wallet uses a server signer
            InvalidSeedError: If the seed is malformed
            KeyMismatchError: If the seed does not reproduce the registered addresses
        """
        if self.use_server_signer:
            raise ValueError("Server-signer wallets cannot load a seed")
        if self.seed_loaded:
            raise ValueError("Seed is already loaded")

        seed_bytes = validate_seed(seed)
        deriver = ETHKeyDeriver(seed_bytes)

        addresses = self.addresses
        keys = []
        for index, address in enumerate(addresses):
            key = deriver.derive(index)
            if not _addresses_match(key.address, address.id):
                raise KeyMismatchError(
                    f"Seed does not match wallet {self.id}: index {index} derives {key.address}, "
                    f"service has {address.id}"
                )
            keys.append(key)

        self._seed = seed_bytes
        self._deriver = deriver
        for address, key in zip(addresses, keys):
            address.set_key(key)
        logger.info(f"Loaded seed for wallet {self.id}")

    def export(self) -> WalletData:
        """Export the wallet id and seed for later import_data().

        Raises:
            SeedNotLoadedError: If the seed is not loaded (or held by a server signer)
        """
        if self.use_server_signer:
            raise SeedNotLoadedError("Cannot export data for a server-signer wallet")
        if not self.seed_loaded:
            raise SeedNotLoadedError("Cannot export data without a loaded seed")
        return WalletData(wallet_id=self.id, seed=self._seed.hex())

    # ======================
    # Addresses
    # ======================

    def _load_addresses(self) -> list[WalletAddress]:
        if self._addresses is not None:
            return self._addresses

        pages = enumerate_pages(lambda page: self._api.list_addresses(self.id, page=page))
        addresses = []
        for index, model in enumerate(pages):
            key = self._derive(index, model["address_id"]) if self.seed_loaded else None
            addresses.append(WalletAddress(self._api, model, key, self.use_server_signer))

        self._addresses = addresses
        return addresses

    @property
    def addresses(self) -> list[WalletAddress]:
        return list(self._load_addresses())

    @property
    def default_address(self) -> Optional[WalletAddress]:
        addresses = self._load_addresses()
        default = self._model.get("default_address") or {}
        for address in addresses:
            if address.id == default.get("address_id"):
                return address
        return addresses[0] if addresses else None

    @property
    def default_address_id(self) -> Optional[str]:
        """Default address id known without a service call.

        Taken from the wallet snapshot, else from addresses already loaded.
        """
        default = self._model.get("default_address") or {}
        if default.get("address_id"):
            return default["address_id"]
        if self._addresses:
            return self._addresses[0].id
        return None

    def address(self, address_id: str) -> Optional[WalletAddress]:
        for address in self._load_addresses():
            if _addresses_match(address.id, address_id):
                return address
        return None

    def _attestation(self, key: DerivedKey) -> str:
        """Prove ownership of the key: sign SHA-256 of {wallet_id, public_key}."""
        payload = json.dumps(
            {"wallet_id": self.id, "public_key": key.public_key_hex}, separators=(",", ":")
        ).encode()
        signature = LocalSigner(key).sign_hash(hashlib.sha256(payload).digest())
        return signature.to_compact_bytes().hex()

    def create_address(self) -> WalletAddress:
        """Derive the next address and register it with the service.

        Serialized per wallet, so concurrent calls never derive the same index.

        Raises:
            SeedNotLoadedError: If the wallet signs locally and the seed is not loaded
            KeyMismatchError: If the service registered a different address
        """
        with WalletLock(self.id, operation="create_address"):
            addresses = self._load_addresses()

            if self.use_server_signer:
                model = self._api.create_address(self.id)
                key = None
            else:
                if not self.seed_loaded:
                    raise SeedNotLoadedError("Cannot create an address before the seed is loaded")
                key = self._derive(len(addresses))
                model = self._api.create_address(
                    self.id,
                    public_key=key.public_key_hex,
                    attestation=self._attestation(key),
                )
                if not _addresses_match(key.address, model["address_id"]):
                    raise KeyMismatchError(
                        f"Service registered {model['address_id']}, expected {key.address}"
                    )

            address = WalletAddress(self._api, model, key, self.use_server_signer)
            addresses.append(address)

        logger.info(f"Created address {address.id} for wallet {self.id}")
        return address

    def _require_default_address(self) -> WalletAddress:
        address = self.default_address
        if address is None:
            raise NoDefaultAddressError(self.id)
        return address

    # ======================
    # Default address delegation
    # ======================

    def balance(self, asset_id: str) -> Decimal:
        return self._require_default_address().balance(asset_id)

    def balances(self) -> dict[str, Decimal]:
        return self._require_default_address().balances()

    def faucet(self, asset_id: Optional[str] = None) -> FaucetTransaction:
        return self._require_default_address().faucet(asset_id=asset_id)

    def transfer(
        self, amount: Amount, asset_id: str, destination: DestinationRef, gasless: bool = False
    ) -> Transfer:
        return self._require_default_address().transfer(amount, asset_id, destination, gasless=gasless)

    def trade(self, amount: Amount, from_asset_id: str, to_asset_id: str) -> Trade:
        return self._require_default_address().trade(amount, from_asset_id, to_asset_id)

    def invoke_contract(
        self,
        contract_address: str,
        method: str,
        abi: Optional[list] = None,
        args: Optional[dict] = None,
        amount: Optional[Amount] = None,
        asset_id: Optional[str] = None,
    ) -> ContractInvocation:
        return self._require_default_address().invoke_contract(
            contract_address, method, abi=abi, args=args, amount=amount, asset_id=asset_id
        )

    def sign_payload(self, unsigned_payload: str) -> PayloadSignature:
        return self._require_default_address().sign_payload(unsigned_payload)

    def stake(self, amount: Amount, asset_id: str, **kwargs) -> StakingOperation:
        return self._require_default_address().stake(amount, asset_id, **kwargs)

    def unstake(self, amount: Amount, asset_id: str, **kwargs) -> StakingOperation:
        return self._require_default_address().unstake(amount, asset_id, **kwargs)

    def claim_stake(self, amount: Amount, asset_id: str, **kwargs) -> StakingOperation:
        return self._require_default_address().claim_stake(amount, asset_id, **kwargs)

    def quote_fund(self, amount: Amount, asset_id: str) -> FundQuote:
        return self._require_default_address().quote_fund(amount, asset_id)

    def fund(self, amount: Amount, asset_id: str, quote: Optional[FundQuote] = None) -> FundOperation:
        return self._require_default_address().fund(amount, asset_id, quote=quote)

    def deploy_token(self, name: str, symbol: str, total_supply: Amount) -> SmartContract:
        return self._require_default_address().deploy_token(name, symbol, total_supply)

    def deploy_nft(self, name: str, symbol: str, base_uri: str) -> SmartContract:
        return self._require_default_address().deploy_nft(name, symbol, base_uri)

    def deploy_multi_token(self, uri: str) -> SmartContract:
        return self._require_default_address().deploy_multi_token(uri)

    def __str__(self) -> str:
        default = self.default_address if self._addresses is not None else None
        return pretty_print_object(
            "Wallet",
            id=self.id,
            network_id=self.network_id,
            default_address=default.id if default else None,
        )

    __repr__ = __str__

    @classmethod
    def list(cls, api: Any) -> PageEnumerator:
        """Lazily enumerate every wallet; seeds are not loaded."""
        return enumerate_pages(
            lambda page: api.list_wallets(page=page), build=lambda model: cls(api, model, seed="")
        )
