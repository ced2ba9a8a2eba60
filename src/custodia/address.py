"""Addresses: external (read-only) and wallet-managed.

An Address is any address on a supported network; it can report balances,
request testnet faucet funds and build staking operations. A WalletAddress
belongs to one of our wallets and, when its key is loaded (or a server
signer is in use), drives operations from creation to broadcast.

Security: a WalletAddress never prints its key.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from custodia.asset import Amount, balance_from_model, primary_denomination, to_decimal
from custodia.destination import DestinationRef
from custodia.errors import AddressCannotSignError, InsufficientFundsError
from custodia.hdwallet import DerivedKey
from custodia.network import normalize_network_id
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
from custodia.utils import pretty_print_object

logger = logging.getLogger(__name__)

STAKING_BALANCE_KEYS = ("stakeable_balance", "unstakeable_balance", "claimable_balance")


class Address:
    """An address on a network, not necessarily managed by us."""

    def __init__(self, api: Any, network_id: str, address_id: str):
        self._api = api
        self.network_id = normalize_network_id(network_id)
        self.id = address_id

    @property
    def can_sign(self) -> bool:
        return False

    # ======================
    # Balances
    # ======================

    def balance(self, asset_id: str) -> Decimal:
        """Balance of asset_id, in units of asset_id (eth, gwei, wei, ...)."""
        model = self._api.get_external_address_balance(
            self.network_id, self.id, primary_denomination(asset_id)
        )
        return balance_from_model(model, asset_id)

    def balances(self) -> dict[str, Decimal]:
        """All non-zero balances keyed by asset id."""
        pages = enumerate_pages(
            lambda page: self._api.list_external_address_balances(self.network_id, self.id, page=page)
        )
        return {model["asset"]["asset_id"]: balance_from_model(model) for model in pages}

    def faucet(self, asset_id: Optional[str] = None) -> FaucetTransaction:
        """Request testnet funds."""
        model = self._api.request_external_faucet_funds(self.network_id, self.id, asset_id=asset_id)
        faucet_transaction = FaucetTransaction(self._api, model)
        logger.info(f"Requested faucet funds for {self.id}: {faucet_transaction.transaction_hash}")
        return faucet_transaction

    # ======================
    # Staking
    # ======================

    def staking_balances(self, asset_id: str, mode: str = "default", options: Optional[dict] = None) -> dict:
        """Stakeable, unstakeable and claimable balances for asset_id."""
        response = self._api.get_staking_context(
            {
                "asset_id": asset_id,
                "network_id": self.network_id,
                "address_id": self.id,
                "options": {"mode": mode, **(options or {})},
            }
        )
        context = response.get("context") or {}
        return {key: balance_from_model(context.get(key), asset_id) for key in STAKING_BALANCE_KEYS}

    def _validate_staking_action(
        self,
        amount: Amount,
        asset_id: str,
        balance_key: str,
        mode: str,
        options: Optional[dict],
    ) -> None:
        amount = to_decimal(amount)
        if amount <= 0:
            raise ValueError(f"Amount must be greater than zero, got {amount}")

        available = self.staking_balances(asset_id, mode=mode, options=options)[balance_key]
        if available < amount:
            raise InsufficientFundsError(amount, available)

    def build_stake_operation(
        self, amount: Amount, asset_id: str, mode: str = "default", options: Optional[dict] = None
    ) -> StakingOperation:
        self._validate_staking_action(amount, asset_id, "stakeable_balance", mode, options)
        return StakingOperation.build(
            self._api, self.network_id, self.id, asset_id, "stake", amount=amount, mode=mode, options=options
        )

    def build_unstake_operation(
        self, amount: Amount, asset_id: str, mode: str = "default", options: Optional[dict] = None
    ) -> StakingOperation:
        self._validate_staking_action(amount, asset_id, "unstakeable_balance", mode, options)
        return StakingOperation.build(
            self._api, self.network_id, self.id, asset_id, "unstake", amount=amount, mode=mode, options=options
        )

    def build_claim_stake_operation(
        self, amount: Amount, asset_id: str, mode: str = "default", options: Optional[dict] = None
    ) -> StakingOperation:
        self._validate_staking_action(amount, asset_id, "claimable_balance", mode, options)
        return StakingOperation.build(
            self._api, self.network_id, self.id, asset_id, "claim_stake", amount=amount, mode=mode, options=options
        )

    def __str__(self) -> str:
        return pretty_print_object(self.__class__.__name__, id=self.id, network_id=self.network_id)

    __repr__ = __str__


class WalletAddress(Address):
    """An address of one of our wallets.

    Args:
        api: ApiClient
        model: Address snapshot ({wallet_id, network_id, address_id, ...})
        key: Derived key, or None when the seed is not loaded
        use_server_signer: Skip local signing; the service signs and broadcasts
    """

    def __init__(
        self,
        api: Any,
        model: dict,
        key: Optional[DerivedKey] = None,
        use_server_signer: bool = False,
    ):
        super().__init__(api, model["network_id"], model["address_id"])
        self._model = model
        self._key = key
        self.use_server_signer = use_server_signer

    @property
    def wallet_id(self) -> str:
        return self._model["wallet_id"]

    @property
    def index(self) -> Optional[int]:
        return self._model.get("index")

    @property
    def can_sign(self) -> bool:
        return self._key is not None

    def set_key(self, key: DerivedKey) -> None:
        """Attach the derived key once the wallet seed is loaded."""
        if self._key is not None:
            raise ValueError("Private key is already set")
        self._key = key

    def export(self) -> str:
        """Return the private key as 0x-prefixed hex.

        Raises:
            AddressCannotSignError: If no key is loaded
        """
        if self._key is None:
            raise AddressCannotSignError("Cannot export key without private key loaded")
        return self._key.private_key_hex()

    # ======================
    # Balances
    # ======================

    def balance(self, asset_id: str) -> Decimal:
        model = self._api.get_address_balance(self.wallet_id, self.id, primary_denomination(asset_id))
        return balance_from_model(model, asset_id)

    def balances(self) -> dict[str, Decimal]:
        pages = enumerate_pages(
            lambda page: self._api.list_address_balances(self.wallet_id, self.id, page=page)
        )
        return {model["asset"]["asset_id"]: balance_from_model(model) for model in pages}

    def _ensure_can_sign(self) -> None:
        if self.use_server_signer or self.can_sign:
            return
        raise AddressCannotSignError()

    def _ensure_sufficient_balance(self, amount: Amount, asset_id: str) -> None:
        amount = to_decimal(amount)
        current = self.balance(asset_id)
        if current < amount:
            raise InsufficientFundsError(amount, current)

    # ======================
    # Operations
    # ======================

    def transfer(
        self,
        amount: Amount,
        asset_id: str,
        destination: DestinationRef,
        gasless: bool = False,
    ) -> Transfer:
        """Create, sign and broadcast a transfer.

        Args:
            amount: Amount in units of asset_id
            asset_id: Asset or denomination
            destination: Address string, Address, Wallet or Destination
            gasless: Whether a sponsor pays the gas

        Returns:
            The broadcast Transfer; call wait() to follow it to completion
        """
        self._ensure_can_sign()
        self._ensure_sufficient_balance(amount, asset_id)

        transfer = Transfer.create(
            self._api,
            self.wallet_id,
            self.id,
            self.network_id,
            amount,
            asset_id,
            destination,
            gasless=gasless,
        )
        if self.use_server_signer:
            return transfer

        transfer.sign(self._key)
        transfer.broadcast()
        return transfer

    def trade(self, amount: Amount, from_asset_id: str, to_asset_id: str) -> Trade:
        """Create, sign and broadcast a trade (approve transaction included)."""
        self._ensure_can_sign()
        self._ensure_sufficient_balance(amount, from_asset_id)

        trade = Trade.create(
            self._api, self.wallet_id, self.id, self.network_id, amount, from_asset_id, to_asset_id
        )
        if self.use_server_signer:
            return trade

        trade.sign(self._key)
        trade.broadcast()
        return trade

    def invoke_contract(
        self,
        contract_address: str,
        method: str,
        abi: Optional[list] = None,
        args: Optional[dict] = None,
        amount: Optional[Amount] = None,
        asset_id: Optional[str] = None,
    ) -> ContractInvocation:
        self._ensure_can_sign()
        if amount is not None and asset_id:
            self._ensure_sufficient_balance(amount, asset_id)

        invocation = ContractInvocation.create(
            self._api,
            self.wallet_id,
            self.id,
            self.network_id,
            contract_address,
            method,
            abi=abi,
            args=args,
            amount=amount,
            asset_id=asset_id,
        )
        if self.use_server_signer:
            return invocation

        invocation.sign(self._key)
        invocation.broadcast()
        return invocation

    def sign_payload(self, unsigned_payload: str) -> PayloadSignature:
        """Sign a hex 32-byte hash and register the signature with the service."""
        self._ensure_can_sign()

        signature = None
        if not self.use_server_signer:
            signature = LocalSigner(self._key).sign_payload(unsigned_payload)

        return PayloadSignature.create(
            self._api, self.wallet_id, self.id, unsigned_payload, signature=signature
        )

    def _staking_action(
        self,
        action: str,
        balance_key: str,
        amount: Amount,
        asset_id: str,
        mode: str,
        options: Optional[dict],
        interval: float,
        timeout: float,
    ) -> StakingOperation:
        self._ensure_can_sign()
        self._validate_staking_action(amount, asset_id, balance_key, mode, options)

        operation = StakingOperation.create(
            self._api,
            self.wallet_id,
            self.id,
            self.network_id,
            asset_id,
            action,
            amount=amount,
            mode=mode,
            options=options,
        )
        key = None if self.use_server_signer else self._key
        return operation.complete(key, interval=interval, timeout=timeout)

    def stake(
        self,
        amount: Amount,
        asset_id: str,
        mode: str = "default",
        options: Optional[dict] = None,
        interval: float = 5.0,
        timeout: float = 600.0,
    ) -> StakingOperation:
        return self._staking_action(
            "stake", "stakeable_balance", amount, asset_id, mode, options, interval, timeout
        )

    def unstake(
        self,
        amount: Amount,
        asset_id: str,
        mode: str = "default",
        options: Optional[dict] = None,
        interval: float = 5.0,
        timeout: float = 600.0,
    ) -> StakingOperation:
        return self._staking_action(
            "unstake", "unstakeable_balance", amount, asset_id, mode, options, interval, timeout
        )

    def claim_stake(
        self,
        amount: Amount,
        asset_id: str,
        mode: str = "default",
        options: Optional[dict] = None,
        interval: float = 5.0,
        timeout: float = 600.0,
    ) -> StakingOperation:
        return self._staking_action(
            "claim_stake", "claimable_balance", amount, asset_id, mode, options, interval, timeout
        )

    def _deploy(self, contract: SmartContract) -> SmartContract:
        if self.use_server_signer:
            return contract
        contract.sign(self._key)
        contract.deploy()
        return contract

    def deploy_token(self, name: str, symbol: str, total_supply: Amount) -> SmartContract:
        """Create, sign and deploy an ERC20 contract; total_supply is in whole tokens."""
        self._ensure_can_sign()
        return self._deploy(
            SmartContract.create_token_contract(self._api, self.wallet_id, self.id, name, symbol, total_supply)
        )

    def deploy_nft(self, name: str, symbol: str, base_uri: str) -> SmartContract:
        """Create, sign and deploy an ERC721 contract."""
        self._ensure_can_sign()
        return self._deploy(
            SmartContract.create_nft_contract(self._api, self.wallet_id, self.id, name, symbol, base_uri)
        )

    def deploy_multi_token(self, uri: str) -> SmartContract:
        """Create, sign and deploy an ERC1155 contract."""
        self._ensure_can_sign()
        return self._deploy(SmartContract.create_multi_token_contract(self._api, self.wallet_id, self.id, uri))

    def quote_fund(self, amount: Amount, asset_id: str) -> FundQuote:
        """Price buying amount of asset_id into this address, fees included."""
        return FundQuote.create(self._api, self.wallet_id, self.id, self.network_id, amount, asset_id)

    def fund(self, amount: Amount, asset_id: str, quote: Optional[FundQuote] = None) -> FundOperation:
        """Buy amount of asset_id into this address with fiat, at the quoted price if given."""
        return FundOperation.create(
            self._api, self.wallet_id, self.id, self.network_id, amount, asset_id, quote=quote
        )

    # ======================
    # Listings
    # ======================

    def transfers(self) -> PageEnumerator:
        return Transfer.list(self._api, self.wallet_id, self.id)

    def trades(self) -> PageEnumerator:
        return Trade.list(self._api, self.wallet_id, self.id)

    def contract_invocations(self) -> PageEnumerator:
        return ContractInvocation.list(self._api, self.wallet_id, self.id)

    def payload_signatures(self) -> PageEnumerator:
        return PayloadSignature.list(self._api, self.wallet_id, self.id)

    def fund_operations(self) -> PageEnumerator:
        return FundOperation.list(self._api, self.wallet_id, self.id)

    def __str__(self) -> str:
        return pretty_print_object(
            "WalletAddress", id=self.id, network_id=self.network_id, wallet_id=self.wallet_id
        )

    __repr__ = __str__
