"""Tests for the shared operation lifecycle and each operation kind."""

import json
import time
from decimal import Decimal

import pytest

from custodia.errors import ExternalOperationError, OperationTimeoutError, TransactionNotSignedError
from custodia.operations import (
    ContractInvocation,
    FaucetTransaction,
    FundOperation,
    FundQuote,
    PayloadSignature,
    SmartContract,
    SmartContractType,
    StakingOperation,
    Trade,
    Transfer,
)
from custodia.status import OperationKind, OperationStatus
from custodia.transaction import Eip1559Transaction

from conftest import NETWORK_ID, RECIPIENT

WALLET_ID = "wallet-1"


@pytest.fixture
def make_transfer_model(make_transaction_model, zero_key):
    def _make(status: str = "pending", **transaction_overrides) -> dict:
        return {
            "transfer_id": "transfer-1",
            "wallet_id": WALLET_ID,
            "address_id": zero_key.address,
            "network_id": NETWORK_ID,
            "destination": RECIPIENT,
            "asset_id": "eth",
            "asset": {"network_id": NETWORK_ID, "asset_id": "eth", "decimals": 18},
            "amount": "1000000000000000000",
            "transaction": make_transaction_model(status=status, **transaction_overrides),
        }

    return _make


class TestOperationStatus:
    """Tests for the shared status enum."""

    def test_parse_known_and_unknown(self):
        assert OperationStatus.parse("COMPLETE") == OperationStatus.COMPLETE
        assert OperationStatus.parse("bogus") == OperationStatus.UNSPECIFIED
        assert OperationStatus.parse(None) == OperationStatus.UNSPECIFIED

    def test_default_terminal_set(self):
        assert OperationStatus.COMPLETE.is_terminal()
        assert OperationStatus.FAILED.is_terminal()
        assert not OperationStatus.BROADCAST.is_terminal()
        assert not OperationStatus.SIGNED.is_terminal()

    def test_payload_signature_terminal_set(self):
        assert OperationStatus.SIGNED.is_terminal(OperationKind.PAYLOAD_SIGNATURE)
        assert OperationStatus.FAILED.is_terminal(OperationKind.PAYLOAD_SIGNATURE)
        assert not OperationStatus.PENDING.is_terminal(OperationKind.PAYLOAD_SIGNATURE)


class TestTransferLifecycle:
    """Tests for create -> sign -> broadcast -> wait on a transfer."""

    def test_create_converts_amount_and_resolves_destination(self, fake_api, make_transfer_model, zero_key):
        fake_api.create_transfer.return_value = make_transfer_model()

        transfer = Transfer.create(
            fake_api, WALLET_ID, zero_key.address, "base_sepolia", Decimal("1.5"), "eth", RECIPIENT
        )

        fake_api.create_transfer.assert_called_once_with(
            WALLET_ID,
            zero_key.address,
            {
                "amount": "1500000000000000000",
                "asset_id": "eth",
                "network_id": NETWORK_ID,
                "destination": RECIPIENT,
                "gasless": False,
            },
        )
        assert transfer.status == OperationStatus.PENDING
        assert transfer.amount == Decimal(1)

    def test_create_with_gwei(self, fake_api, make_transfer_model, zero_key):
        fake_api.create_transfer.return_value = make_transfer_model()

        Transfer.create(fake_api, WALLET_ID, zero_key.address, NETWORK_ID, 5, "gwei", RECIPIENT)

        body = fake_api.create_transfer.call_args[0][2]
        assert body["amount"] == "5000000000"
        assert body["asset_id"] == "eth"

    def test_sign_then_broadcast(self, fake_api, make_transfer_model, zero_key):
        transfer = Transfer(fake_api, make_transfer_model())
        fake_api.broadcast_transfer.return_value = make_transfer_model(status="broadcast")

        transfer.sign(zero_key)
        signed_payload = transfer.transaction.signature
        transfer.broadcast()

        fake_api.broadcast_transfer.assert_called_once_with(
            WALLET_ID, zero_key.address, "transfer-1", signed_payload
        )
        assert Eip1559Transaction.decode(signed_payload).recover_sender() == zero_key.address
        assert transfer.status == OperationStatus.BROADCAST

    def test_sign_is_idempotent(self, fake_api, make_transfer_model, zero_key):
        transfer = Transfer(fake_api, make_transfer_model())

        transfer.sign(zero_key)
        signature = transfer.transaction.signature
        transfer.sign(zero_key)

        assert transfer.transaction.signature == signature

    def test_broadcast_unsigned_raises_and_keeps_status(self, fake_api, make_transfer_model):
        transfer = Transfer(fake_api, make_transfer_model())

        with pytest.raises(TransactionNotSignedError):
            transfer.broadcast()

        assert transfer.status == OperationStatus.PENDING
        fake_api.broadcast_transfer.assert_not_called()

    def test_reload_replaces_snapshot(self, fake_api, make_transfer_model):
        transfer = Transfer(fake_api, make_transfer_model())
        fake_api.get_transfer.return_value = make_transfer_model(status="complete", transaction_hash="0xfeed")

        transfer.reload()

        fake_api.get_transfer.assert_called_once_with(WALLET_ID, transfer.address_id, "transfer-1")
        assert transfer.status == OperationStatus.COMPLETE
        assert transfer.transaction_hash == "0xfeed"

    def test_wait_until_terminal(self, fake_api, make_transfer_model):
        transfer = Transfer(fake_api, make_transfer_model(status="broadcast"))
        fake_api.get_transfer.side_effect = [
            make_transfer_model(status="broadcast"),
            make_transfer_model(status="broadcast"),
            make_transfer_model(status="complete"),
        ]

        result = transfer.wait(interval=0.001, timeout=5)

        assert result is transfer
        assert transfer.status == OperationStatus.COMPLETE
        assert fake_api.get_transfer.call_count == 3

    def test_wait_failed_is_terminal(self, fake_api, make_transfer_model):
        transfer = Transfer(fake_api, make_transfer_model(status="broadcast"))
        fake_api.get_transfer.return_value = make_transfer_model(status="failed")

        transfer.wait(interval=0.001, timeout=5)

        assert transfer.status == OperationStatus.FAILED

    def test_wait_times_out(self, fake_api, make_transfer_model):
        """A never-terminal operation times out close to the deadline."""
        transfer = Transfer(fake_api, make_transfer_model(status="broadcast"))
        fake_api.get_transfer.return_value = make_transfer_model(status="broadcast")

        start = time.monotonic()
        with pytest.raises(OperationTimeoutError) as exc_info:
            transfer.wait(interval=0.01, timeout=0.0001)
        elapsed = time.monotonic() - start

        assert elapsed < 0.5
        assert exc_info.value.timeout == 0.0001
        assert isinstance(exc_info.value, TimeoutError)

    def test_gasless_transfer_signs_sponsored_send(self, fake_api, make_transfer_model, zero_key):
        model = make_transfer_model()
        model.update(
            gasless=True,
            transaction=None,
            sponsored_send={"typed_data_hash": "0x" + "ab" * 32, "status": "pending"},
        )
        transfer = Transfer(fake_api, model)
        fake_api.broadcast_transfer.return_value = dict(
            model, sponsored_send={"typed_data_hash": "0x" + "ab" * 32, "status": "submitted"}
        )

        transfer.sign(zero_key)
        signature = transfer.sponsored_send.signature
        transfer.broadcast()

        assert fake_api.broadcast_transfer.call_args[0][3] == signature
        assert transfer.status == OperationStatus.SUBMITTED

    def test_list_enumerates_pages(self, fake_api, make_transfer_model):
        fake_api.list_transfers.side_effect = [
            {"data": [make_transfer_model()], "has_more": True, "next_page": "p2"},
            {"data": [make_transfer_model(status="complete")], "has_more": False},
        ]

        transfers = list(Transfer.list(fake_api, WALLET_ID, "0xaddr"))

        assert [t.status for t in transfers] == [OperationStatus.PENDING, OperationStatus.COMPLETE]
        assert fake_api.list_transfers.call_args_list[1].kwargs == {"page": "p2"}


class TestTrade:
    """Tests for trades with an approve transaction."""

    def _model(self, make_transaction_model, status="pending", with_approve=True) -> dict:
        model = {
            "trade_id": "trade-1",
            "wallet_id": WALLET_ID,
            "address_id": "0xaddr",
            "network_id": NETWORK_ID,
            "from_asset": {"network_id": NETWORK_ID, "asset_id": "eth", "decimals": 18},
            "to_asset": {"network_id": NETWORK_ID, "asset_id": "usdc", "decimals": 6},
            "from_amount": "500000000000000000",
            "to_amount": "1250000000",
            "transaction": make_transaction_model(status=status, nonce=1),
        }
        if with_approve:
            model["approve_transaction"] = make_transaction_model(status=status, nonce=0)
        return model

    def test_amounts(self, fake_api, make_transaction_model):
        trade = Trade(fake_api, self._model(make_transaction_model))

        assert trade.from_amount == Decimal("0.5")
        assert trade.to_amount == Decimal("1250")
        assert trade.from_asset_id == "eth"

    def test_signs_both_transactions(self, fake_api, make_transaction_model, zero_key):
        trade = Trade(fake_api, self._model(make_transaction_model))
        fake_api.broadcast_trade.return_value = self._model(make_transaction_model, status="broadcast")

        trade.sign(zero_key)
        assert trade.transaction.signed and trade.approve_transaction.signed
        payload = trade.transaction.signature
        approve_payload = trade.approve_transaction.signature
        trade.broadcast()

        fake_api.broadcast_trade.assert_called_once_with(
            WALLET_ID, "0xaddr", "trade-1", payload, approve_transaction_signed_payload=approve_payload
        )

    def test_broadcast_requires_approve_signature(self, fake_api, make_transaction_model, zero_key):
        trade = Trade(fake_api, self._model(make_transaction_model))
        trade.transaction.sign(zero_key)

        with pytest.raises(TransactionNotSignedError):
            trade.broadcast()

    def test_without_approve(self, fake_api, make_transaction_model, zero_key):
        trade = Trade(fake_api, self._model(make_transaction_model, with_approve=False))
        fake_api.broadcast_trade.return_value = self._model(make_transaction_model, "broadcast", False)

        trade.sign(zero_key).broadcast()

        assert fake_api.broadcast_trade.call_args.kwargs["approve_transaction_signed_payload"] is None

    def test_default_timeout(self):
        assert Trade.default_timeout == 10.0


class TestContractInvocation:
    def test_create_serializes_abi_and_args(self, fake_api, make_transaction_model):
        abi = [{"type": "function", "name": "mint", "inputs": []}]
        fake_api.create_contract_invocation.return_value = {
            "contract_invocation_id": "ci-1",
            "wallet_id": WALLET_ID,
            "address_id": "0xaddr",
            "contract_address": "0xcontract",
            "method": "mint",
            "abi": '[{"type": "function", "name": "mint", "inputs": []}]',
            "args": '{"to": "0xabc"}',
            "transaction": make_transaction_model(),
        }

        invocation = ContractInvocation.create(
            fake_api, WALLET_ID, "0xaddr", NETWORK_ID, "0xcontract", "mint", abi=abi, args={"to": "0xabc"}
        )

        body = fake_api.create_contract_invocation.call_args[0][2]
        assert body["abi"] == '[{"type": "function", "name": "mint", "inputs": []}]'
        assert body["args"] == '{"to": "0xabc"}'
        assert body["amount"] is None
        assert invocation.abi == abi
        assert invocation.args == {"to": "0xabc"}


class TestPayloadSignature:
    def test_signed_is_terminal(self, fake_api):
        signature = PayloadSignature(
            fake_api,
            {"payload_signature_id": "ps-1", "wallet_id": WALLET_ID, "address_id": "0xaddr", "status": "pending"},
        )
        fake_api.get_payload_signature.return_value = dict(signature.model, status="signed", signature="0xsig")

        signature.wait(interval=0.001, timeout=1)

        assert signature.status == OperationStatus.SIGNED
        assert signature.signature == "0xsig"

    def test_has_no_transactions_and_is_trivially_signed(self, fake_api):
        signature = PayloadSignature(fake_api, {"payload_signature_id": "ps-1", "status": "pending"})

        assert signature.transactions == []
        assert signature.signed


class TestFaucetTransaction:
    def test_reload_by_transaction_hash(self, fake_api, make_transaction_model):
        model = {"transaction": make_transaction_model(status="broadcast", transaction_hash="0xfau")}
        faucet = FaucetTransaction(fake_api, model)
        fake_api.get_faucet_transaction.return_value = {
            "transaction": make_transaction_model(status="complete", transaction_hash="0xfau")
        }

        faucet.wait(interval=0.001, timeout=1)

        fake_api.get_faucet_transaction.assert_called_with(NETWORK_ID, RECIPIENT, "0xfau")
        assert faucet.status == OperationStatus.COMPLETE
        assert faucet.transactions == []


class TestFundOperation:
    def test_defaults_are_slower(self):
        assert FundOperation.default_interval == 1.0
        assert FundOperation.default_timeout == 30.0

    def test_amounts(self, fake_api):
        operation = FundOperation(
            fake_api,
            {
                "fund_operation_id": "fo-1",
                "status": "pending",
                "crypto_amount": {"amount": "2000000", "asset": {"network_id": NETWORK_ID, "asset_id": "usdc", "decimals": 6}},
                "fiat_amount": {"amount": "2.05", "currency": "usd"},
            },
        )

        assert operation.amount == Decimal(2)
        assert operation.fiat_amount == Decimal("2.05")
        assert operation.fiat_currency == "usd"

    def test_create(self, fake_api):
        fake_api.create_fund_operation.return_value = {"fund_operation_id": "fo-1", "status": "pending"}

        FundOperation.create(fake_api, WALLET_ID, "0xaddr", NETWORK_ID, "0.5", "eth")

        body = fake_api.create_fund_operation.call_args[0][2]
        assert body["amount"] == "500000000000000000"
        assert body["asset_id"] == "eth"


class TestStakingOperation:
    """Tests for multi-transaction staking operations."""

    def _model(self, transactions, status="pending") -> dict:
        return {
            "id": "stake-1",
            "wallet_id": WALLET_ID,
            "address_id": "0xaddr",
            "network_id": NETWORK_ID,
            "status": status,
            "transactions": transactions,
        }

    def test_zero_transactions_is_trivially_signed(self, fake_api):
        operation = StakingOperation(fake_api, self._model([], status="initialized"))

        assert operation.signed
        assert operation.transactions == []

    def test_broadcast_by_index(self, fake_api, make_transaction_model, zero_key):
        first = make_transaction_model(nonce=0)
        second = make_transaction_model(nonce=1)
        operation = StakingOperation(fake_api, self._model([first, second]))
        fake_api.broadcast_staking_operation.side_effect = lambda *args, **kwargs: self._model([first, second])

        operation.sign(zero_key)
        operation.broadcast()

        indices = [call.kwargs["transaction_index"] for call in fake_api.broadcast_staking_operation.call_args_list]
        assert indices == [0, 1]

    def test_reload_keeps_local_signatures(self, fake_api, make_transaction_model, zero_key):
        first = make_transaction_model(nonce=0)
        operation = StakingOperation(fake_api, self._model([first]))
        operation.sign(zero_key)

        fake_api.get_staking_operation.return_value = self._model([dict(first), make_transaction_model(nonce=1)])
        operation.reload()

        assert [t.signed for t in operation.transactions] == [True, False]

    def test_complete_signs_new_transactions(self, fake_api, make_transaction_model, zero_key):
        first = make_transaction_model(nonce=0)
        second = make_transaction_model(nonce=1)
        operation = StakingOperation(fake_api, self._model([first]))

        fake_api.broadcast_staking_operation.side_effect = [
            self._model([first]),
            self._model([first, second]),
        ]
        fake_api.get_staking_operation.side_effect = [
            self._model([first, second]),
            self._model([first, second], status="complete"),
        ]

        operation.complete(zero_key, interval=0.001, timeout=5)

        assert operation.status == OperationStatus.COMPLETE
        assert fake_api.broadcast_staking_operation.call_count == 2

    def test_complete_times_out(self, fake_api):
        operation = StakingOperation(fake_api, self._model([], status="pending"))
        fake_api.get_staking_operation.return_value = self._model([], status="pending")

        with pytest.raises(OperationTimeoutError):
            operation.complete(None, interval=0.01, timeout=0.0001)

    def test_create_body(self, fake_api):
        fake_api.create_staking_operation.return_value = self._model([])

        StakingOperation.create(
            fake_api, WALLET_ID, "0xaddr", NETWORK_ID, "eth", "stake", amount="32", mode="native"
        )

        body = fake_api.create_staking_operation.call_args[0][2]
        assert body["action"] == "stake"
        assert body["options"] == {"mode": "native", "amount": str(32 * 10**18)}

    def test_unknown_action(self, fake_api):
        with pytest.raises(ValueError):
            StakingOperation.create(fake_api, WALLET_ID, "0xaddr", NETWORK_ID, "eth", "restake")

    def test_external_reload(self, fake_api):
        model = self._model([])
        model["wallet_id"] = None
        operation = StakingOperation(fake_api, model)
        fake_api.get_external_staking_operation.return_value = model

        operation.reload()

        fake_api.get_external_staking_operation.assert_called_once_with(NETWORK_ID, "0xaddr", "stake-1")

    def test_external_broadcast_is_rejected(self, fake_api, make_transaction_model, zero_key):
        model = self._model([make_transaction_model()])
        del model["wallet_id"]
        fake_api.build_staking_operation.return_value = model
        operation = StakingOperation.build(fake_api, NETWORK_ID, "0xaddr", "eth", "stake")
        operation.sign(zero_key)

        with pytest.raises(ExternalOperationError):
            operation.broadcast()
        fake_api.broadcast_staking_operation.assert_not_called()


USDC = {"network_id": NETWORK_ID, "asset_id": "usdc", "decimals": 6}
ETH = {"network_id": NETWORK_ID, "asset_id": "eth", "decimals": 18}


class TestFundQuote:
    """Tests for fund operation price quotes."""

    def _model(self) -> dict:
        return {
            "fund_quote_id": "fq-1",
            "network_id": NETWORK_ID,
            "wallet_id": WALLET_ID,
            "address_id": "0xaddr",
            "crypto_amount": {"amount": "2000000", "asset": USDC},
            "fiat_amount": {"amount": "2.15", "currency": "usd"},
            "fees": {
                "buy_fee": {"amount": "0.10", "currency": "usd"},
                "transfer_fee": {"amount": "50000", "asset": USDC},
            },
        }

    def test_create_converts_amount(self, fake_api):
        fake_api.create_fund_quote.return_value = self._model()

        quote = FundQuote.create(fake_api, WALLET_ID, "0xaddr", "base_sepolia", "2", "usdc")

        fake_api.create_fund_quote.assert_called_once_with(
            WALLET_ID, "0xaddr", {"amount": "2000000", "asset_id": "usdc"}
        )
        assert quote.id == "fq-1"

    def test_amounts_and_fees(self, fake_api):
        quote = FundQuote(fake_api, self._model())

        assert quote.asset.asset_id == "usdc"
        assert quote.amount == Decimal(2)
        assert quote.fiat_amount == Decimal("2.15")
        assert quote.fiat_currency == "usd"
        assert quote.buy_fee == Decimal("0.10")
        assert quote.transfer_fee == Decimal("0.05")
        assert "buy_fee: '0.10'" in str(quote)

    def test_fund_operation_uses_quote(self, fake_api):
        fake_api.create_fund_operation.return_value = {"fund_operation_id": "fo-1", "status": "pending"}
        quote = FundQuote(fake_api, self._model())

        FundOperation.create(fake_api, WALLET_ID, "0xaddr", NETWORK_ID, "2", "usdc", quote=quote)

        assert fake_api.create_fund_operation.call_args[0][2]["fund_quote_id"] == "fq-1"

    def test_fund_operation_without_quote(self, fake_api):
        fake_api.create_fund_operation.return_value = {"fund_operation_id": "fo-1", "status": "pending"}

        FundOperation.create(fake_api, WALLET_ID, "0xaddr", NETWORK_ID, "2", "usdc")

        assert fake_api.create_fund_operation.call_args[0][2]["fund_quote_id"] is None


TOKEN_ABI = [{"type": "function", "name": "totalSupply", "inputs": [], "outputs": [{"type": "uint256"}]}]


@pytest.fixture
def make_contract_model(make_transaction_model, zero_key):
    def _make(status: str = "pending", **overrides) -> dict:
        model = {
            "smart_contract_id": "sc-1",
            "network_id": NETWORK_ID,
            "wallet_id": WALLET_ID,
            "deployer_address": zero_key.address,
            "contract_address": "0x" + "c0" * 20,
            "contract_name": "Coin",
            "type": "erc20",
            "options": {"name": "Coin", "symbol": "CN", "total_supply": "1000000"},
            "abi": json.dumps(TOKEN_ABI),
            "is_external": False,
            "transaction": make_transaction_model(status=status),
        }
        model.update(overrides)
        return model

    return _make


@pytest.fixture
def registered_contract_model():
    return {
        "network_id": NETWORK_ID,
        "contract_address": "0x" + "ab" * 20,
        "contract_name": "External",
        "type": "custom",
        "abi": json.dumps(TOKEN_ABI),
        "is_external": True,
    }


class TestSmartContract:
    """Tests for contract deployment and registered contracts."""

    def test_create_token_contract(self, fake_api, make_contract_model, zero_key):
        fake_api.create_smart_contract.return_value = make_contract_model()

        contract = SmartContract.create_token_contract(
            fake_api, WALLET_ID, zero_key.address, "Coin", "CN", Decimal("1000000.9")
        )

        fake_api.create_smart_contract.assert_called_once_with(
            WALLET_ID,
            zero_key.address,
            {"type": "erc20", "options": {"name": "Coin", "symbol": "CN", "total_supply": "1000000"}},
        )
        assert contract.type == SmartContractType.ERC20
        assert contract.abi == TOKEN_ABI
        assert contract.address_id == zero_key.address
        assert not contract.is_external

    def test_create_nft_and_multi_token(self, fake_api, make_contract_model, zero_key):
        fake_api.create_smart_contract.return_value = make_contract_model(type="erc721")

        SmartContract.create_nft_contract(fake_api, WALLET_ID, zero_key.address, "Art", "ART", "https://x.test/")
        SmartContract.create_multi_token_contract(fake_api, WALLET_ID, zero_key.address, "https://x.test/{id}")

        bodies = [call.args[2] for call in fake_api.create_smart_contract.call_args_list]
        assert bodies == [
            {"type": "erc721", "options": {"name": "Art", "symbol": "ART", "base_uri": "https://x.test/"}},
            {"type": "erc1155", "options": {"uri": "https://x.test/{id}"}},
        ]

    def test_sign_then_deploy(self, fake_api, make_contract_model, zero_key):
        contract = SmartContract(fake_api, make_contract_model())
        fake_api.deploy_smart_contract.return_value = make_contract_model(status="broadcast")

        contract.sign(zero_key)
        signed_payload = contract.transaction.signature
        contract.deploy()

        fake_api.deploy_smart_contract.assert_called_once_with(
            WALLET_ID, zero_key.address, "sc-1", signed_payload
        )
        assert contract.status == OperationStatus.BROADCAST

    def test_deploy_unsigned(self, fake_api, make_contract_model):
        contract = SmartContract(fake_api, make_contract_model())

        with pytest.raises(TransactionNotSignedError):
            contract.deploy()
        fake_api.deploy_smart_contract.assert_not_called()

    def test_wait_until_deployed(self, fake_api, make_contract_model, zero_key):
        contract = SmartContract(fake_api, make_contract_model(status="broadcast"))
        fake_api.get_smart_contract.side_effect = [
            make_contract_model(status="broadcast"),
            make_contract_model(status="complete"),
        ]

        contract.wait(interval=0.001, timeout=5)

        assert contract.status == OperationStatus.COMPLETE
        fake_api.get_smart_contract.assert_called_with(WALLET_ID, zero_key.address, "sc-1")

    def test_register_normalizes_abi(self, fake_api, registered_contract_model):
        fake_api.register_smart_contract.return_value = registered_contract_model

        contract = SmartContract.register(
            fake_api, "base_sepolia", registered_contract_model["contract_address"], json.dumps(TOKEN_ABI), name="External"
        )

        network_id, address, body = fake_api.register_smart_contract.call_args[0]
        assert network_id == NETWORK_ID
        assert address == registered_contract_model["contract_address"]
        assert json.loads(body["abi"]) == TOKEN_ABI
        assert body["contract_name"] == "External"
        assert contract.is_external
        assert contract.type == SmartContractType.CUSTOM

    @pytest.mark.parametrize("abi", ["not json", 42])
    def test_register_rejects_bad_abi(self, fake_api, abi):
        with pytest.raises(ValueError):
            SmartContract.register(fake_api, NETWORK_ID, "0xc", abi)
        fake_api.register_smart_contract.assert_not_called()

    def test_registered_contract_has_no_lifecycle(self, fake_api, registered_contract_model, zero_key):
        contract = SmartContract(fake_api, registered_contract_model)

        for step in (lambda: contract.sign(zero_key), contract.deploy, contract.reload, contract.wait):
            with pytest.raises(ExternalOperationError):
                step()
        fake_api.get_smart_contract.assert_not_called()
        fake_api.deploy_smart_contract.assert_not_called()

    def test_update(self, fake_api, registered_contract_model):
        contract = SmartContract(fake_api, registered_contract_model)
        fake_api.update_smart_contract.return_value = dict(registered_contract_model, contract_name="Renamed")

        contract.update(name="Renamed")

        fake_api.update_smart_contract.assert_called_once_with(
            NETWORK_ID, registered_contract_model["contract_address"], {"contract_name": "Renamed", "abi": None}
        )
        assert contract.name == "Renamed"

    def test_read_converts_result(self, fake_api):
        fake_api.read_contract.return_value = {
            "type": "tuple",
            "values": [
                {"type": "uint256", "name": "supply", "value": "1000000000000000000000"},
                {"type": "bool", "name": "paused", "value": "false"},
                {
                    "type": "array",
                    "name": "holders",
                    "values": [{"type": "address", "value": RECIPIENT}],
                },
                {"type": "bytes32", "name": "root", "value": "0x" + "00" * 32},
            ],
        }

        result = SmartContract.read(fake_api, NETWORK_ID, "0xc", "state", args={"id": 1})

        assert result == {
            "supply": 10**21,
            "paused": False,
            "holders": [RECIPIENT],
            "root": "0x" + "00" * 32,
        }
        body = fake_api.read_contract.call_args[0][2]
        assert body == {"method": "state", "args": '{"id": 1}', "abi": None}

    def test_read_unsupported_type(self, fake_api):
        fake_api.read_contract.return_value = {"type": "fixed128x18", "value": "1.5"}

        with pytest.raises(ValueError, match="Unsupported Solidity type"):
            SmartContract.read(fake_api, NETWORK_ID, "0xc", "ratio")

    def test_read_unnamed_tuple_component(self, fake_api):
        fake_api.read_contract.return_value = {"type": "tuple", "values": [{"type": "uint8", "value": "1"}]}

        with pytest.raises(ValueError):
            SmartContract.read(fake_api, NETWORK_ID, "0xc", "pair")


class TestListing:
    """Every kind the service can list enumerates its pages lazily."""

    @pytest.mark.parametrize(
        "operation_class, endpoint, args",
        [
            (Transfer, "list_transfers", (WALLET_ID, "0xaddr")),
            (Trade, "list_trades", (WALLET_ID, "0xaddr")),
            (ContractInvocation, "list_contract_invocations", (WALLET_ID, "0xaddr")),
            (PayloadSignature, "list_payload_signatures", (WALLET_ID, "0xaddr")),
            (FundOperation, "list_fund_operations", (WALLET_ID, "0xaddr")),
            (SmartContract, "list_smart_contracts", ()),
        ],
    )
    def test_list(self, fake_api, operation_class, endpoint, args):
        getattr(fake_api, endpoint).side_effect = [
            {"data": [{operation_class.id_field: "op-1"}], "has_more": True, "next_page": "p2"},
            {"data": [{operation_class.id_field: "op-2"}], "has_more": False},
        ]

        pages = operation_class.list(fake_api, *args)
        getattr(fake_api, endpoint).assert_not_called()
        items = list(pages)

        assert [item.id for item in items] == ["op-1", "op-2"]
        assert all(isinstance(item, operation_class) for item in items)
        assert getattr(fake_api, endpoint).call_args_list[1].kwargs == {"page": "p2"}
