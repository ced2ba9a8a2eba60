"""Long-running asset operations sharing one lifecycle."""

from custodia.operations.base import Operation, SingleTransactionOperation
from custodia.operations.contract_invocation import ContractInvocation
from custodia.operations.faucet import FaucetTransaction
from custodia.operations.fund import FundOperation, FundQuote
from custodia.operations.payload_signature import PayloadSignature
from custodia.operations.smart_contract import SmartContract, SmartContractType
from custodia.operations.staking import StakingOperation
from custodia.operations.trade import Trade
from custodia.operations.transfer import Transfer

__all__ = [
    "Operation",
    "SingleTransactionOperation",
    "ContractInvocation",
    "FaucetTransaction",
    "FundOperation",
    "FundQuote",
    "PayloadSignature",
    "SmartContract",
    "SmartContractType",
    "StakingOperation",
    "Trade",
    "Transfer",
]
