"""EIP-1559 transaction codec and signer.

Two payload forms travel between the service and this process:

- unsigned payload: hex-encoded JSON object produced by the service, with
  hex-quantity fields chainId, nonce, maxPriorityFeePerGas, maxFeePerGas,
  gas, to, value and input
- signed payload: hex of 0x02 || rlp([chain_id, nonce, priority_fee,
  max_fee, gas_limit, to, value, data, access_list, y_parity, r, s])

The signing hash is keccak256 of 0x02 || rlp(first nine fields).
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import rlp
from eth_keys import keys
from eth_utils import big_endian_to_int, decode_hex, keccak, remove_0x_prefix, to_checksum_address

from custodia.errors import AlreadySignedError
from custodia.signing import SignerBackend, as_signer
from custodia.status import OperationKind, OperationStatus
from custodia.utils import pretty_print_object

logger = logging.getLogger(__name__)

EIP1559_TX_TYPE = 0x02

UNSIGNED_FIELD_COUNT = 9
SIGNED_FIELD_COUNT = 12


def _to_bytes(value: Union[str, bytes, None]) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    stripped = remove_0x_prefix(value)
    return bytes.fromhex(stripped) if stripped else b""


def _quantity(value: Union[str, int, None]) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


@dataclass
class Eip1559Transaction:
    """An EIP-1559 (type 2) transaction, optionally carrying a signature.

    Only the signature fields change after construction, and only once.
    """

    chain_id: int
    nonce: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int
    gas_limit: int
    to: str
    value: int = 0
    data: bytes = b""
    from_address: Optional[str] = field(default=None, compare=False)
    v: Optional[int] = None
    r: Optional[int] = None
    s: Optional[int] = None

    def __post_init__(self):
        # Empty recipient means contract creation
        self.to = to_checksum_address(self.to) if self.to else ""
        self.data = _to_bytes(self.data)
        if self.from_address:
            self.from_address = to_checksum_address(self.from_address)

    @property
    def is_signed(self) -> bool:
        return self.v is not None and self.r is not None and self.s is not None

    def _fields(self) -> list:
        return [
            self.chain_id,
            self.nonce,
            self.max_priority_fee_per_gas,
            self.max_fee_per_gas,
            self.gas_limit,
            _to_bytes(self.to),
            self.value,
            self.data,
            [],  # access list
        ]

    def encode_unsigned(self) -> bytes:
        """Typed envelope without the signature fields."""
        return bytes([EIP1559_TX_TYPE]) + rlp.encode(self._fields())

    def signing_hash(self) -> bytes:
        return keccak(self.encode_unsigned())

    def encode(self) -> bytes:
        """Typed envelope, signed when a signature is attached."""
        if not self.is_signed:
            return self.encode_unsigned()
        return bytes([EIP1559_TX_TYPE]) + rlp.encode(self._fields() + [self.v, self.r, self.s])

    def hex(self) -> str:
        return self.encode().hex()

    @property
    def hash(self) -> Optional[str]:
        """Transaction hash, available once signed."""
        if not self.is_signed:
            return None
        return "0x" + keccak(self.encode()).hex()

    def sign(self, key: Any) -> str:
        """Sign the transaction and return the hex signed payload.

        Args:
            key: DerivedKey or SignerBackend

        Raises:
            AlreadySignedError: If a signature is already attached
        """
        if self.is_signed:
            raise AlreadySignedError("Transaction is already signed")

        signer: SignerBackend = as_signer(key)
        signature = signer.sign_hash(self.signing_hash())

        self.v, self.r, self.s = signature.v, signature.r, signature.s
        if self.from_address is None:
            self.from_address = signer.address

        logger.debug(f"Signed transaction nonce={self.nonce} from {self.from_address}")
        return self.hex()

    def recover_sender(self) -> str:
        """Checksum address recovered from the attached signature."""
        if not self.is_signed:
            raise ValueError("Cannot recover sender of an unsigned transaction")
        signature = keys.Signature(vrs=(self.v, self.r, self.s))
        return signature.recover_public_key_from_msg_hash(self.signing_hash()).to_checksum_address()

    @classmethod
    def decode(cls, payload: Union[str, bytes], from_address: Optional[str] = None) -> "Eip1559Transaction":
        """Decode a typed envelope (unsigned or signed) or an unsigned JSON payload.

        Raises:
            ValueError: If the payload is neither form
        """
        raw = _to_bytes(payload)
        if not raw:
            raise ValueError("Empty transaction payload")

        if raw[:1] == b"{":
            return cls.from_unsigned_payload(raw.hex(), from_address=from_address)

        if raw[0] != EIP1559_TX_TYPE:
            raise ValueError(f"Unsupported transaction type: 0x{raw[0]:02x}")

        items = rlp.decode(raw[1:])
        if len(items) not in (UNSIGNED_FIELD_COUNT, SIGNED_FIELD_COUNT):
            raise ValueError(f"Invalid EIP-1559 field count: {len(items)}")

        chain_id, nonce, priority_fee, max_fee, gas_limit, to, value, data, _access_list = items[:9]
        tx = cls(
            chain_id=big_endian_to_int(chain_id),
            nonce=big_endian_to_int(nonce),
            max_priority_fee_per_gas=big_endian_to_int(priority_fee),
            max_fee_per_gas=big_endian_to_int(max_fee),
            gas_limit=big_endian_to_int(gas_limit),
            to="0x" + to.hex() if to else "",
            value=big_endian_to_int(value),
            data=data,
            from_address=from_address,
        )

        if len(items) == SIGNED_FIELD_COUNT:
            tx.v, tx.r, tx.s = (big_endian_to_int(item) for item in items[9:])
            if tx.from_address is None:
                tx.from_address = tx.recover_sender()

        return tx

    @classmethod
    def from_unsigned_payload(cls, payload: str, from_address: Optional[str] = None) -> "Eip1559Transaction":
        """Parse the service's hex-encoded JSON unsigned payload."""
        try:
            parsed = json.loads(bytes.fromhex(remove_0x_prefix(payload)))
        except ValueError as e:
            raise ValueError(f"Invalid unsigned payload: {e}") from e

        return cls(
            chain_id=_quantity(parsed.get("chainId")),
            nonce=_quantity(parsed.get("nonce")),
            max_priority_fee_per_gas=_quantity(parsed.get("maxPriorityFeePerGas")),
            max_fee_per_gas=_quantity(parsed.get("maxFeePerGas")),
            gas_limit=_quantity(parsed.get("gas")),
            to=parsed.get("to") or "",
            value=_quantity(parsed.get("value")),
            data=parsed.get("input") or b"",
            from_address=from_address,
        )

    def to_unsigned_payload(self) -> str:
        """Render the hex-encoded JSON form the service hands out."""
        body = {
            "chainId": hex(self.chain_id),
            "nonce": hex(self.nonce),
            "maxPriorityFeePerGas": hex(self.max_priority_fee_per_gas),
            "maxFeePerGas": hex(self.max_fee_per_gas),
            "gas": hex(self.gas_limit),
            "to": self.to,
            "value": hex(self.value),
            "input": "0x" + self.data.hex(),
        }
        return json.dumps(body, separators=(",", ":")).encode().hex()


def encode(tx: Eip1559Transaction) -> bytes:
    return tx.encode()


def decode(payload: Union[str, bytes], from_address: Optional[str] = None) -> Eip1559Transaction:
    return Eip1559Transaction.decode(payload, from_address=from_address)


def sign(tx: Eip1559Transaction, key: Any) -> str:
    return tx.sign(key)


def is_signed(tx: Eip1559Transaction) -> bool:
    return tx.is_signed


class Transaction:
    """A chain transaction embedded in a remote operation snapshot.

    The snapshot is a dict as returned by the service. Signing attaches a
    local signature to the decoded envelope without touching the snapshot.
    """

    def __init__(self, model: dict):
        self._model = model
        self._raw: Optional[Eip1559Transaction] = None

    @property
    def model(self) -> dict:
        return self._model

    @property
    def network_id(self) -> Optional[str]:
        return self._model.get("network_id")

    @property
    def unsigned_payload(self) -> Optional[str]:
        return self._model.get("unsigned_payload")

    @property
    def signed_payload(self) -> Optional[str]:
        return self._model.get("signed_payload")

    @property
    def transaction_hash(self) -> Optional[str]:
        return self._model.get("transaction_hash")

    @property
    def transaction_link(self) -> Optional[str]:
        return self._model.get("transaction_link")

    @property
    def from_address_id(self) -> Optional[str]:
        return self._model.get("from_address_id")

    @property
    def to_address_id(self) -> Optional[str]:
        return self._model.get("to_address_id")

    @property
    def block_hash(self) -> Optional[str]:
        return self._model.get("block_hash")

    @property
    def block_height(self) -> Optional[str]:
        return self._model.get("block_height")

    @property
    def status(self) -> OperationStatus:
        return OperationStatus.parse(self._model.get("status"))

    @property
    def terminal(self) -> bool:
        return self.status.is_terminal(OperationKind.TRANSACTION)

    @property
    def raw(self) -> Eip1559Transaction:
        """Decoded envelope, from the signed payload when the service has one."""
        if self._raw is None:
            if self.signed_payload:
                self._raw = Eip1559Transaction.decode(self.signed_payload, from_address=self.from_address_id)
            elif self.unsigned_payload:
                self._raw = Eip1559Transaction.from_unsigned_payload(
                    self.unsigned_payload, from_address=self.from_address_id
                )
            else:
                raise ValueError("Transaction snapshot carries no payload")
        return self._raw

    @property
    def signed(self) -> bool:
        return self.raw.is_signed

    @property
    def signature(self) -> str:
        """Hex signed payload (or unsigned envelope before signing)."""
        return self.raw.hex()

    def sign(self, key: Any) -> str:
        """Sign the embedded transaction.

        Raises:
            AlreadySignedError: If the transaction is already signed
        """
        if self.signed:
            raise AlreadySignedError("Transaction is already signed")
        return self.raw.sign(key)

    def __str__(self) -> str:
        return pretty_print_object(
            "Transaction",
            network_id=self.network_id,
            transaction_hash=self.transaction_hash,
            status=self.status.value,
        )

    __repr__ = __str__


class SponsoredSend:
    """A gasless send: the caller signs a typed-data hash, a sponsor submits it."""

    def __init__(self, model: dict):
        self._model = model
        self._signature: Optional[str] = model.get("signature")

    @property
    def model(self) -> dict:
        return self._model

    @property
    def typed_data_hash(self) -> str:
        return self._model["typed_data_hash"]

    @property
    def signature(self) -> Optional[str]:
        return self._signature

    @property
    def signed(self) -> bool:
        return self._signature is not None

    @property
    def status(self) -> OperationStatus:
        return OperationStatus.parse(self._model.get("status"))

    @property
    def terminal(self) -> bool:
        return self.status.is_terminal(OperationKind.SPONSORED_SEND)

    @property
    def transaction_hash(self) -> Optional[str]:
        return self._model.get("transaction_hash")

    @property
    def transaction_link(self) -> Optional[str]:
        return self._model.get("transaction_link")

    def sign(self, key: Any) -> str:
        """Sign the typed-data hash and return the 0x-prefixed signature.

        Raises:
            AlreadySignedError: If a signature is already attached
        """
        if self.signed:
            raise AlreadySignedError("Sponsored send is already signed")

        signer = as_signer(key)
        signature = signer.sign_hash(decode_hex(self.typed_data_hash))
        self._signature = "0x" + signature.to_eth_bytes().hex()
        return self._signature

    def __str__(self) -> str:
        return pretty_print_object(
            "SponsoredSend",
            status=self.status.value,
            transaction_hash=self.transaction_hash,
            transaction_link=self.transaction_link,
        )

    __repr__ = __str__
