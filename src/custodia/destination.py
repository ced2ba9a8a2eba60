"""Recipient resolution.

A recipient may be given as a raw address string, a managed Address, a
Wallet (meaning its default address) or an already-resolved Destination.
Resolution pins it to a concrete address on the operation's network and
performs no I/O.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from custodia.errors import NetworkMismatchError, NoDefaultAddressError, UnsupportedDestinationTypeError
from custodia.network import normalize_network_id

if TYPE_CHECKING:
    from custodia.address import Address
    from custodia.wallet import Wallet


@dataclass(frozen=True)
class Destination:
    """A fully-resolved recipient: address id plus network id."""

    address_id: str
    network_id: str


DestinationRef = Union[Destination, "Wallet", "Address", str]


def resolve_destination(ref: DestinationRef, network_id: str) -> Destination:
    """Resolve `ref` to a Destination on `network_id`.

    A Wallet resolves to the default address named in its snapshot (or
    its first loaded address); the address list is never fetched.

    Raises:
        NetworkMismatchError: If a Destination, Wallet or Address is on another network
        NoDefaultAddressError: If a Wallet has no address yet
        UnsupportedDestinationTypeError: For any other type
    """
    from custodia.address import Address
    from custodia.wallet import Wallet

    network_id = normalize_network_id(network_id)

    if isinstance(ref, Destination):
        if normalize_network_id(ref.network_id) != network_id:
            raise NetworkMismatchError("destination", network_id, ref.network_id)
        return ref

    if isinstance(ref, Wallet):
        if ref.network_id != network_id:
            raise NetworkMismatchError("wallet", network_id, ref.network_id)
        default_address_id = ref.default_address_id
        if default_address_id is None:
            raise NoDefaultAddressError(ref.id)
        return Destination(address_id=default_address_id, network_id=network_id)

    if isinstance(ref, Address):
        if ref.network_id != network_id:
            raise NetworkMismatchError("address", network_id, ref.network_id)
        return Destination(address_id=ref.id, network_id=network_id)

    if isinstance(ref, str):
        return Destination(address_id=ref, network_id=network_id)

    raise UnsupportedDestinationTypeError(type(ref).__name__)
