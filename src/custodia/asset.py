"""Assets and atomic amount conversion.

Ether has three supported denominations: eth (primary, 18 decimals),
gwei (9) and wei (0). Conversions into atomic units always truncate
toward zero.
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import TYPE_CHECKING, Optional, Union

from custodia.network import normalize_network_id

if TYPE_CHECKING:
    from custodia.api.client import ApiClient

GWEI_DECIMALS = 9

# Secondary denominations of the primary asset, with their decimals
DENOMINATIONS: dict[str, tuple[str, int]] = {
    "gwei": ("eth", GWEI_DECIMALS),
    "wei": ("eth", 0),
}

Amount = Union[int, float, str, Decimal]


def primary_denomination(asset_id: str) -> str:
    """Return the primary denomination for an asset ID (wei -> eth)."""
    asset_id = asset_id.lower()
    if asset_id in DENOMINATIONS:
        return DENOMINATIONS[asset_id][0]
    return asset_id


def to_decimal(amount: Amount) -> Decimal:
    """Convert an amount to Decimal without float artifacts."""
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


@dataclass(frozen=True)
class Asset:
    """An asset on a network."""

    network_id: str
    asset_id: str
    decimals: int
    contract_address: Optional[str] = None

    @classmethod
    def from_model(cls, model: dict, asset_id: Optional[str] = None) -> "Asset":
        """Build an Asset from a service asset snapshot.

        Args:
            model: Asset snapshot ({network_id, asset_id, decimals, contract_address})
            asset_id: Requested denomination, if different from the primary one
        """
        model_asset_id = model["asset_id"].lower()
        decimals = int(model.get("decimals") or 0)

        if asset_id and asset_id.lower() != model_asset_id:
            requested = asset_id.lower()
            if requested not in DENOMINATIONS or DENOMINATIONS[requested][0] != model_asset_id:
                raise ValueError(f"Unsupported asset ID: {asset_id}")
            decimals = DENOMINATIONS[requested][1]
            model_asset_id = requested

        return cls(
            network_id=normalize_network_id(model["network_id"]),
            asset_id=model_asset_id,
            decimals=decimals,
            contract_address=model.get("contract_address"),
        )

    @classmethod
    def fetch(cls, api: "ApiClient", network_id: str, asset_id: str) -> "Asset":
        """Fetch an asset from the service, resolving secondary denominations."""
        network_id = normalize_network_id(network_id)
        model = api.get_asset(network_id, primary_denomination(asset_id))
        return cls.from_model(model, asset_id=asset_id)

    @property
    def primary_denomination(self) -> str:
        return primary_denomination(self.asset_id)

    def to_atomic_amount(self, amount: Amount) -> int:
        """Convert a whole-unit amount to atomic units, truncating toward zero."""
        scaled = to_decimal(amount) * (Decimal(10) ** self.decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))

    def from_atomic_amount(self, atomic_amount: Union[int, str]) -> Decimal:
        """Convert atomic units to whole units of this denomination."""
        return Decimal(int(atomic_amount)) / (Decimal(10) ** self.decimals)

    def __str__(self) -> str:
        suffix = f", contract_address: '{self.contract_address}'" if self.contract_address else ""
        return (
            f"Asset{{network_id: '{self.network_id}', asset_id: '{self.asset_id}', "
            f"decimals: '{self.decimals}'{suffix}}}"
        )


def balance_from_model(model: Optional[dict], asset_id: Optional[str] = None) -> Decimal:
    """Convert a balance snapshot ({amount, asset}) to whole units of asset_id.

    A missing snapshot means a zero balance.
    """
    if not model:
        return Decimal(0)
    asset = Asset.from_model(model["asset"], asset_id=asset_id)
    return asset.from_atomic_amount(model["amount"])
