"""
Shard state records.

A shard is one pool instance for an asset pair; many shards may exist per pair.
Rates and curve parameters are integers scaled by RATE_DENOM.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from ..core.errors import UnknownAssetError
from .assets import Amount, AssetId


RATE_DENOM = 1_000_000

# Defaults from the SAMM research paper parameter set.
DEFAULT_BETA_SLOPE = -1_050_000
DEFAULT_FEE_FLOOR = 1_000
DEFAULT_FEE_CEILING = 12_000
DEFAULT_MAX_TRADE_RATIO = 10_400
DEFAULT_TRADE_FEE_RATE = 2_500
DEFAULT_OWNER_FEE_RATE = 500


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def require_rate(name: str, value: int) -> int:
    _require_int(name, value)
    if not (0 <= value <= RATE_DENOM):
        raise ValueError(f"{name} must be in [0, {RATE_DENOM}]: {value}")
    return value


class ShardStatus(Enum):
    """Shard lifecycle. UNINITIALIZED -> ACTIVE is the only transition."""
    UNINITIALIZED = "UNINITIALIZED"
    ACTIVE = "ACTIVE"


class BasePricing(Enum):
    """How the no-fee input amount is derived from reserves."""
    LINEAR = "LINEAR"
    CONSTANT_PRODUCT = "CONSTANT_PRODUCT"


@dataclass(frozen=True)
class CurveParams:
    """
    Fee curve parameters (all scaled by RATE_DENOM).

    fee_rate(ratio) = max(fee_floor, fee_ceiling + beta_slope * ratio),
    admissible only while ratio <= max_trade_ratio.
    """

    beta_slope: int = DEFAULT_BETA_SLOPE
    fee_floor: int = DEFAULT_FEE_FLOOR
    fee_ceiling: int = DEFAULT_FEE_CEILING
    max_trade_ratio: int = DEFAULT_MAX_TRADE_RATIO

    def __post_init__(self) -> None:
        _require_int("beta_slope", self.beta_slope)
        require_rate("fee_floor", self.fee_floor)
        require_rate("fee_ceiling", self.fee_ceiling)
        require_rate("max_trade_ratio", self.max_trade_ratio)
        if self.beta_slope > 0:
            raise ValueError(f"beta_slope must be <= 0: {self.beta_slope}")
        if self.fee_floor > self.fee_ceiling:
            raise ValueError(f"fee_floor must be <= fee_ceiling: {self.fee_floor} > {self.fee_ceiling}")
        if self.max_trade_ratio <= 0:
            raise ValueError("max_trade_ratio must be positive")


def compute_shard_id(asset_x: AssetId, asset_y: AssetId, index: int) -> str:
    """
    Deterministic shard id for the `index`-th shard of an (unordered) pair.
    """
    if asset_x == asset_y:
        raise ValueError("a shard needs two distinct assets")
    if not isinstance(index, int) or isinstance(index, bool) or index < 0:
        raise ValueError(f"index must be a non-negative int: {index}")
    lo, hi = sorted((asset_x, asset_y))
    data = (
        b"ShardSwapShard"
        + lo.encode("utf-8")
        + b"\x00"
        + hi.encode("utf-8")
        + b"\x00"
        + str(index).encode("utf-8")
    )
    return "0x" + hashlib.sha256(data).hexdigest()


@dataclass
class ShardState:
    """
    State of one shard.

    Attributes:
        shard_id: Deterministic identifier (hex string)
        asset_a / asset_b: The pair, in the order given at initialization
        reserve_a / reserve_b: Reserves in native units
        lp_supply: Total LP supply (including any locked amount)
        trade_fee_rate: On/off switch for the adaptive trade fee (0 = off); its magnitude is not used
        owner_fee_rate: Flat owner fee rate on the base amount
        curve: Fee curve parameters
        owner: Account allowed to initialize and re-parameterize the shard
        status: Lifecycle state
        base_pricing: Base-amount formula
        owner_fees_a / owner_fees_b: Owner fees accrued on each side (kept in reserves)
        created_at: Creation sequence number within the registry
    """
    shard_id: str
    asset_a: AssetId
    asset_b: AssetId
    owner: str
    reserve_a: Amount = 0
    reserve_b: Amount = 0
    lp_supply: Amount = 0
    trade_fee_rate: int = 0
    owner_fee_rate: int = 0
    curve: CurveParams = CurveParams()
    status: ShardStatus = ShardStatus.UNINITIALIZED
    base_pricing: BasePricing = BasePricing.LINEAR
    owner_fees_a: Amount = 0
    owner_fees_b: Amount = 0
    created_at: int = 0

    def __post_init__(self):
        """Validate shard state invariants."""
        if self.asset_a == self.asset_b:
            raise ValueError(f"Shard assets must differ: {self.asset_a}")
        require_rate("trade_fee_rate", self.trade_fee_rate)
        require_rate("owner_fee_rate", self.owner_fee_rate)
        for name, v in (
            ("reserve_a", self.reserve_a),
            ("reserve_b", self.reserve_b),
            ("lp_supply", self.lp_supply),
            ("owner_fees_a", self.owner_fees_a),
            ("owner_fees_b", self.owner_fees_b),
        ):
            _require_int(name, v)
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")
        if self.status == ShardStatus.UNINITIALIZED and (self.reserve_a or self.reserve_b or self.lp_supply):
            raise ValueError("an uninitialized shard cannot hold reserves or LP supply")

    @property
    def is_active(self) -> bool:
        return self.status == ShardStatus.ACTIVE

    def has_asset(self, asset: AssetId) -> bool:
        return asset in (self.asset_a, self.asset_b)

    def orient(self, asset_in: AssetId, asset_out: AssetId) -> Tuple[Amount, Amount, bool]:
        """
        Resolve caller direction to (reserve_in, reserve_out, in_is_a).

        Shards store an unordered pair; the lookup is explicit on every call.
        """
        if asset_in == self.asset_a and asset_out == self.asset_b:
            return self.reserve_a, self.reserve_b, True
        if asset_in == self.asset_b and asset_out == self.asset_a:
            return self.reserve_b, self.reserve_a, False
        raise UnknownAssetError(
            f"({asset_in} -> {asset_out}) does not match shard pair ({self.asset_a}, {self.asset_b})"
        )

    def __repr__(self) -> str:
        return (
            f"ShardState(shard_id={self.shard_id[:16]}..., "
            f"assets=({self.asset_a}, {self.asset_b}), "
            f"reserves=({self.reserve_a}, {self.reserve_b}), "
            f"lp_supply={self.lp_supply}, status={self.status.value})"
        )
