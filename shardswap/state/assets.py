"""
Asset directory: asset id -> decimal scale.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator

from ..core.errors import UnknownAssetError
from ..core.precision import MAX_DECIMALS


# Type aliases
AssetId = str
Amount = int  # Non-negative integer in the asset's native fixed-point unit


@dataclass(frozen=True)
class Asset:
    asset_id: AssetId
    decimal_scale: int

    def __post_init__(self) -> None:
        if not isinstance(self.asset_id, str) or not self.asset_id.strip():
            raise ValueError("asset_id must be a non-empty string")
        if not isinstance(self.decimal_scale, int) or isinstance(self.decimal_scale, bool):
            raise TypeError("decimal_scale must be an int")
        if not (0 <= self.decimal_scale <= MAX_DECIMALS):
            raise ValueError(f"decimal_scale must be in [0, {MAX_DECIMALS}]: {self.decimal_scale}")


class AssetDirectory:
    """
    Resolves asset ids to their decimal scale.

    Registration is idempotent for identical definitions; an id can never be
    re-registered with a different scale.
    """

    def __init__(self) -> None:
        self._assets: Dict[AssetId, Asset] = {}

    def register(self, asset: Asset) -> Asset:
        existing = self._assets.get(asset.asset_id)
        if existing is not None:
            if existing != asset:
                raise ValueError(
                    f"asset {asset.asset_id} already registered with decimal_scale={existing.decimal_scale}"
                )
            return existing
        self._assets[asset.asset_id] = asset
        return asset

    def get(self, asset_id: AssetId) -> Asset:
        try:
            return self._assets[asset_id]
        except KeyError:
            raise UnknownAssetError(f"unknown asset: {asset_id}") from None

    def decimals(self, asset_id: AssetId) -> int:
        return self.get(asset_id).decimal_scale

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._assets

    def __iter__(self) -> Iterator[Asset]:
        return iter(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)

    def __repr__(self) -> str:
        return f"AssetDirectory({len(self._assets)} assets)"
