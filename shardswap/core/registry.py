"""
Shard registry: unordered asset pair -> append-only list of shards.

Shards are never removed; a decommissioned shard stays at zero reserves and
excludes itself from routing through ZeroReserve failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from ..state.assets import AssetId
from ..state.shards import ShardState, compute_shard_id
from .shard import Shard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairKey:
    """Unordered asset pair; `lo` < `hi` lexicographically."""

    lo: AssetId
    hi: AssetId

    def __post_init__(self) -> None:
        if self.lo == self.hi:
            raise ValueError(f"a pair needs two distinct assets: {self.lo}")
        if self.lo > self.hi:
            raise ValueError("PairKey must be built with PairKey.of(...)")

    @classmethod
    def of(cls, asset_x: AssetId, asset_y: AssetId) -> "PairKey":
        lo, hi = sorted((asset_x, asset_y))
        return cls(lo, hi)

    def contains(self, asset: AssetId) -> bool:
        return asset == self.lo or asset == self.hi

    def other(self, asset: AssetId) -> AssetId:
        if asset == self.lo:
            return self.hi
        if asset == self.hi:
            return self.lo
        raise ValueError(f"{asset} is not part of {self}")

    def __str__(self) -> str:
        return f"{self.lo}/{self.hi}"


class ShardRegistry:
    """Arena of shards indexed by pair key, in creation order."""

    def __init__(self) -> None:
        self._shards: Dict[str, Shard] = {}
        self._by_pair: Dict[PairKey, List[str]] = {}

    def create_shard(self, asset_a: AssetId, asset_b: AssetId, owner: str) -> str:
        """Append a new UNINITIALIZED shard for the pair and return its id."""
        key = PairKey.of(asset_a, asset_b)
        ids = self._by_pair.setdefault(key, [])
        shard_id = compute_shard_id(asset_a, asset_b, len(ids))
        if shard_id in self._shards:
            raise ValueError(f"duplicate shard_id: {shard_id}")
        state = ShardState(
            shard_id=shard_id,
            asset_a=asset_a,
            asset_b=asset_b,
            owner=owner,
            created_at=len(self._shards),
        )
        self._shards[shard_id] = Shard(state)
        ids.append(shard_id)
        logger.info("shard created shard_id=%s pair=%s owner=%s", shard_id, key, owner)
        return shard_id

    def adopt(self, state: ShardState) -> Shard:
        """Re-insert a shard record restored from persisted state, keeping its id."""
        if state.shard_id in self._shards:
            raise ValueError(f"duplicate shard_id: {state.shard_id}")
        shard = Shard(state)
        self._shards[state.shard_id] = shard
        self._by_pair.setdefault(PairKey.of(state.asset_a, state.asset_b), []).append(state.shard_id)
        return shard

    def shards_for(self, asset_a: AssetId, asset_b: AssetId) -> List[str]:
        """Shard ids for the pair in creation order; (A, B) and (B, A) are the same list."""
        return list(self._by_pair.get(PairKey.of(asset_a, asset_b), ()))

    def get(self, shard_id: str) -> Shard:
        try:
            return self._shards[shard_id]
        except KeyError:
            raise KeyError(f"unknown shard_id: {shard_id}") from None

    def all_pairs(self) -> List[PairKey]:
        return list(self._by_pair)

    def pair_index(self) -> List[Tuple[PairKey, Tuple[str, ...]]]:
        return [(k, tuple(v)) for k, v in self._by_pair.items()]

    def __iter__(self) -> Iterator[Shard]:
        return iter(self._shards.values())

    def __len__(self) -> int:
        return len(self._shards)

    def __contains__(self, shard_id: object) -> bool:
        return shard_id in self._shards
