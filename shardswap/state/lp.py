"""
LP positions: shard_id -> {holder: lp_amount}.

Only the unlocked part of a shard's LP supply is held by anyone, so for every
shard `issued(shard_id) <= lp_supply`; the difference is the permanent lock.
"""

from __future__ import annotations

from typing import Dict, Iterator, Tuple

from ..core.errors import InvalidAmountError

# Type aliases
Holder = str
ShardId = str


def _require_positive(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value <= 0:
        raise InvalidAmountError(f"{name} must be positive: {value}")


class LPTable:
    """
    LP positions grouped by shard.

    Positions only move through mint and burn; a burned-out position is
    dropped, as is a shard with no remaining holders.
    """

    def __init__(self) -> None:
        self._positions: Dict[ShardId, Dict[Holder, int]] = {}

    def balance(self, shard_id: ShardId, holder: Holder) -> int:
        return self._positions.get(shard_id, {}).get(holder, 0)

    def issued(self, shard_id: ShardId) -> int:
        """Total LP held across all holders of a shard."""
        return sum(self._positions.get(shard_id, {}).values())

    def mint(self, shard_id: ShardId, holder: Holder, amount: int) -> None:
        _require_positive("lp amount", amount)
        holders = self._positions.setdefault(shard_id, {})
        holders[holder] = holders.get(holder, 0) + amount

    def burn(self, shard_id: ShardId, holder: Holder, amount: int) -> None:
        """
        Raises:
            InvalidAmountError: amount is not positive or exceeds the position
        """
        _require_positive("lp amount", amount)
        held = self.balance(shard_id, holder)
        if amount > held:
            raise InvalidAmountError(f"insufficient LP balance: {held} < {amount}")
        holders = self._positions[shard_id]
        if amount == held:
            del holders[holder]
            if not holders:
                del self._positions[shard_id]
        else:
            holders[holder] = held - amount

    def positions(self) -> Iterator[Tuple[ShardId, Holder, int]]:
        """Every non-zero position, ordered by (shard_id, holder)."""
        for shard_id in sorted(self._positions):
            holders = self._positions[shard_id]
            for holder in sorted(holders):
                yield shard_id, holder, holders[holder]

    def __repr__(self) -> str:
        return f"LPTable({len(self._positions)} shards)"
