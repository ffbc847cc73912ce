"""
Exact-output router over sharded pools.

- Direct route first: best single shard for (asset_in -> asset_out).
- Otherwise one intermediary asset M, computed backward: hop 2 is priced for
  the caller's amount_out, hop 1 for hop 2's amount_in.
- No splitting of one hop across shards; no second intermediary attempt.

Determinism:
- best_shard ties on amount_in are broken by registry order (creation order).
- Intermediaries are scanned in pair-insertion order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..state.assets import Amount, AssetDirectory, AssetId
from .errors import InvalidRouteError, NoLiquidityError, NoRouteError, ShardSwapError
from .precision import require_amount
from .pricing import SwapQuote
from .registry import ShardRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteHop:
    shard_id: str
    asset_in: AssetId
    asset_out: AssetId
    amount_in: Amount
    amount_out: Amount
    quote: SwapQuote


@dataclass(frozen=True)
class RoutePlan:
    """
    Ordered hops; hop[i].amount_out == hop[i+1].amount_in and
    hop[i].asset_out == hop[i+1].asset_in.
    """

    hops: Tuple[RouteHop, ...]

    def __post_init__(self) -> None:
        if not self.hops:
            raise ValueError("a route plan needs at least one hop")
        for prev, nxt in zip(self.hops, self.hops[1:]):
            if prev.asset_out != nxt.asset_in:
                raise ValueError(f"hop assets do not chain: {prev.asset_out} != {nxt.asset_in}")
            if prev.amount_out != nxt.amount_in:
                raise ValueError(f"hop amounts do not chain: {prev.amount_out} != {nxt.amount_in}")

    @property
    def amount_in(self) -> Amount:
        return self.hops[0].amount_in

    @property
    def amount_out(self) -> Amount:
        return self.hops[-1].amount_out

    @property
    def asset_in(self) -> AssetId:
        return self.hops[0].asset_in

    @property
    def asset_out(self) -> AssetId:
        return self.hops[-1].asset_out

    @property
    def assets(self) -> Tuple[AssetId, ...]:
        return (self.hops[0].asset_in,) + tuple(h.asset_out for h in self.hops)

    @property
    def shard_ids(self) -> Tuple[str, ...]:
        return tuple(h.shard_id for h in self.hops)

    @property
    def trade_fees(self) -> Tuple[Amount, ...]:
        """Trade fee per hop, each in that hop's input asset."""
        return tuple(h.quote.trade_fee for h in self.hops)

    @property
    def owner_fees(self) -> Tuple[Amount, ...]:
        """Owner fee per hop, each in that hop's input asset."""
        return tuple(h.quote.owner_fee for h in self.hops)


class Router:
    """Read-only routing over a registry; never mutates shard state."""

    def __init__(self, registry: ShardRegistry, assets: AssetDirectory) -> None:
        self.registry = registry
        self.assets = assets

    def best_shard(self, asset_in: AssetId, asset_out: AssetId, amount_out: Amount) -> Tuple[str, SwapQuote]:
        """
        Cheapest shard (lowest amount_in) able to deliver exactly `amount_out`.

        Raises:
            NoLiquidityError: no shard of the pair can price the trade
        """
        require_amount("amount_out", amount_out, allow_zero=False)
        best: Optional[Tuple[str, SwapQuote]] = None
        rejections: List[Tuple[str, str]] = []
        for shard_id in self.registry.shards_for(asset_in, asset_out):
            shard = self.registry.get(shard_id)
            try:
                q = shard.quote_swap(amount_out, asset_in, asset_out, self.assets)
            except ShardSwapError as exc:
                logger.debug("shard rejected shard_id=%s code=%s reason=%s", shard_id, exc.code, exc)
                rejections.append((shard_id, exc.code))
                continue
            # Strict '<' keeps the earliest shard on ties.
            if best is None or q.amount_in < best[1].amount_in:
                best = (shard_id, q)

        if best is None:
            raise NoLiquidityError(
                f"no shard can deliver {amount_out} {asset_out} for {asset_in}",
                rejections=rejections,
            )
        logger.debug(
            "best shard %s->%s amount_out=%s shard_id=%s amount_in=%s",
            asset_in, asset_out, amount_out, best[0], best[1].amount_in,
        )
        return best

    def _has_active_shard(self, asset_x: AssetId, asset_y: AssetId) -> bool:
        return any(self.registry.get(sid).state.is_active for sid in self.registry.shards_for(asset_x, asset_y))

    def find_intermediary(self, asset_in: AssetId, asset_out: AssetId) -> Optional[AssetId]:
        """First asset M with an ACTIVE shard on both (asset_in, M) and (M, asset_out)."""
        for pair in self.registry.all_pairs():
            if not pair.contains(asset_in):
                continue
            mid = pair.other(asset_in)
            if mid == asset_out:
                continue
            if self._has_active_shard(asset_in, mid) and self._has_active_shard(mid, asset_out):
                return mid
        return None

    def _fold_exact_out(self, path: Sequence[AssetId], amount_out: Amount) -> RoutePlan:
        """
        Price `path` from the last hop to the first: each hop's required output
        is the next hop's amount_in.
        """
        hops: List[RouteHop] = []
        required = amount_out
        for asset_in, asset_out in reversed(list(zip(path, path[1:]))):
            shard_id, q = self.best_shard(asset_in, asset_out, required)
            hops.append(RouteHop(shard_id, asset_in, asset_out, q.amount_in, required, q))
            required = q.amount_in
        return RoutePlan(tuple(reversed(hops)))

    def route(self, asset_in: AssetId, asset_out: AssetId, amount_out: Amount) -> RoutePlan:
        """
        Plan an exact-output trade, direct or through one intermediary.

        Raises:
            InvalidRouteError: asset_in == asset_out
            InvalidAmountError: amount_out is not a positive int
            NoRouteError: neither a direct shard nor the first viable
                intermediary can deliver `amount_out`
        """
        if asset_in == asset_out:
            raise InvalidRouteError(f"asset_in and asset_out are the same: {asset_in}")
        require_amount("amount_out", amount_out, allow_zero=False)

        try:
            return self._fold_exact_out((asset_in, asset_out), amount_out)
        except NoLiquidityError as exc:
            direct_failure = exc

        mid = self.find_intermediary(asset_in, asset_out)
        if mid is None:
            raise NoRouteError(
                f"no route {asset_in}->{asset_out} for amount_out {amount_out}: {direct_failure}"
            )
        try:
            plan = self._fold_exact_out((asset_in, mid, asset_out), amount_out)
        except NoLiquidityError as exc:
            raise NoRouteError(
                f"no route {asset_in}->{mid}->{asset_out} for amount_out {amount_out}: {exc}"
            ) from None
        logger.debug("two-hop route via %s shards=%s amount_in=%s", mid, plan.shard_ids, plan.amount_in)
        return plan
