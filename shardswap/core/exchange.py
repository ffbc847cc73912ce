"""
Exchange context: the one owned object holding assets, shards, LP balances
and the ledger adapter.

Every caller-facing operation goes through an Exchange instance; nothing in
the core keeps module-level state. Routing is read-only; execution re-quotes
before any balance moves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..integration.config import ExchangeConfig
from ..state.assets import Amount, Asset, AssetDirectory, AssetId
from ..state.lp import LPTable
from ..state.shards import RATE_DENOM, BasePricing, CurveParams
from .errors import InvalidRouteError, NoLiquidityError, SlippageExceededError, UnknownAssetError
from .ledger import Ledger
from .precision import normalize, working_decimals_for
from .pricing import SwapQuote
from .registry import ShardRegistry
from .router import RoutePlan, Router
from .shard import Shard, ShardEnv, ShardSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShardSizeStats:
    """Distribution of output-side reserves across the usable shards of a pair."""

    count: int
    min_reserve: Amount
    max_reserve: Amount
    avg_reserve: Amount
    median_reserve: Amount
    smallest_shard_ids: Tuple[str, ...]


# Growth suggested when no larger shard exists to catch up with (scaled by RATE_DENOM).
FILLUP_SOLO_GROWTH = 200_000


class FillupPriority(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class FillupRecommendation:
    """
    Where a liquidity provider should deposit next, and how much.

    Sizes are reserve_a + reserve_b rescaled to the pair's working precision.
    `amount_a` / `amount_b` follow the shard's own pair order at its current
    reserve ratio, so they can be passed to `Exchange.add_liquidity` as is.
    """

    shard_id: str
    current_size: int
    target_size: int
    asset_a: AssetId
    asset_b: AssetId
    amount_a: Amount
    amount_b: Amount
    priority: FillupPriority


class Exchange:
    def __init__(
        self,
        ledger: Ledger,
        config: Optional[ExchangeConfig] = None,
        *,
        assets: Optional[AssetDirectory] = None,
        registry: Optional[ShardRegistry] = None,
        lp_table: Optional[LPTable] = None,
    ) -> None:
        self.config = config if config is not None else ExchangeConfig()
        self.ledger = ledger
        self.assets = assets if assets is not None else AssetDirectory()
        self.registry = registry if registry is not None else ShardRegistry()
        self.lp_table = lp_table if lp_table is not None else LPTable()
        self.router = Router(self.registry, self.assets)
        for asset in self.config.assets:
            self.assets.register(asset)

    @property
    def env(self) -> ShardEnv:
        return ShardEnv(
            assets=self.assets,
            ledger=self.ledger,
            lp_table=self.lp_table,
            min_lp_lock=self.config.min_lp_lock,
        )

    def shard(self, shard_id: str) -> Shard:
        return self.registry.get(shard_id)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def register_asset(self, asset_id: AssetId, decimal_scale: int) -> Asset:
        return self.assets.register(Asset(asset_id=asset_id, decimal_scale=decimal_scale))

    def create_shard(self, asset_a: AssetId, asset_b: AssetId, owner: str) -> str:
        self.assets.get(asset_a)
        self.assets.get(asset_b)
        return self.registry.create_shard(asset_a, asset_b, owner)

    def initialize_shard(
        self,
        shard_id: str,
        caller: str,
        amount_a: Amount,
        amount_b: Amount,
        *,
        trade_fee_rate: Optional[int] = None,
        owner_fee_rate: Optional[int] = None,
        curve: Optional[CurveParams] = None,
        base_pricing: Optional[BasePricing] = None,
    ) -> Amount:
        """
        Activate a shard; amounts follow the pair order given to create_shard.
        Unset parameters take the configured defaults.
        """
        cfg = self.config
        shard = self.registry.get(shard_id)
        return shard.initialize(
            caller,
            shard.state.asset_a,
            shard.state.asset_b,
            amount_a,
            amount_b,
            cfg.default_trade_fee_rate if trade_fee_rate is None else trade_fee_rate,
            cfg.default_owner_fee_rate if owner_fee_rate is None else owner_fee_rate,
            cfg.default_curve if curve is None else curve,
            env=self.env,
            base_pricing=cfg.default_base_pricing if base_pricing is None else base_pricing,
        )

    def add_liquidity(
        self, shard_id: str, provider: str, amount_a: Amount, amount_b: Amount, min_lp: Amount = 0
    ) -> Amount:
        return self.registry.get(shard_id).add_liquidity(provider, amount_a, amount_b, min_lp, env=self.env)

    def remove_liquidity(
        self, shard_id: str, holder: str, lp_amount: Amount, min_amount_a: Amount = 0, min_amount_b: Amount = 0
    ) -> Tuple[Amount, Amount]:
        return self.registry.get(shard_id).remove_liquidity(
            holder, lp_amount, min_amount_a, min_amount_b, env=self.env
        )

    def update_curve_params(self, shard_id: str, caller: str, curve: CurveParams) -> None:
        self.registry.get(shard_id).update_curve_params(caller, curve)

    def update_fees(self, shard_id: str, caller: str, trade_fee_rate: int, owner_fee_rate: int) -> None:
        self.registry.get(shard_id).update_fees(caller, trade_fee_rate, owner_fee_rate)

    def lp_balance(self, holder: str, shard_id: str) -> Amount:
        return self.lp_table.balance(shard_id, holder)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _check_pair(self, asset_in: AssetId, asset_out: AssetId) -> None:
        if asset_in == asset_out:
            raise InvalidRouteError(f"asset_in and asset_out are the same: {asset_in}")
        self.assets.get(asset_in)
        self.assets.get(asset_out)

    def quote(self, asset_in: AssetId, asset_out: AssetId, amount_out: Amount) -> SwapQuote:
        """Best direct quote; NoLiquidityError if no shard of the pair can price it."""
        self._check_pair(asset_in, asset_out)
        _shard_id, q = self.router.best_shard(asset_in, asset_out, amount_out)
        return q

    def route(self, asset_in: AssetId, asset_out: AssetId, amount_out: Amount) -> RoutePlan:
        self._check_pair(asset_in, asset_out)
        return self.router.route(asset_in, asset_out, amount_out)

    def list_shards(self, asset_in: AssetId, asset_out: AssetId) -> List[ShardSummary]:
        """Summaries of every shard of the pair, in creation order, oriented in -> out."""
        self._check_pair(asset_in, asset_out)
        return [self.registry.get(sid).summary(asset_in, asset_out) for sid in self.registry.shards_for(asset_in, asset_out)]

    def shard_size_stats(self, asset_in: AssetId, asset_out: AssetId) -> ShardSizeStats:
        """
        Size statistics over ACTIVE shards with a non-zero output reserve.

        avg and median are floored; smallest_shard_ids lists every shard
        sharing the minimum reserve, in creation order.
        """
        self._check_pair(asset_in, asset_out)
        sized = []
        for sid in self.registry.shards_for(asset_in, asset_out):
            st = self.registry.get(sid).state
            if not st.is_active:
                continue
            _r_in, r_out, _ = st.orient(asset_in, asset_out)
            if r_out > 0:
                sized.append((sid, r_out))
        if not sized:
            return ShardSizeStats(0, 0, 0, 0, 0, ())

        reserves = sorted(r for _sid, r in sized)
        n = len(reserves)
        mid = n // 2
        median = reserves[mid] if n % 2 else (reserves[mid - 1] + reserves[mid]) // 2
        lo = reserves[0]
        return ShardSizeStats(
            count=n,
            min_reserve=lo,
            max_reserve=reserves[-1],
            avg_reserve=sum(reserves) // n,
            median_reserve=median,
            smallest_shard_ids=tuple(sid for sid, r in sized if r == lo),
        )

    def fillup_recommendation(self, asset_a: AssetId, asset_b: AssetId) -> FillupRecommendation:
        """
        Point new liquidity at the smallest usable shard of the pair.

        The target is halfway from that shard's size to the (upper) median
        size; a shard with no larger peer is grown by FILLUP_SOLO_GROWTH.
        Priority compares the smallest size with the average: below 30% is
        HIGH, below 60% MEDIUM, otherwise LOW (MEDIUM for a lone shard).

        Raises:
            NoLiquidityError: the pair has no ACTIVE shard with both reserves positive
        """
        self._check_pair(asset_a, asset_b)
        w = working_decimals_for(self.assets.decimals(asset_a), self.assets.decimals(asset_b))
        sized = []
        for sid in self.registry.shards_for(asset_a, asset_b):
            st = self.registry.get(sid).state
            if not st.is_active or st.reserve_a == 0 or st.reserve_b == 0:
                continue
            size = normalize(st.reserve_a, self.assets.decimals(st.asset_a), w) + normalize(
                st.reserve_b, self.assets.decimals(st.asset_b), w
            )
            sized.append((sid, size))
        if not sized:
            raise NoLiquidityError(f"no initialized shard with reserves for pair ({asset_a}, {asset_b})")

        # min() keeps the first of equal sizes, i.e. the earliest-created shard.
        target_id, current = min(sized, key=lambda e: e[1])
        sizes = sorted(size for _sid, size in sized)
        n = len(sizes)
        target = current + (sizes[n // 2] - current) // 2
        if target <= current:
            target = current + current * FILLUP_SOLO_GROWTH // RATE_DENOM
        growth = target - current

        if n == 1:
            priority = FillupPriority.MEDIUM
        elif current * 10 * n < 3 * sum(sizes):
            priority = FillupPriority.HIGH
        elif current * 10 * n < 6 * sum(sizes):
            priority = FillupPriority.MEDIUM
        else:
            priority = FillupPriority.LOW

        st = self.registry.get(target_id).state
        rec = FillupRecommendation(
            shard_id=target_id,
            current_size=current,
            target_size=target,
            asset_a=st.asset_a,
            asset_b=st.asset_b,
            amount_a=st.reserve_a * growth // current,
            amount_b=st.reserve_b * growth // current,
            priority=priority,
        )
        logger.debug(
            "fillup recommendation shard_id=%s size=%s target=%s priority=%s",
            target_id, current, target, priority.value,
        )
        return rec

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_swap(
        self,
        shard_id: str,
        amount_out: Amount,
        max_amount_in: Amount,
        asset_in: AssetId,
        asset_out: AssetId,
        recipient: str,
        *,
        payer: Optional[str] = None,
    ) -> Amount:
        return self.registry.get(shard_id).execute_swap(
            amount_out, max_amount_in, asset_in, asset_out, recipient, env=self.env, payer=payer
        )

    def execute_route(
        self,
        plan: RoutePlan,
        max_amount_in: Amount,
        recipient: str,
        *,
        payer: Optional[str] = None,
    ) -> Amount:
        """
        Execute a planned route hop by hop.

        Every hop is re-quoted against current reserves before anything moves.
        The first hop is bounded by `max_amount_in`, later hops by the amount
        the previous hop delivers. Intermediate outputs are delivered to the payer
        and spent by the next hop. The ledger is responsible for making the
        hop sequence atomic as a whole.

        Returns:
            amount_in charged on the first hop
        """
        payer = recipient if payer is None else payer
        if plan.amount_in > max_amount_in:
            raise SlippageExceededError(
                f"planned amount_in {plan.amount_in} exceeds max_amount_in {max_amount_in}"
            )
        for i, hop in enumerate(plan.hops):
            if hop.asset_in not in self.assets or hop.asset_out not in self.assets:
                raise UnknownAssetError(f"hop {i} references an unregistered asset")
            fresh = self.registry.get(hop.shard_id).quote_swap(hop.amount_out, hop.asset_in, hop.asset_out, self.assets)
            bound = max_amount_in if i == 0 else hop.amount_in
            if fresh.amount_in > bound:
                raise SlippageExceededError(
                    f"hop {i} on shard {hop.shard_id}: amount_in {fresh.amount_in} exceeds {bound}"
                )

        charged = 0
        last = len(plan.hops) - 1
        for i, hop in enumerate(plan.hops):
            bound = max_amount_in if i == 0 else hop.amount_in
            to = recipient if i == last else payer
            spent = self.execute_swap(
                hop.shard_id, hop.amount_out, bound, hop.asset_in, hop.asset_out, to, payer=payer
            )
            if i == 0:
                charged = spent
        logger.info(
            "route executed %s amount_in=%s amount_out=%s shards=%s",
            "->".join(plan.assets), charged, plan.amount_out, plan.shard_ids,
        )
        return charged
