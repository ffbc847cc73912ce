"""
Shard operations: initialize, quote, execute swap, add/remove liquidity.

Every mutating operation computes its full result first, then asks the ledger
to move balances, and only then writes the new shard state in one assignment.
Any failure before the final assignment leaves the shard untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..kernels.python.lp_math import MIN_LP_LOCK, burn, mint_initial, mint_proportional
from ..state.assets import Amount, AssetDirectory, AssetId
from ..state.lp import LPTable
from ..state.shards import BasePricing, CurveParams, ShardState, ShardStatus, require_rate
from .errors import (
    AlreadyInitializedError,
    InvalidAmountError,
    LedgerTransferError,
    NotInitializedError,
    SlippageExceededError,
    UnauthorizedError,
    UnknownAssetError,
)
from .ledger import Ledger
from .precision import require_amount
from .pricing import SwapQuote, fee_rate_at_zero, quote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShardEnv:
    """Collaborators a mutating shard operation needs, injected by the owner of the state."""

    assets: AssetDirectory
    ledger: Ledger
    lp_table: LPTable
    min_lp_lock: int = MIN_LP_LOCK


@dataclass(frozen=True)
class ShardSummary:
    shard_id: str
    reserve_in: Amount
    reserve_out: Amount
    fee_rate_at_zero: int


def _pull(ledger: Ledger, asset: AssetId, amount: Amount, account: str) -> None:
    if amount and not ledger.transfer_in(asset, amount, account):
        logger.warning("ledger refused transfer_in asset=%s amount=%s from=%s", asset, amount, account)
        raise LedgerTransferError(f"transfer_in of {amount} {asset} from {account} failed")


def _push(ledger: Ledger, asset: AssetId, amount: Amount, account: str) -> None:
    if amount and not ledger.transfer_out(asset, amount, account):
        logger.warning("ledger refused transfer_out asset=%s amount=%s to=%s", asset, amount, account)
        raise LedgerTransferError(f"transfer_out of {amount} {asset} to {account} failed")


def _pull_pair(ledger: Ledger, legs: Tuple[Tuple[AssetId, Amount], ...], account: str) -> None:
    """Pull several legs; if a later leg fails, return the earlier ones."""
    done = []
    try:
        for asset, amount in legs:
            _pull(ledger, asset, amount, account)
            done.append((asset, amount))
    except LedgerTransferError:
        for asset, amount in reversed(done):
            if not ledger.transfer_out(asset, amount, account):
                logger.error("refund failed asset=%s amount=%s to=%s", asset, amount, account)
        raise


class Shard:
    """
    One liquidity pool instance of an asset pair.

    Wraps a ShardState record; the record is replaced (never patched in place)
    by mutating operations.
    """

    def __init__(self, state: ShardState) -> None:
        self.state = state

    @property
    def shard_id(self) -> str:
        return self.state.shard_id

    def _require_active(self) -> None:
        if self.state.status != ShardStatus.ACTIVE:
            raise NotInitializedError(f"shard {self.shard_id} is not initialized")

    def _require_owner(self, caller: str) -> None:
        if caller != self.state.owner:
            raise UnauthorizedError(f"{caller} is not the owner of shard {self.shard_id}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(
        self,
        caller: str,
        asset_a: AssetId,
        asset_b: AssetId,
        amount_a: Amount,
        amount_b: Amount,
        trade_fee_rate: int,
        owner_fee_rate: int,
        curve: CurveParams,
        *,
        env: ShardEnv,
        base_pricing: BasePricing = BasePricing.LINEAR,
    ) -> Amount:
        """
        UNINITIALIZED -> ACTIVE, exactly once.

        Sets reserves, fee rates, curve and LP supply together. The initial LP
        (isqrt(amount_a * amount_b) minus the locked amount) goes to the caller.

        Returns:
            LP minted to the caller
        """
        st = self.state
        if st.status != ShardStatus.UNINITIALIZED:
            raise AlreadyInitializedError(f"shard {self.shard_id} is already initialized")
        self._require_owner(caller)
        if {asset_a, asset_b} != {st.asset_a, st.asset_b}:
            raise UnknownAssetError(
                f"({asset_a}, {asset_b}) does not match shard pair ({st.asset_a}, {st.asset_b})"
            )
        require_amount("amount_a", amount_a, allow_zero=False)
        require_amount("amount_b", amount_b, allow_zero=False)
        require_rate("trade_fee_rate", trade_fee_rate)
        require_rate("owner_fee_rate", owner_fee_rate)
        if not isinstance(curve, CurveParams):
            raise TypeError("curve must be a CurveParams")
        env.assets.get(asset_a)
        env.assets.get(asset_b)

        minted = mint_initial(amount_a=amount_a, amount_b=amount_b, min_lp_lock=env.min_lp_lock)
        new_state = replace(
            st,
            asset_a=asset_a,
            asset_b=asset_b,
            reserve_a=amount_a,
            reserve_b=amount_b,
            lp_supply=minted.total_supply,
            trade_fee_rate=trade_fee_rate,
            owner_fee_rate=owner_fee_rate,
            curve=curve,
            base_pricing=base_pricing,
            status=ShardStatus.ACTIVE,
        )

        _pull_pair(env.ledger, ((asset_a, amount_a), (asset_b, amount_b)), caller)
        env.lp_table.mint(self.shard_id, caller, minted.liquidity_minted)
        self.state = new_state
        logger.info(
            "shard initialized shard_id=%s pair=(%s,%s) reserves=(%s,%s) lp_supply=%s",
            self.shard_id, asset_a, asset_b, amount_a, amount_b, minted.total_supply,
        )
        return minted.liquidity_minted

    def update_curve_params(self, caller: str, curve: CurveParams) -> None:
        """Owner-only; applies to the next quote."""
        self._require_active()
        self._require_owner(caller)
        if not isinstance(curve, CurveParams):
            raise TypeError("curve must be a CurveParams")
        self.state = replace(self.state, curve=curve)
        logger.info("shard curve updated shard_id=%s curve=%s", self.shard_id, curve)

    def update_fees(self, caller: str, trade_fee_rate: int, owner_fee_rate: int) -> None:
        """
        Owner-only; applies to the next quote.

        `trade_fee_rate` is an on/off switch, not a price: 0 turns the adaptive
        trade fee off, and any non-zero value turns it on at the rate the curve
        gives (fee_floor..fee_ceiling). Its magnitude never changes a quote.
        `owner_fee_rate` is a flat rate on the base amount and does.
        """
        self._require_active()
        self._require_owner(caller)
        require_rate("trade_fee_rate", trade_fee_rate)
        require_rate("owner_fee_rate", owner_fee_rate)
        self.state = replace(self.state, trade_fee_rate=trade_fee_rate, owner_fee_rate=owner_fee_rate)
        logger.info(
            "shard fees updated shard_id=%s trade_fee_rate=%s owner_fee_rate=%s",
            self.shard_id, trade_fee_rate, owner_fee_rate,
        )

    # ------------------------------------------------------------------
    # Swaps
    # ------------------------------------------------------------------

    def quote_swap(self, amount_out: Amount, asset_in: AssetId, asset_out: AssetId, assets: AssetDirectory) -> SwapQuote:
        """Read-only exact-output quote against current reserves."""
        st = self.state
        if not st.has_asset(asset_in) and not st.has_asset(asset_out):
            raise UnknownAssetError(f"neither {asset_in} nor {asset_out} belongs to shard {self.shard_id}")
        self._require_active()
        reserve_in, reserve_out, _ = st.orient(asset_in, asset_out)
        return quote(
            reserve_in,
            reserve_out,
            amount_out,
            st.curve,
            st.trade_fee_rate,
            st.owner_fee_rate,
            decimals_in=assets.decimals(asset_in),
            decimals_out=assets.decimals(asset_out),
            base_pricing=st.base_pricing,
        )

    def execute_swap(
        self,
        amount_out: Amount,
        max_amount_in: Amount,
        asset_in: AssetId,
        asset_out: AssetId,
        recipient: str,
        *,
        env: ShardEnv,
        payer: Optional[str] = None,
    ) -> Amount:
        """
        Re-quote, check slippage, move balances, then commit reserves.

        Returns:
            The input amount actually charged
        """
        require_amount("max_amount_in", max_amount_in)
        payer = recipient if payer is None else payer
        q = self.quote_swap(amount_out, asset_in, asset_out, env.assets)
        if q.amount_in > max_amount_in:
            raise SlippageExceededError(
                f"required amount_in {q.amount_in} exceeds max_amount_in {max_amount_in}"
            )

        st = self.state
        _, _, in_is_a = st.orient(asset_in, asset_out)
        if in_is_a:
            new_state = replace(
                st,
                reserve_a=st.reserve_a + q.amount_in,
                reserve_b=st.reserve_b - amount_out,
                owner_fees_a=st.owner_fees_a + q.owner_fee,
            )
        else:
            new_state = replace(
                st,
                reserve_b=st.reserve_b + q.amount_in,
                reserve_a=st.reserve_a - amount_out,
                owner_fees_b=st.owner_fees_b + q.owner_fee,
            )

        _pull(env.ledger, asset_in, q.amount_in, payer)
        try:
            _push(env.ledger, asset_out, amount_out, recipient)
        except LedgerTransferError:
            if not env.ledger.transfer_out(asset_in, q.amount_in, payer):
                logger.error("refund failed asset=%s amount=%s to=%s", asset_in, q.amount_in, payer)
            raise

        self.state = new_state
        logger.info(
            "swap executed shard_id=%s %s->%s amount_in=%s amount_out=%s trade_fee=%s owner_fee=%s",
            self.shard_id, asset_in, asset_out, q.amount_in, amount_out, q.trade_fee, q.owner_fee,
        )
        return q.amount_in

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def add_liquidity(self, provider: str, amount_a: Amount, amount_b: Amount, min_lp: Amount, *, env: ShardEnv) -> Amount:
        """
        Deposit at the current reserve ratio (amounts in asset_a / asset_b order).

        A shard drained to zero supply and zero reserves is re-seeded with the
        initial-mint rule instead.

        Returns:
            LP minted to `provider`
        """
        self._require_active()
        require_amount("amount_a", amount_a, allow_zero=False)
        require_amount("amount_b", amount_b, allow_zero=False)
        require_amount("min_lp", min_lp)
        st = self.state

        if st.lp_supply == 0 and st.reserve_a == 0 and st.reserve_b == 0:
            seeded = mint_initial(amount_a=amount_a, amount_b=amount_b, min_lp_lock=env.min_lp_lock)
            if seeded.liquidity_minted < min_lp:
                raise SlippageExceededError(f"liquidity_minted {seeded.liquidity_minted} below min_lp {min_lp}")
            minted, used_a, used_b, new_supply = seeded.liquidity_minted, amount_a, amount_b, seeded.total_supply
        else:
            res = mint_proportional(
                reserve_a=st.reserve_a,
                reserve_b=st.reserve_b,
                total_supply=st.lp_supply,
                amount_a_desired=amount_a,
                amount_b_desired=amount_b,
                min_liquidity=min_lp,
            )
            minted, used_a, used_b, new_supply = (
                res.liquidity_minted, res.amount_a_used, res.amount_b_used, res.new_total_supply,
            )

        new_state = replace(
            st,
            reserve_a=st.reserve_a + used_a,
            reserve_b=st.reserve_b + used_b,
            lp_supply=new_supply,
        )
        _pull_pair(env.ledger, ((st.asset_a, used_a), (st.asset_b, used_b)), provider)
        env.lp_table.mint(self.shard_id, provider, minted)
        self.state = new_state
        logger.info(
            "liquidity added shard_id=%s provider=%s used=(%s,%s) lp_minted=%s",
            self.shard_id, provider, used_a, used_b, minted,
        )
        return minted

    def remove_liquidity(
        self,
        holder: str,
        lp_amount: Amount,
        min_amount_a: Amount = 0,
        min_amount_b: Amount = 0,
        *,
        env: ShardEnv,
    ) -> Tuple[Amount, Amount]:
        """
        Burn LP for a floor-proportional share of both reserves.

        The shard stays ACTIVE even if its reserves reach zero.
        """
        self._require_active()
        require_amount("lp_amount", lp_amount, allow_zero=False)
        balance = env.lp_table.balance(self.shard_id, holder)
        if lp_amount > balance:
            raise InvalidAmountError(f"insufficient LP balance: {balance} < {lp_amount}")

        st = self.state
        res = burn(lp_amount=lp_amount, reserve_a=st.reserve_a, reserve_b=st.reserve_b, total_supply=st.lp_supply)
        if res.amount_a_out < min_amount_a or res.amount_b_out < min_amount_b:
            raise SlippageExceededError(
                f"withdrawal ({res.amount_a_out}, {res.amount_b_out}) below minimum ({min_amount_a}, {min_amount_b})"
            )

        new_state = replace(
            st,
            reserve_a=st.reserve_a - res.amount_a_out,
            reserve_b=st.reserve_b - res.amount_b_out,
            lp_supply=st.lp_supply - lp_amount,
        )
        _push(env.ledger, st.asset_a, res.amount_a_out, holder)
        try:
            _push(env.ledger, st.asset_b, res.amount_b_out, holder)
        except LedgerTransferError:
            if res.amount_a_out and not env.ledger.transfer_in(st.asset_a, res.amount_a_out, holder):
                logger.error("clawback failed asset=%s amount=%s from=%s", st.asset_a, res.amount_a_out, holder)
            raise

        env.lp_table.burn(self.shard_id, holder, lp_amount)
        self.state = new_state
        logger.info(
            "liquidity removed shard_id=%s holder=%s lp_burned=%s out=(%s,%s)",
            self.shard_id, holder, lp_amount, res.amount_a_out, res.amount_b_out,
        )
        return res.amount_a_out, res.amount_b_out

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def summary(self, asset_in: AssetId, asset_out: AssetId) -> ShardSummary:
        reserve_in, reserve_out, _ = self.state.orient(asset_in, asset_out)
        return ShardSummary(
            shard_id=self.shard_id,
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            fee_rate_at_zero=fee_rate_at_zero(self.state.curve, self.state.trade_fee_rate),
        )

    def __repr__(self) -> str:
        return f"Shard({self.state!r})"
