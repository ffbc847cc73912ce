"""Property tests for the pricing curve and router composition."""

from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import assume, given, settings

from shardswap.core.errors import NoRouteError, ThresholdExceededError
from shardswap.core.exchange import Exchange
from shardswap.core.pricing import quote
from shardswap.core.router import RoutePlan
from shardswap.integration.ledger import InMemoryLedger
from shardswap.state.shards import RATE_DENOM, BasePricing, CurveParams

CURVE = CurveParams()

reserves = st.integers(min_value=10**3, max_value=10**24)
fee_rates = st.integers(min_value=0, max_value=50_000)


def _max_admissible(reserve_out: int, curve: CurveParams = CURVE) -> int:
    return curve.max_trade_ratio * reserve_out // RATE_DENOM


@settings(max_examples=200, deadline=None)
@given(r_small=reserves, extra=st.integers(min_value=0, max_value=10**24), data=st.data())
def test_smaller_shard_never_costs_more(r_small: int, extra: int, data) -> None:
    r_large = r_small + extra
    cap = _max_admissible(r_small)
    assume(cap >= 1)
    amount_out = data.draw(st.integers(min_value=1, max_value=cap))
    small = quote(r_small, r_small, amount_out, CURVE, 2_500, 500)
    large = quote(r_large, r_large, amount_out, CURVE, 2_500, 500)
    assert small.amount_in <= large.amount_in


@settings(max_examples=200, deadline=None)
@given(reserve_out=reserves, amount_out=st.integers(min_value=1, max_value=10**24))
def test_threshold_admission_is_exact(reserve_out: int, amount_out: int) -> None:
    over = amount_out * RATE_DENOM > CURVE.max_trade_ratio * reserve_out
    if over:
        with pytest.raises(ThresholdExceededError):
            quote(reserve_out, reserve_out, amount_out, CURVE, 2_500, 500)
    else:
        quote(reserve_out, reserve_out, amount_out, CURVE, 2_500, 500)


@settings(max_examples=200, deadline=None)
@given(
    reserve_in=reserves,
    reserve_out=reserves,
    trade_fee_rate=fee_rates,
    owner_fee_rate=fee_rates,
    pricing=st.sampled_from(list(BasePricing)),
    data=st.data(),
)
def test_no_value_creation(reserve_in, reserve_out, trade_fee_rate, owner_fee_rate, pricing, data) -> None:
    cap = _max_admissible(reserve_out)
    assume(cap >= 1)
    amount_out = data.draw(st.integers(min_value=1, max_value=cap))
    q = quote(reserve_in, reserve_out, amount_out, CURVE, trade_fee_rate, owner_fee_rate, base_pricing=pricing)
    assert q.trade_fee >= 0 and q.owner_fee >= 0
    assert q.amount_in >= q.base_amount
    # The trader never pays less than the no-fee price implied by reserves.
    assert q.base_amount * reserve_out >= amount_out * reserve_in
    assert q == quote(reserve_in, reserve_out, amount_out, CURVE, trade_fee_rate, owner_fee_rate, base_pricing=pricing)


@settings(max_examples=100, deadline=None)
@given(
    decimals_in=st.integers(min_value=0, max_value=24),
    decimals_out=st.integers(min_value=0, max_value=24),
    whole_in=st.integers(min_value=1, max_value=10**9),
    whole_out=st.integers(min_value=100, max_value=10**9),
)
def test_cross_decimal_quote_matches_whole_token_price(decimals_in, decimals_out, whole_in, whole_out) -> None:
    # amount_out is 1% of reserve_out, far below the threshold
    reserve_in = whole_in * 10**decimals_in
    reserve_out = whole_out * 10**decimals_out
    amount_out = reserve_out // 100
    q = quote(reserve_in, reserve_out, amount_out, CURVE, 0, 0, decimals_in=decimals_in, decimals_out=decimals_out)
    assert q.base_amount * reserve_out >= amount_out * reserve_in


@settings(max_examples=50, deadline=None)
@given(
    r1=st.integers(min_value=10**3, max_value=10**9),
    r2=st.integers(min_value=10**3, max_value=10**9),
    amount_out=st.integers(min_value=1, max_value=10**8),
)
def test_two_hop_route_composes_exactly(r1: int, r2: int, amount_out: int) -> None:
    ex = Exchange(InMemoryLedger())
    for asset, decimals in (("USDC", 6), ("DAI", 18), ("USDT", 6)):
        ex.register_asset(asset, decimals)
    for a, b, amt_a, amt_b in (("USDC", "DAI", r1 * 10**6, r1 * 10**18), ("DAI", "USDT", r2 * 10**18, r2 * 10**6)):
        sid = ex.create_shard(a, b, "owner")
        ex.ledger.credit("owner", a, amt_a)
        ex.ledger.credit("owner", b, amt_b)
        ex.initialize_shard(sid, "owner", amt_a, amt_b)

    try:
        plan = ex.route("USDC", "USDT", amount_out)
    except NoRouteError:
        return
    assert isinstance(plan, RoutePlan)
    hop1, hop2 = plan.hops
    assert hop2.amount_out == amount_out
    assert hop1.amount_out == hop2.amount_in
    assert hop1.asset_out == hop2.asset_in == "DAI"
