from __future__ import annotations

import pytest

from shardswap.core.errors import AmountOverflowError, InvalidAmountError, ThresholdExceededError, ZeroReserveError
from shardswap.core.precision import MAX_AMOUNT
from shardswap.core.pricing import SwapQuote, exceeds_threshold, fee_rate_at_zero, quote
from shardswap.state.shards import BasePricing, CurveParams

USDC = 10**6
CURVE = CurveParams()


def test_worked_example_large_shard() -> None:
    # ratio 0.001 -> fee rate 0.012 - 1.05 * 0.001 = 0.01095
    q = quote(1000 * USDC, 1000 * USDC, 1 * USDC, CURVE, 2_500, 500, decimals_in=6, decimals_out=6)
    assert q.base_amount == 1_000_000
    assert q.trade_fee == 10_950
    assert q.owner_fee == 500
    assert q.amount_in == 1_011_450
    assert q.fee_rate == 10_950


def test_worked_example_smaller_shard_is_cheaper() -> None:
    # ratio 0.01 -> fee rate 0.012 - 1.05 * 0.01 = 0.0015
    q = quote(100 * USDC, 100 * USDC, 1 * USDC, CURVE, 2_500, 500, decimals_in=6, decimals_out=6)
    assert q.trade_fee == 1_500
    assert q.amount_in == 1_002_000
    assert q.fee_rate == 1_500


def test_worked_example_threshold_rejection() -> None:
    with pytest.raises(ThresholdExceededError):
        quote(100 * USDC, 100 * USDC, 2 * USDC, CURVE, 2_500, 500, decimals_in=6, decimals_out=6)


def test_threshold_boundary_is_inclusive() -> None:
    # 0.0104 * 100e6 = 1_040_000 exactly
    assert not exceeds_threshold(1_040_000, 100 * USDC, CURVE)
    assert exceeds_threshold(1_040_001, 100 * USDC, CURVE)
    quote(100 * USDC, 100 * USDC, 1_040_000, CURVE, 2_500, 500, decimals_in=6, decimals_out=6)
    with pytest.raises(ThresholdExceededError):
        quote(100 * USDC, 100 * USDC, 1_040_001, CURVE, 2_500, 500, decimals_in=6, decimals_out=6)


def test_fee_rate_is_floored() -> None:
    steep = CurveParams(beta_slope=-2_000_000, fee_floor=1_000, fee_ceiling=12_000, max_trade_ratio=10_400)
    q = quote(100 * USDC, 100 * USDC, 1 * USDC, steep, 2_500, 0, decimals_in=6, decimals_out=6)
    assert q.fee_rate == 1_000
    assert q.trade_fee == 1_000


def test_zero_trade_fee_rate_disables_adaptive_fee() -> None:
    q = quote(1000 * USDC, 1000 * USDC, 1 * USDC, CURVE, 0, 500, decimals_in=6, decimals_out=6)
    assert q.trade_fee == 0
    assert q.fee_rate == 0
    assert q.amount_in == 1_000_500
    assert fee_rate_at_zero(CURVE, 0) == 0
    assert fee_rate_at_zero(CURVE, 2_500) == CURVE.fee_ceiling


def test_cross_decimal_quote_is_denominated_in_input_units() -> None:
    # DAI (18 decimals) in, USDC (6 decimals) out.
    q = quote(1000 * 10**18, 1000 * USDC, 1 * USDC, CURVE, 2_500, 500, decimals_in=18, decimals_out=6)
    assert q.base_amount == 10**18
    assert q.amount_in == 1_011_450 * 10**12

    # USDC in, DAI out.
    q = quote(1000 * USDC, 1000 * 10**18, 10**18, CURVE, 2_500, 500, decimals_in=6, decimals_out=18)
    assert q.base_amount == 1_000_000
    assert q.amount_in == 1_011_450


def test_base_amount_rounds_up() -> None:
    wide = CurveParams(max_trade_ratio=1_000_000)
    q = quote(3, 7, 1, wide, 0, 0)
    assert q.base_amount == 1
    assert q.amount_in == 1


def test_zero_reserve_is_rejected() -> None:
    with pytest.raises(ZeroReserveError):
        quote(0, 1000, 1, CURVE, 2_500, 500)
    with pytest.raises(ZeroReserveError):
        quote(1000, 0, 1, CURVE, 2_500, 500)


def test_invalid_amount_out() -> None:
    with pytest.raises(InvalidAmountError):
        quote(1000, 1000, 0, CURVE, 2_500, 500)
    with pytest.raises(InvalidAmountError):
        quote(1000, 1000, -5, CURVE, 2_500, 500)


def test_intermediate_overflow_is_reported() -> None:
    with pytest.raises(AmountOverflowError):
        quote(MAX_AMOUNT, 10**30, 10**20, CURVE, 0, 0)


def test_constant_product_base_pricing() -> None:
    wide = CurveParams(max_trade_ratio=1_000_000)
    q = quote(1000, 1000, 10, wide, 0, 0, base_pricing=BasePricing.CONSTANT_PRODUCT)
    # ceil(1000 * 1000 / 990) - 1000
    assert q.base_amount == 11
    with pytest.raises(ZeroReserveError):
        quote(1000, 1000, 1000, wide, 0, 0, base_pricing=BasePricing.CONSTANT_PRODUCT)


def test_quote_is_deterministic() -> None:
    a = quote(1000 * USDC, 700 * USDC, 3 * USDC, CURVE, 2_500, 500, decimals_in=6, decimals_out=6)
    b = quote(1000 * USDC, 700 * USDC, 3 * USDC, CURVE, 2_500, 500, decimals_in=6, decimals_out=6)
    assert a == b


def test_linear_pricing_cannot_drain_output_reserve() -> None:
    wide = CurveParams(max_trade_ratio=1_000_000)
    assert not exceeds_threshold(1000, 1000, wide)
    with pytest.raises(ZeroReserveError):
        quote(1000, 1000, 1000, wide, 0, 0)
    assert quote(1000, 1000, 999, wide, 0, 0).base_amount == 999


def test_swap_quote_rejects_inconsistent_total() -> None:
    with pytest.raises(ValueError, match="amount_in must equal"):
        SwapQuote(amount_in=10, trade_fee=1, owner_fee=1, base_amount=7, amount_out=5, fee_rate=0)
