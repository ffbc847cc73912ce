from __future__ import annotations

import pytest

from shardswap.core.errors import InvalidAmountError, UnknownAssetError
from shardswap.state.assets import Asset, AssetDirectory
from shardswap.state.balances import BalanceTable
from shardswap.state.canonical import canonical_json_bytes, domain_sep_bytes
from shardswap.state.lp import LPTable
from shardswap.state.shards import CurveParams, ShardState, ShardStatus, compute_shard_id


def test_asset_directory_registration() -> None:
    d = AssetDirectory()
    d.register(Asset("USDC", 6))
    d.register(Asset("USDC", 6))
    assert len(d) == 1
    assert d.decimals("USDC") == 6
    with pytest.raises(ValueError):
        d.register(Asset("USDC", 18))
    with pytest.raises(UnknownAssetError):
        d.get("DAI")


def test_curve_params_validation() -> None:
    with pytest.raises(ValueError):
        CurveParams(beta_slope=1)
    with pytest.raises(ValueError):
        CurveParams(fee_floor=20_000, fee_ceiling=10_000)
    with pytest.raises(ValueError):
        CurveParams(max_trade_ratio=0)
    with pytest.raises(ValueError):
        CurveParams(max_trade_ratio=1_000_001)


def test_shard_id_is_deterministic_and_unordered() -> None:
    a = compute_shard_id("USDC", "USDT", 0)
    assert a == compute_shard_id("USDT", "USDC", 0)
    assert a != compute_shard_id("USDC", "USDT", 1)
    assert a.startswith("0x") and len(a) == 66
    with pytest.raises(ValueError):
        compute_shard_id("USDC", "USDC", 0)


def test_shard_state_orientation() -> None:
    st = ShardState(
        shard_id="s",
        asset_a="USDC",
        asset_b="USDT",
        owner="o",
        reserve_a=10,
        reserve_b=20,
        lp_supply=5,
        status=ShardStatus.ACTIVE,
    )
    assert st.orient("USDC", "USDT") == (10, 20, True)
    assert st.orient("USDT", "USDC") == (20, 10, False)
    with pytest.raises(UnknownAssetError):
        st.orient("USDC", "DAI")


def test_uninitialized_shard_cannot_hold_reserves() -> None:
    with pytest.raises(ValueError):
        ShardState(shard_id="s", asset_a="A", asset_b="B", owner="o", reserve_a=1)


def test_balance_table_move() -> None:
    t = BalanceTable()
    t.add("alice", "USDC", 100)
    assert t.move("alice", "bob", "USDC", 60)
    assert not t.move("alice", "bob", "USDC", 41)
    assert t.get("alice", "USDC") == 40
    assert t.get("bob", "USDC") == 60


def test_canonical_encoding() -> None:
    assert canonical_json_bytes({"b": 1, "a": [2, 3]}) == b'{"a":[2,3],"b":1}'
    with pytest.raises(TypeError):
        canonical_json_bytes({"a": 1.5})
    assert domain_sep_bytes("exchange_snapshot") == b"shardswap:exchange_snapshot:v1\x00"


def test_lp_positions_mint_and_burn() -> None:
    t = LPTable()
    t.mint("s2", "bob", 5)
    t.mint("s1", "carol", 7)
    t.mint("s1", "alice", 3)
    t.mint("s1", "alice", 2)
    assert t.balance("s1", "alice") == 5
    assert t.issued("s1") == 12
    assert list(t.positions()) == [("s1", "alice", 5), ("s1", "carol", 7), ("s2", "bob", 5)]

    with pytest.raises(InvalidAmountError):
        t.burn("s1", "alice", 6)
    with pytest.raises(InvalidAmountError):
        t.mint("s1", "alice", 0)

    t.burn("s2", "bob", 5)
    t.burn("s1", "alice", 1)
    assert t.balance("s2", "bob") == 0
    assert t.issued("s2") == 0
    assert list(t.positions()) == [("s1", "alice", 4), ("s1", "carol", 7)]
