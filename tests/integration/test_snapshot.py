from __future__ import annotations

import copy

import pytest

from shardswap.core.exchange import Exchange
from shardswap.integration.ledger import InMemoryLedger
from shardswap.integration.snapshot import exchange_from_snapshot, snapshot_from_exchange

USDC = 10**6
DAI = 10**18


def _exchange() -> Exchange:
    ex = Exchange(InMemoryLedger())
    ex.register_asset("USDC", 6)
    ex.register_asset("USDT", 6)
    ex.register_asset("DAI", 18)
    for a, b, amt_a, amt_b in (
        ("USDC", "DAI", 1000 * USDC, 1000 * DAI),
        ("DAI", "USDT", 1000 * DAI, 1000 * USDC),
        ("USDC", "DAI", 100 * USDC, 100 * DAI),
    ):
        sid = ex.create_shard(a, b, "owner")
        ex.ledger.credit("owner", a, amt_a)
        ex.ledger.credit("owner", b, amt_b)
        ex.initialize_shard(sid, "owner", amt_a, amt_b)
    ex.create_shard("USDC", "USDT", "owner")
    return ex


def test_snapshot_restores_routing_state() -> None:
    ex = _exchange()
    ex.ledger.credit("trader", "USDC", 5 * USDC)
    ex.execute_swap(ex.registry.shards_for("USDC", "DAI")[0], 1 * DAI, 5 * USDC, "USDC", "DAI", "trader")

    snap = snapshot_from_exchange(ex)
    restored = exchange_from_snapshot(snap.data, ex.ledger)

    assert restored.registry.all_pairs() == ex.registry.all_pairs()
    assert restored.registry.shards_for("USDC", "DAI") == ex.registry.shards_for("USDC", "DAI")
    for shard in ex.registry:
        assert restored.shard(shard.shard_id).state == shard.state
    assert list(restored.lp_table.positions()) == list(ex.lp_table.positions())
    assert restored.route("USDC", "USDT", 1 * USDC) == ex.route("USDC", "USDT", 1 * USDC)
    assert snapshot_from_exchange(restored).commitment_hex() == snap.commitment_hex()


def test_snapshot_commitment_is_deterministic() -> None:
    a = snapshot_from_exchange(_exchange())
    b = snapshot_from_exchange(_exchange())
    assert a.canonical_bytes() == b.canonical_bytes()
    assert a.commitment_hex() == b.commitment_hex()
    assert a.commitment_hex().startswith("0x")
    assert len(a.commitment_bytes()) == 32


def test_snapshot_load_is_strict() -> None:
    data = snapshot_from_exchange(_exchange()).data
    ledger = InMemoryLedger()

    bad = copy.deepcopy(data)
    bad["version"] = 2
    with pytest.raises(ValueError, match="version"):
        exchange_from_snapshot(bad, ledger)

    bad = copy.deepcopy(data)
    bad["shards"].append(copy.deepcopy(bad["shards"][0]))
    with pytest.raises(ValueError, match="duplicate shard"):
        exchange_from_snapshot(bad, ledger)

    bad = copy.deepcopy(data)
    bad["pairs"] = bad["pairs"][:-1]
    with pytest.raises(ValueError, match="exactly one pair"):
        exchange_from_snapshot(bad, ledger)

    bad = copy.deepcopy(data)
    bad["shards"][0]["status"] = "FROZEN"
    with pytest.raises(ValueError, match="status"):
        exchange_from_snapshot(bad, ledger)

    bad = copy.deepcopy(data)
    bad["lp_balances"][0]["amount"] = -1
    with pytest.raises(ValueError):
        exchange_from_snapshot(bad, ledger)

    bad = copy.deepcopy(data)
    bad["lp_balances"][0]["amount"] = 10**40
    with pytest.raises(ValueError, match="exceed its lp_supply"):
        exchange_from_snapshot(bad, ledger)
