from __future__ import annotations

import pytest

from shardswap.integration.config import ExchangeConfig, build_exchange, config_from_mapping, load_exchange_config
from shardswap.integration.ledger import InMemoryLedger
from shardswap.state.shards import BasePricing, CurveParams

CONFIG_YAML = """
defaults:
  min_lp_lock: 0
  trade_fee_rate: 3000
  owner_fee_rate: 0
  base_pricing: CONSTANT_PRODUCT
  custody_account: vault
  curve:
    beta_slope: -1000000
    fee_floor: 500
    fee_ceiling: 10000
    max_trade_ratio: 20000
assets:
  - {id: USDC, decimals: 6}
  - {id: DAI, decimals: 18}
"""


def test_load_exchange_config(tmp_path) -> None:
    path = tmp_path / "exchange.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")

    cfg = load_exchange_config(path)

    assert cfg.min_lp_lock == 0
    assert cfg.default_trade_fee_rate == 3000
    assert cfg.default_owner_fee_rate == 0
    assert cfg.default_base_pricing == BasePricing.CONSTANT_PRODUCT
    assert cfg.custody_account == "vault"
    assert cfg.default_curve == CurveParams(beta_slope=-1_000_000, fee_floor=500, fee_ceiling=10_000, max_trade_ratio=20_000)
    assert [(a.asset_id, a.decimal_scale) for a in cfg.assets] == [("USDC", 6), ("DAI", 18)]


def test_empty_document_gives_defaults(tmp_path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_exchange_config(path) == ExchangeConfig()


def test_config_rejects_unknown_and_invalid_values() -> None:
    with pytest.raises(ValueError, match="unknown keys"):
        config_from_mapping({"defaults": {"min_lp_lok": 1}})
    with pytest.raises(ValueError, match="unknown keys"):
        config_from_mapping({"defaults": {"curve": {"slope": -1}}})
    with pytest.raises(ValueError, match="base_pricing"):
        config_from_mapping({"defaults": {"base_pricing": "QUADRATIC"}})
    with pytest.raises(ValueError):
        config_from_mapping({"defaults": {"trade_fee_rate": 2_000_000}})
    with pytest.raises(ValueError, match="duplicate asset"):
        config_from_mapping({"assets": [{"id": "A", "decimals": 6}, {"id": "A", "decimals": 6}]})
    with pytest.raises(TypeError):
        config_from_mapping(["not", "a", "mapping"])


def test_build_exchange_applies_config(tmp_path) -> None:
    path = tmp_path / "exchange.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")

    ex = build_exchange(path)

    assert isinstance(ex.ledger, InMemoryLedger)
    assert ex.ledger.custody_account == "vault"
    assert ex.assets.decimals("DAI") == 18
    sid = ex.create_shard("USDC", "DAI", "owner")
    ex.ledger.credit("owner", "USDC", 10**9)
    ex.ledger.credit("owner", "DAI", 10**21)
    ex.initialize_shard(sid, "owner", 10**9, 10**21)
    st = ex.shard(sid).state
    assert st.base_pricing == BasePricing.CONSTANT_PRODUCT
    assert st.trade_fee_rate == 3000
    # min_lp_lock 0: the owner holds the whole supply
    assert ex.lp_balance("owner", sid) == st.lp_supply
    assert ex.ledger.custody_balance("DAI") == 10**21
