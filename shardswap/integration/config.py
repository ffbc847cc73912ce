"""
Exchange configuration loaded from YAML.

Example:

    defaults:
      min_lp_lock: 1000
      trade_fee_rate: 2500
      owner_fee_rate: 500
      base_pricing: LINEAR
      curve:
        beta_slope: -1050000
        fee_floor: 1000
        fee_ceiling: 12000
        max_trade_ratio: 10400
    assets:
      - {id: USDC, decimals: 6}
      - {id: DAI, decimals: 18}

Every key is optional; missing keys fall back to the module defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

import yaml

from ..core.ledger import Ledger
from ..kernels.python.lp_math import MIN_LP_LOCK
from ..state.assets import Asset
from ..state.shards import (
    DEFAULT_OWNER_FEE_RATE,
    DEFAULT_TRADE_FEE_RATE,
    BasePricing,
    CurveParams,
    require_rate,
)
from .ledger import DEFAULT_CUSTODY_ACCOUNT

_DEFAULT_KEYS = frozenset(
    {"min_lp_lock", "trade_fee_rate", "owner_fee_rate", "base_pricing", "curve", "custody_account"}
)
_CURVE_KEYS = frozenset({"beta_slope", "fee_floor", "fee_ceiling", "max_trade_ratio"})


@dataclass(frozen=True)
class ExchangeConfig:
    min_lp_lock: int = MIN_LP_LOCK
    default_curve: CurveParams = field(default_factory=CurveParams)
    default_trade_fee_rate: int = DEFAULT_TRADE_FEE_RATE
    default_owner_fee_rate: int = DEFAULT_OWNER_FEE_RATE
    default_base_pricing: BasePricing = BasePricing.LINEAR
    custody_account: str = DEFAULT_CUSTODY_ACCOUNT
    assets: Tuple[Asset, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.min_lp_lock, int) or isinstance(self.min_lp_lock, bool):
            raise TypeError("min_lp_lock must be an int")
        if self.min_lp_lock < 0:
            raise ValueError(f"min_lp_lock must be non-negative: {self.min_lp_lock}")
        if not isinstance(self.default_curve, CurveParams):
            raise TypeError("default_curve must be a CurveParams")
        require_rate("default_trade_fee_rate", self.default_trade_fee_rate)
        require_rate("default_owner_fee_rate", self.default_owner_fee_rate)
        if not isinstance(self.default_base_pricing, BasePricing):
            raise TypeError("default_base_pricing must be a BasePricing")
        if not isinstance(self.custody_account, str) or not self.custody_account:
            raise ValueError("custody_account must be a non-empty string")
        seen = set()
        for a in self.assets:
            if a.asset_id in seen:
                raise ValueError(f"duplicate asset in config: {a.asset_id}")
            seen.add(a.asset_id)


def _require_mapping(obj: Any, *, name: str) -> Mapping[str, Any]:
    if obj is None:
        return {}
    if not isinstance(obj, Mapping):
        raise TypeError(f"{name} must be a mapping")
    return obj


def _reject_unknown(obj: Mapping[str, Any], allowed: frozenset, *, name: str) -> None:
    unknown = sorted(set(obj) - allowed)
    if unknown:
        raise ValueError(f"unknown keys in {name}: {', '.join(map(str, unknown))}")


def config_from_mapping(root: Any) -> ExchangeConfig:
    """Build an ExchangeConfig from an already-parsed YAML/JSON document."""
    root = _require_mapping(root, name="config")
    _reject_unknown(root, frozenset({"defaults", "assets"}), name="config")

    defaults = _require_mapping(root.get("defaults"), name="defaults")
    _reject_unknown(defaults, _DEFAULT_KEYS, name="defaults")
    curve_obj = _require_mapping(defaults.get("curve"), name="defaults.curve")
    _reject_unknown(curve_obj, _CURVE_KEYS, name="defaults.curve")

    raw_assets = root.get("assets") or []
    if not isinstance(raw_assets, list):
        raise TypeError("assets must be a list")
    assets = []
    for i, entry in enumerate(raw_assets):
        entry = _require_mapping(entry, name=f"assets[{i}]")
        _reject_unknown(entry, frozenset({"id", "decimals"}), name=f"assets[{i}]")
        if "id" not in entry or "decimals" not in entry:
            raise ValueError(f"assets[{i}] needs both 'id' and 'decimals'")
        assets.append(Asset(asset_id=entry["id"], decimal_scale=entry["decimals"]))

    base_pricing = defaults.get("base_pricing", BasePricing.LINEAR.value)
    try:
        base_pricing = BasePricing(base_pricing)
    except ValueError:
        raise ValueError(f"unknown base_pricing: {base_pricing!r}") from None

    return ExchangeConfig(
        min_lp_lock=defaults.get("min_lp_lock", MIN_LP_LOCK),
        default_curve=CurveParams(**curve_obj),
        default_trade_fee_rate=defaults.get("trade_fee_rate", DEFAULT_TRADE_FEE_RATE),
        default_owner_fee_rate=defaults.get("owner_fee_rate", DEFAULT_OWNER_FEE_RATE),
        default_base_pricing=base_pricing,
        custody_account=defaults.get("custody_account", DEFAULT_CUSTODY_ACCOUNT),
        assets=tuple(assets),
    )


def load_exchange_config(path: Union[str, Path]) -> ExchangeConfig:
    path = Path(path)
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    return config_from_mapping(obj)


def build_exchange(config_path: Union[str, Path], ledger: Optional[Ledger] = None):
    """Load a config file and return an Exchange with its assets registered."""
    from ..core.exchange import Exchange
    from .ledger import InMemoryLedger

    config = load_exchange_config(config_path)
    if ledger is None:
        ledger = InMemoryLedger(custody_account=config.custody_account)
    return Exchange(ledger, config)
