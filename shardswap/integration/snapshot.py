"""
Exchange state snapshots.

Goals:
- Deterministic JSON for hashing and persistence.
- One record per shard plus the append-only pair -> shard-id index.
- Strict validation on load; explicit versioning.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from ..core.exchange import Exchange
from ..core.ledger import Ledger
from ..core.registry import PairKey, ShardRegistry
from ..state.assets import Asset, AssetDirectory
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.lp import LPTable
from ..state.shards import BasePricing, CurveParams, ShardState, ShardStatus
from .config import ExchangeConfig


EXCHANGE_SNAPSHOT_VERSION = 1


def _require_str(value: Any, *, name: str, max_len: int = 256) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_list(obj: Mapping[str, Any], key: str) -> List[Any]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"snapshot.{key} must be a list")
    return value


@dataclass(frozen=True)
class ExchangeSnapshot:
    """
    Versioned snapshot of an Exchange's shard state.

    The commitment is computed over `data` and is not stored inside it.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        return hashlib.sha256(domain_sep_bytes("exchange_snapshot", version=self.version) + self.canonical_bytes()).digest()

    def commitment_hex(self) -> str:
        return sha256_hex(domain_sep_bytes("exchange_snapshot", version=self.version) + self.canonical_bytes())


def _shard_record(st: ShardState) -> Dict[str, Any]:
    c = st.curve
    return {
        "shard_id": st.shard_id,
        "asset_a": st.asset_a,
        "asset_b": st.asset_b,
        "owner": st.owner,
        "reserve_a": int(st.reserve_a),
        "reserve_b": int(st.reserve_b),
        "lp_supply": int(st.lp_supply),
        "trade_fee_rate": int(st.trade_fee_rate),
        "owner_fee_rate": int(st.owner_fee_rate),
        "curve": {
            "beta_slope": int(c.beta_slope),
            "fee_floor": int(c.fee_floor),
            "fee_ceiling": int(c.fee_ceiling),
            "max_trade_ratio": int(c.max_trade_ratio),
        },
        "status": st.status.value,
        "base_pricing": st.base_pricing.value,
        "owner_fees_a": int(st.owner_fees_a),
        "owner_fees_b": int(st.owner_fees_b),
        "created_at": int(st.created_at),
    }


def snapshot_from_exchange(exchange: Exchange, *, version: int = EXCHANGE_SNAPSHOT_VERSION) -> ExchangeSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    assets = [{"id": a.asset_id, "decimals": a.decimal_scale} for a in exchange.assets]
    assets.sort(key=lambda e: e["id"])

    shards = [_shard_record(shard.state) for shard in exchange.registry]
    shards.sort(key=lambda e: e["shard_id"])

    # Pair order is routing-relevant (intermediary scan), so it is kept as-is.
    pairs = [{"pair": [key.lo, key.hi], "shard_ids": list(ids)} for key, ids in exchange.registry.pair_index()]

    lp_entries = [
        {"holder": holder, "shard_id": shard_id, "amount": int(amount)}
        for shard_id, holder, amount in exchange.lp_table.positions()
    ]

    data: Dict[str, Any] = {
        "version": int(version),
        "assets": assets,
        "shards": shards,
        "pairs": pairs,
        "lp_balances": lp_entries,
    }
    return ExchangeSnapshot(version=version, data=data)


def _parse_shard(entry: Any) -> ShardState:
    if not isinstance(entry, Mapping):
        raise TypeError("snapshot.shards entries must be objects")
    curve_obj = entry.get("curve")
    if not isinstance(curve_obj, Mapping):
        raise TypeError("shard.curve must be an object")
    curve = CurveParams(
        beta_slope=_require_int(curve_obj.get("beta_slope"), name="curve.beta_slope", non_negative=False),
        fee_floor=_require_int(curve_obj.get("fee_floor"), name="curve.fee_floor"),
        fee_ceiling=_require_int(curve_obj.get("fee_ceiling"), name="curve.fee_ceiling"),
        max_trade_ratio=_require_int(curve_obj.get("max_trade_ratio"), name="curve.max_trade_ratio"),
    )
    status_raw = entry.get("status")
    try:
        status = ShardStatus(status_raw)
    except ValueError as exc:
        raise ValueError(f"invalid shard status: {status_raw}") from exc
    pricing_raw = entry.get("base_pricing", BasePricing.LINEAR.value)
    try:
        base_pricing = BasePricing(pricing_raw)
    except ValueError as exc:
        raise ValueError(f"invalid base_pricing: {pricing_raw}") from exc

    st = ShardState(
        shard_id=_require_str(entry.get("shard_id"), name="shard.shard_id"),
        asset_a=_require_str(entry.get("asset_a"), name="shard.asset_a"),
        asset_b=_require_str(entry.get("asset_b"), name="shard.asset_b"),
        owner=_require_str(entry.get("owner"), name="shard.owner", max_len=512),
        reserve_a=_require_int(entry.get("reserve_a", 0), name="reserve_a"),
        reserve_b=_require_int(entry.get("reserve_b", 0), name="reserve_b"),
        lp_supply=_require_int(entry.get("lp_supply", 0), name="lp_supply"),
        trade_fee_rate=_require_int(entry.get("trade_fee_rate", 0), name="trade_fee_rate"),
        owner_fee_rate=_require_int(entry.get("owner_fee_rate", 0), name="owner_fee_rate"),
        curve=curve,
        status=status,
        base_pricing=base_pricing,
        owner_fees_a=_require_int(entry.get("owner_fees_a", 0), name="owner_fees_a"),
        owner_fees_b=_require_int(entry.get("owner_fees_b", 0), name="owner_fees_b"),
        created_at=_require_int(entry.get("created_at", 0), name="created_at"),
    )
    return st


def exchange_from_snapshot(
    snapshot: Mapping[str, Any],
    ledger: Ledger,
    config: Optional[ExchangeConfig] = None,
) -> Exchange:
    """
    Rebuild an Exchange from `ExchangeSnapshot.data`.

    Asset balances are not part of the snapshot; `ledger` must already hold them.
    """
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")

    version = snapshot.get("version", EXCHANGE_SNAPSHOT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("snapshot.version must be a positive int")
    if version != EXCHANGE_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    assets = AssetDirectory()
    for entry in _require_list(snapshot, "assets"):
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.assets entries must be objects")
        asset_id = _require_str(entry.get("id"), name="asset.id")
        if asset_id in assets:
            raise ValueError(f"duplicate asset entry: {asset_id}")
        assets.register(Asset(asset_id=asset_id, decimal_scale=_require_int(entry.get("decimals"), name="asset.decimals")))

    states: Dict[str, ShardState] = {}
    for entry in _require_list(snapshot, "shards"):
        st = _parse_shard(entry)
        if st.shard_id in states:
            raise ValueError(f"duplicate shard entry: {st.shard_id}")
        for asset in (st.asset_a, st.asset_b):
            if asset not in assets:
                raise ValueError(f"shard {st.shard_id} references unknown asset {asset}")
        states[st.shard_id] = st

    registry = ShardRegistry()
    seen_pairs: Set[Tuple[str, str]] = set()
    for entry in _require_list(snapshot, "pairs"):
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.pairs entries must be objects")
        pair = entry.get("pair")
        if not isinstance(pair, list) or len(pair) != 2:
            raise ValueError("pair must be a 2-element list")
        key = PairKey.of(_require_str(pair[0], name="pair[0]"), _require_str(pair[1], name="pair[1]"))
        if (key.lo, key.hi) in seen_pairs:
            raise ValueError(f"duplicate pair entry: {key}")
        seen_pairs.add((key.lo, key.hi))
        shard_ids = entry.get("shard_ids")
        if not isinstance(shard_ids, list):
            raise TypeError("pair.shard_ids must be a list")
        for sid in shard_ids:
            st = states.get(sid)
            if st is None:
                raise ValueError(f"pair {key} lists unknown shard {sid}")
            if PairKey.of(st.asset_a, st.asset_b) != key:
                raise ValueError(f"shard {sid} does not belong to pair {key}")
            registry.adopt(st)
    if len(registry) != len(states):
        raise ValueError("every shard must appear in exactly one pair index entry")

    lp_table = LPTable()
    seen_lp: Set[Tuple[str, str]] = set()
    for entry in _require_list(snapshot, "lp_balances"):
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.lp_balances entries must be objects")
        holder = _require_str(entry.get("holder"), name="lp.holder", max_len=512)
        shard_id = _require_str(entry.get("shard_id"), name="lp.shard_id")
        if shard_id not in states:
            raise ValueError(f"lp entry references unknown shard {shard_id}")
        if (holder, shard_id) in seen_lp:
            raise ValueError("duplicate lp entry (holder, shard_id)")
        seen_lp.add((holder, shard_id))
        lp_table.mint(shard_id, holder, _require_int(entry.get("amount"), name="lp.amount"))
    for shard_id, st in states.items():
        if lp_table.issued(shard_id) > st.lp_supply:
            raise ValueError(f"lp balances of shard {shard_id} exceed its lp_supply {st.lp_supply}")

    return Exchange(ledger, config, assets=assets, registry=registry, lp_table=lp_table)
