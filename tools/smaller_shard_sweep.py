from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shardswap.core.errors import ShardSwapError
from shardswap.core.pricing import quote
from shardswap.state.shards import (
    DEFAULT_BETA_SLOPE,
    DEFAULT_FEE_CEILING,
    DEFAULT_FEE_FLOOR,
    DEFAULT_MAX_TRADE_RATIO,
    DEFAULT_OWNER_FEE_RATE,
    DEFAULT_TRADE_FEE_RATE,
    CurveParams,
)


def _parse_int_list(csv: str) -> list[int]:
    out: list[int] = []
    for part in csv.split(","):
        part = part.strip()
        if not part:
            continue
        out.append(int(part))
    if not out:
        raise ValueError("empty list")
    return out


def sweep_amount(
    *,
    amount_out: int,
    shard_reserves: List[int],
    curve: CurveParams,
    trade_fee_rate: int,
    owner_fee_rate: int,
    decimals: int,
) -> Dict[str, Any]:
    """Quote one amount against every balanced shard and report the cheapest."""
    rows: List[Dict[str, Any]] = []
    for reserve in shard_reserves:
        try:
            q = quote(
                reserve,
                reserve,
                amount_out,
                curve,
                trade_fee_rate,
                owner_fee_rate,
                decimals_in=decimals,
                decimals_out=decimals,
            )
        except ShardSwapError as exc:
            rows.append({"reserve": reserve, "ok": False, "error": exc.code})
            continue
        rows.append(
            {
                "reserve": reserve,
                "ok": True,
                "amount_in": q.amount_in,
                "trade_fee": q.trade_fee,
                "owner_fee": q.owner_fee,
                "fee_rate": q.fee_rate,
            }
        )

    viable = [r for r in rows if r["ok"]]
    winner = min(viable, key=lambda r: (r["amount_in"], r["reserve"])) if viable else None
    smallest_viable = min((r["reserve"] for r in viable), default=None)
    return {
        "amount_out": amount_out,
        "shards": rows,
        "winner_reserve": None if winner is None else winner["reserve"],
        "smaller_better_holds": winner is None or winner["reserve"] == smallest_viable,
    }


def main() -> int:
    ap = argparse.ArgumentParser(description="Sweep exact-output trade sizes across shard sizes (smaller-shard-better check)")
    ap.add_argument("--decimals", type=int, default=6)
    ap.add_argument("--shard-sizes", type=str, default="100,500,1000", help="balanced reserves, whole tokens")
    ap.add_argument("--amounts-milli", type=str, default="100,500,1000,2000,5000", help="amount_out in 1/1000 tokens")
    ap.add_argument("--beta-slope", type=int, default=DEFAULT_BETA_SLOPE)
    ap.add_argument("--fee-floor", type=int, default=DEFAULT_FEE_FLOOR)
    ap.add_argument("--fee-ceiling", type=int, default=DEFAULT_FEE_CEILING)
    ap.add_argument("--max-trade-ratio", type=int, default=DEFAULT_MAX_TRADE_RATIO)
    ap.add_argument("--trade-fee-rate", type=int, default=DEFAULT_TRADE_FEE_RATE)
    ap.add_argument("--owner-fee-rate", type=int, default=DEFAULT_OWNER_FEE_RATE)
    ap.add_argument("--out", type=str, default="")
    args = ap.parse_args()

    if args.decimals < 3:
        raise SystemExit("decimals must be >= 3 (amounts are given in 1/1000 tokens)")
    unit = 10**args.decimals
    sizes = _parse_int_list(args.shard_sizes)
    amounts = _parse_int_list(args.amounts_milli)
    if any(s <= 0 for s in sizes) or any(a <= 0 for a in amounts):
        raise SystemExit("shard sizes and amounts must be positive")

    curve = CurveParams(
        beta_slope=args.beta_slope,
        fee_floor=args.fee_floor,
        fee_ceiling=args.fee_ceiling,
        max_trade_ratio=args.max_trade_ratio,
    )
    reserves = [s * unit for s in sizes]
    start = time.perf_counter()

    results = [
        sweep_amount(
            amount_out=a * unit // 1000,
            shard_reserves=reserves,
            curve=curve,
            trade_fee_rate=args.trade_fee_rate,
            owner_fee_rate=args.owner_fee_rate,
            decimals=args.decimals,
        )
        for a in amounts
    ]
    report = {
        "schema": "shardswap/smaller-shard-sweep/v1",
        "timestamp_unix": int(time.time()),
        "decimals": args.decimals,
        "curve": {
            "beta_slope": curve.beta_slope,
            "fee_floor": curve.fee_floor,
            "fee_ceiling": curve.fee_ceiling,
            "max_trade_ratio": curve.max_trade_ratio,
        },
        "results": results,
        "smaller_better_holds": all(r["smaller_better_holds"] for r in results),
        "runtime_s": time.perf_counter() - start,
    }

    payload = json.dumps(report, indent=2, sort_keys=True)
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote {out_path}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
