"""
ShardSwap: pricing and routing for sharded exact-output liquidity pools.
"""

from .core.errors import (
    NoLiquidityError,
    NoRouteError,
    ShardSwapError,
    SlippageExceededError,
    ThresholdExceededError,
)
from .core.exchange import Exchange, FillupPriority, FillupRecommendation, ShardSizeStats
from .core.pricing import SwapQuote, quote
from .core.router import RouteHop, RoutePlan, Router
from .integration.config import ExchangeConfig, build_exchange, load_exchange_config
from .integration.ledger import InMemoryLedger
from .state.shards import BasePricing, CurveParams

__all__ = [
    "BasePricing",
    "CurveParams",
    "Exchange",
    "ExchangeConfig",
    "FillupPriority",
    "FillupRecommendation",
    "InMemoryLedger",
    "NoLiquidityError",
    "NoRouteError",
    "RouteHop",
    "RoutePlan",
    "Router",
    "ShardSizeStats",
    "ShardSwapError",
    "SlippageExceededError",
    "SwapQuote",
    "ThresholdExceededError",
    "build_exchange",
    "load_exchange_config",
    "quote",
]
