"""
Core pool and router
"""

from .pool import (
    MAX_RESERVE,
    CumulativePrices,
    Pool,
    apply_price_q112,
    average_price_q112,
    compute_pool_address,
    pair_key,
)
from .router import RouteHop, Router

__all__ = [
    "MAX_RESERVE",
    "CumulativePrices",
    "Pool",
    "apply_price_q112",
    "average_price_q112",
    "compute_pool_address",
    "pair_key",
    "RouteHop",
    "Router",
]
