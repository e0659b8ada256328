"""
PairSwap: a two-asset constant-product pool with a slippage-protected router.
"""

from .config import PoolConfig, load_pool_config
from .core import Pool, Router, pair_key
from .kernels.python.cpmm_quote import quote_amount_in, quote_amount_out, quote_equivalent_amount
from .kernels.python.fixed_point import integer_sqrt, mul_div
from .state import LOCKED_HOLDER, InMemoryLedger, Ledger

__version__ = "0.1.0"

__all__ = [
    "PoolConfig",
    "load_pool_config",
    "Pool",
    "Router",
    "pair_key",
    "quote_amount_in",
    "quote_amount_out",
    "quote_equivalent_amount",
    "integer_sqrt",
    "mul_div",
    "LOCKED_HOLDER",
    "InMemoryLedger",
    "Ledger",
]
