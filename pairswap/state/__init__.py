"""
State management for PairSwap pools
"""

from .balances import BalanceTable
from .ledger import InMemoryLedger, Ledger
from .shares import LOCKED_HOLDER, ShareTable

__all__ = [
    "BalanceTable",
    "InMemoryLedger",
    "Ledger",
    "LOCKED_HOLDER",
    "ShareTable",
]
