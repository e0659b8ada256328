"""Exception types for the pair pool and router.

Every error is terminal for the call that raised it. Operations raise before
their first ledger transfer whenever the failure is detectable up front.
"""

from __future__ import annotations


class AmmError(Exception):
    """Base class for pool, router and ledger failures."""


class ArithmeticOverflowError(AmmError, ArithmeticError):
    """Raised when an intermediate or result leaves the representable range."""


class IdenticalAssetsError(AmmError):
    """Raised when a pool or path hop pairs an asset with itself."""


class InvalidReservesError(AmmError):
    """Raised when a pure quote is asked to price against an empty reserve."""


class InsufficientAmountError(AmmError):
    """Raised when a quote input amount is not positive."""


class InsufficientInitialLiquidityError(AmmError):
    """Raised when the first deposit cannot cover the locked minimum shares."""


class ZeroLiquidityMintedError(AmmError):
    """Raised when a deposit rounds down to zero shares."""


class InsufficientSharesError(AmmError):
    """Raised when an owner burns or transfers more shares than they hold."""


class InsufficientLiquidityBurnedError(AmmError):
    """Raised when a burn would return zero of either asset."""


class InsufficientLiquidityError(AmmError):
    """Raised when a swap would hit an empty reserve or drain one side."""


class InsufficientInputAmountError(AmmError):
    """Raised when a swap input does not pay for the requested output."""


class InsufficientOutputAmountError(AmmError):
    """Raised when a swap output is zero or below the caller's minimum."""


class ExcessiveInputAmountError(AmmError):
    """Raised when an exact-output route needs more input than the caller allows."""


class InsufficientAAmountError(AmmError):
    """Raised when the asset A leg falls below the caller's minimum."""


class InsufficientBAmountError(AmmError):
    """Raised when the asset B leg falls below the caller's minimum."""


class DeadlineExpiredError(AmmError):
    """Raised when the ledger clock is past the request deadline."""


class InvalidPathError(AmmError):
    """Raised when a swap path is too short or names a pair with no pool."""


class InvariantViolationError(AmmError):
    """Raised when a post-state breaks the constant-product invariant."""

    def __init__(self, k_before: int, k_after: int) -> None:
        self.k_before = k_before
        self.k_after = k_after
        super().__init__(f"Invariant violation: new_k ({k_after}) < old_k ({k_before})")


class PoolLockedError(AmmError):
    """Raised when a pool mutation is re-entered from a ledger callback."""


class InsufficientBalanceError(AmmError):
    """Raised by the in-memory ledger when a transfer would overdraw an account."""
