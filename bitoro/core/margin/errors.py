"""Exception types for the margin engine.

Every simulation raises before a new snapshot is returned, so a caller never
observes a half-applied trade.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum, unique


class MarginError(Exception):
    """Base class for all margin engine errors."""


class InvalidArgumentError(MarginError, ValueError):
    """Raised for malformed or out-of-range caller input."""


@unique
class InsufficientLiquidityType(Enum):
    REMOVE_LIQUIDITY_EXCEEDS_CURRENT_ASSET = "remove_liquidity_exceeds_current_asset"


class InsufficientLiquidityError(MarginError):
    """Raised when more value is removed from a pool asset than it holds."""

    def __init__(
        self,
        liquidity_type: InsufficientLiquidityType,
        requested: Decimal,
        available: Decimal,
    ) -> None:
        self.liquidity_type = liquidity_type
        self.requested = requested
        self.available = available
        super().__init__(f"{liquidity_type.value}: removed value {requested} > liquidity {available}")


class InsufficientPnlError(MarginError):
    """Raised when a profit withdrawal exceeds the realized pnl."""


class BankruptError(MarginError):
    """Raised when a realized loss exceeds collateral and bankruptcy is fatal."""


class BugError(MarginError):
    """Raised on an internal invariant violation (configuration bug upstream)."""


class MarginInvariantError(BugError):
    """Raised when a simulated post-state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")


class TradeRejectedError(MarginError):
    """Raised by ``simulate_or_raise()`` when the post-trade state is unsafe."""
