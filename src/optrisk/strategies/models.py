"""
Strategy Data Models

Strategies are value objects: built once per request from legs, never
mutated and never persisted by the engine.

Key patterns:
- dataclass(slots=True, frozen=True) for value objects
- __post_init__ validation for invariants (non-empty legs, sorted breakevens)
- math.inf marks an unbounded max profit / max loss
"""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Tuple

from optrisk.models.contracts import StrategyLeg


class InvalidStrategyError(ValueError):
    """
    Raised when strategy legs cannot form the requested strategy.

    Attributes:
        message: Human-readable error message
        kind: Requested strategy kind (if known)
    """

    def __init__(self, message: str, *, kind: "StrategyKind | None" = None):
        self.message = message
        self.kind = kind
        super().__init__(self.message)


class StrategyKind(str, Enum):
    """
    Strategy archetype.

    Each kind is dispatched to its own payoff calculator (strategies/payoff.py).
    """

    SINGLE_LEG = "single_leg"
    COVERED_CALL = "covered_call"
    CASH_SECURED_PUT = "cash_secured_put"
    PROTECTIVE_PUT = "protective_put"
    STRADDLE = "straddle"
    STRANGLE = "strangle"
    IRON_CONDOR = "iron_condor"
    BUTTERFLY = "butterfly"


STRATEGY_DESCRIPTIONS = {
    StrategyKind.SINGLE_LEG: "Single option leg with directional exposure to the underlying.",
    StrategyKind.COVERED_CALL: "Own 100 shares and sell a call. Generates income but caps upside potential.",
    StrategyKind.CASH_SECURED_PUT: "Sell a put while holding cash to buy shares if assigned. Generates income with potential stock acquisition.",
    StrategyKind.PROTECTIVE_PUT: "Own shares and buy a put for downside protection. Insurance against large losses.",
    StrategyKind.STRADDLE: "Buy call and put at same strike. Profits from large price movements in either direction.",
    StrategyKind.STRANGLE: "Buy call and put at different strikes. Cheaper than straddle, needs larger moves to profit.",
    StrategyKind.IRON_CONDOR: "Sell put spread and call spread. Profits from low volatility and range-bound movement.",
    StrategyKind.BUTTERFLY: "Limited risk, limited reward strategy that profits from low volatility around middle strike.",
}


@dataclass(slots=True, frozen=True)
class OptionsStrategy:
    """
    A complete options strategy with static payoff attributes.

    Attributes:
        name: Display name (e.g., "SPY Iron Condor")
        kind: Strategy archetype
        legs: Ordered legs (non-empty)
        max_profit: Maximum profit in dollars (math.inf if unbounded)
        max_loss: Maximum loss as a positive dollar magnitude (math.inf if unbounded)
        breakeven: Breakeven prices, sorted ascending
        collateral: Cash / shares reserved against assignment
        margin: Broker margin requirement (>= 0)
        description: Free-text description
    """

    name: str
    kind: StrategyKind
    legs: Tuple[StrategyLeg, ...]
    max_profit: float
    max_loss: float
    breakeven: Tuple[float, ...]
    collateral: float
    margin: float
    description: str = ""

    def __post_init__(self):
        if not self.legs:
            raise InvalidStrategyError("Strategy must have at least one leg", kind=self.kind)
        if self.margin < 0:
            raise ValueError(f"Margin must be non-negative, got {self.margin}")
        if list(self.breakeven) != sorted(self.breakeven):
            raise ValueError(f"Breakevens must be sorted ascending, got {self.breakeven}")

    @property
    def underlying(self) -> str:
        return self.legs[0].contract.underlying

    @property
    def expiration(self) -> date:
        """Nearest leg expiration."""
        return min(leg.contract.expiration for leg in self.legs)

    @property
    def has_unbounded_loss(self) -> bool:
        return math.isinf(self.max_loss)

    @property
    def has_unbounded_profit(self) -> bool:
        return math.isinf(self.max_profit)

    @property
    def net_premium(self) -> float:
        """Net debit paid (positive) or credit received (negative)."""
        return sum(leg.side.sign * leg.premium for leg in self.legs)

    def __repr__(self) -> str:
        return (
            f"OptionsStrategy({self.kind.value} {self.underlying}: "
            f"{len(self.legs)} legs, max_profit={self.max_profit:.2f}, "
            f"max_loss={self.max_loss:.2f}, breakeven={list(self.breakeven)})"
        )


@dataclass(slots=True, frozen=True)
class PriceRange:
    """Sampling range for a P&L profile."""

    min_price: float
    max_price: float
    steps: int = 50

    def __post_init__(self):
        if self.min_price < 0:
            raise ValueError(f"min_price must be non-negative, got {self.min_price}")
        if self.max_price < self.min_price:
            raise ValueError(
                f"max_price ({self.max_price}) must be >= min_price ({self.min_price})"
            )
        if self.steps < 1:
            raise ValueError(f"steps must be >= 1, got {self.steps}")


@dataclass(slots=True, frozen=True)
class PnLPoint:
    """P&L of a strategy at one underlying price (at expiration)."""

    price: float
    pnl: float


@dataclass(slots=True)
class StrategyValidation:
    """
    Result of validating a strategy against an account.

    Business-rule failures are reported here, never raised.
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    risk_level: str | None = None
    recommendations: List[str] = field(default_factory=list)

    def __repr__(self) -> str:
        status = "VALID" if self.is_valid else "INVALID"
        return (
            f"StrategyValidation({status}, errors={len(self.errors)}, "
            f"warnings={len(self.warnings)})"
        )
