"""
Contract and Leg Data Models

Immutable value objects describing a single option contract and one leg of a
strategy.

Key patterns:
- dataclass(slots=True, frozen=True): built once, never mutated
- __post_init__ validation for data integrity
- str Enums so values serialize cleanly to JSON / logs

Decision tree:
    Is this data internal to my process?
    ├─ Yes → Use dataclass (performance matters) ← WE ARE HERE
    └─ No → Use Pydantic (validation critical), see models/broker.py
"""

import math
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from enum import Enum

SECONDS_PER_YEAR = 365.25 * 24 * 60 * 60
DEFAULT_MULTIPLIER = 100


class ContractType(str, Enum):
    """Option contract type (CALL or PUT)."""

    CALL = "call"
    PUT = "put"


class PositionSide(str, Enum):
    """Direction of a leg."""

    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        """+1 for long, -1 for short."""
        return 1 if self is PositionSide.LONG else -1


class LegAction(str, Enum):
    """
    Order action for a leg.

    Opening buys and closing sells leave the holder long; opening sells and
    closing buys leave the holder short.
    """

    BUY_TO_OPEN = "buy_to_open"
    SELL_TO_OPEN = "sell_to_open"
    BUY_TO_CLOSE = "buy_to_close"
    SELL_TO_CLOSE = "sell_to_close"

    @property
    def expected_side(self) -> PositionSide:
        """Side implied by this action."""
        if self in (LegAction.BUY_TO_OPEN, LegAction.SELL_TO_CLOSE):
            return PositionSide.LONG
        return PositionSide.SHORT


def time_to_expiration(expiration: date, as_of: datetime | None = None) -> float:
    """
    Years until expiration (365.25-day year), floored at 0.

    The contract is treated as expiring at midnight at the start of its
    expiration date.

    Args:
        expiration: Contract expiration date
        as_of: Valuation time (default: now)

    Returns:
        Time to expiration in years
    """
    as_of = as_of or datetime.now()
    expires_at = datetime.combine(expiration, time.min)
    seconds = (expires_at - as_of).total_seconds()
    return max(0.0, seconds / SECONDS_PER_YEAR)


def days_to_expiration(expiration: date, as_of: datetime | None = None) -> int:
    """Whole days until expiration, rounded up (0 once expired)."""
    as_of = as_of or datetime.now()
    expires_at = datetime.combine(expiration, time.min)
    seconds = (expires_at - as_of).total_seconds()
    return max(0, math.ceil(seconds / 86400))


@dataclass(slots=True, frozen=True)
class OptionContract:
    """
    A single listed option contract.

    Attributes:
        underlying: Underlying symbol (e.g., "SPY")
        strike: Strike price
        expiration: Expiration date
        contract_type: CALL or PUT
        multiplier: Shares per contract (default: 100)
        exchange: Listing exchange identifier
    """

    underlying: str
    strike: float
    expiration: date
    contract_type: ContractType
    multiplier: int = DEFAULT_MULTIPLIER
    exchange: str = "OPRA"

    def __post_init__(self):
        if not self.underlying:
            raise ValueError("Underlying symbol must not be empty")
        if self.strike <= 0:
            raise ValueError(f"Strike must be positive, got {self.strike}")
        if self.multiplier <= 0:
            raise ValueError(f"Multiplier must be positive, got {self.multiplier}")

    @property
    def option_symbol(self) -> str:
        """OCC-style symbol, e.g. SPY240315C00450000."""
        type_code = "C" if self.contract_type is ContractType.CALL else "P"
        strike_code = f"{round(self.strike * 1000):08d}"
        return f"{self.underlying.upper()}{self.expiration:%y%m%d}{type_code}{strike_code}"

    @property
    def expires_at(self) -> datetime:
        """Expiry instant (midnight at the start of the expiration date)."""
        return datetime.combine(self.expiration, time.min)

    def intrinsic_value(self, underlying_price: float) -> float:
        """Exercise value per share at ``underlying_price``."""
        if self.contract_type is ContractType.CALL:
            return max(underlying_price - self.strike, 0.0)
        return max(self.strike - underlying_price, 0.0)

    def with_expiration(self, expiration: date) -> "OptionContract":
        """Copy of this contract with a different expiration."""
        return replace(self, expiration=expiration)

    def __repr__(self) -> str:
        return f"OptionContract({self.option_symbol})"


@dataclass(slots=True, frozen=True)
class StrategyLeg:
    """
    One leg of an options strategy.

    Side/action agreement is checked by the strategy builder, not here, so a
    malformed leg can be reported as an invalid strategy.

    Attributes:
        contract: The option contract
        action: Order action (buy/sell to open/close)
        side: LONG or SHORT
        quantity: Number of contracts (> 0, fractional lots allowed)
        price: Entry price per share (premium)
    """

    contract: OptionContract
    action: LegAction
    side: PositionSide
    quantity: float
    price: float

    def __post_init__(self):
        if not self.quantity > 0:
            raise ValueError(f"Quantity must be positive, got {self.quantity}")
        if self.price < 0:
            raise ValueError(f"Price must be non-negative, got {self.price}")

    @property
    def is_consistent(self) -> bool:
        """True when the side matches the side implied by the action."""
        return self.action.expected_side is self.side

    @property
    def signed_quantity(self) -> float:
        return self.side.sign * self.quantity

    @property
    def premium(self) -> float:
        """Total premium paid (long) or received (short) in dollars."""
        return self.price * self.quantity * self.contract.multiplier

    def pnl_at(self, underlying_price: float) -> float:
        """Expiration P&L of this leg at ``underlying_price``."""
        intrinsic = self.contract.intrinsic_value(underlying_price)
        return self.side.sign * (intrinsic - self.price) * self.quantity * self.contract.multiplier

    def __repr__(self) -> str:
        return (
            f"StrategyLeg({self.action.value} {self.quantity}x "
            f"{self.contract.contract_type.value.upper()} ${self.contract.strike} "
            f"{self.contract.expiration} @ {self.price})"
        )


def long_leg(contract: OptionContract, quantity: float, price: float) -> StrategyLeg:
    """Buy-to-open leg."""
    return StrategyLeg(contract, LegAction.BUY_TO_OPEN, PositionSide.LONG, quantity, price)


def short_leg(contract: OptionContract, quantity: float, price: float) -> StrategyLeg:
    """Sell-to-open leg."""
    return StrategyLeg(contract, LegAction.SELL_TO_OPEN, PositionSide.SHORT, quantity, price)
