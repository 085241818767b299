"""
Market Conditions

Inputs to pricing and risk: underlying price, volatility, rates and a
qualitative trend tag. Supplied by the market data collaborator; the engine
never fetches quotes itself.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from optrisk.config.engine_config import MarketDefaults

TREND_THRESHOLD_PCT = 2.0


class MarketTrend(str, Enum):
    """Qualitative market regime."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


def trend_from_change(change_percent: float) -> MarketTrend:
    """Classify a daily % change: > 2% bullish, < -2% bearish."""
    if change_percent > TREND_THRESHOLD_PCT:
        return MarketTrend.BULLISH
    if change_percent < -TREND_THRESHOLD_PCT:
        return MarketTrend.BEARISH
    return MarketTrend.NEUTRAL


@dataclass(slots=True)
class MarketConditions:
    """
    Market inputs for one underlying.

    Attributes:
        underlying_price: Spot price of the underlying
        implied_volatility: Annualized volatility (0.25 = 25%)
        risk_free_rate: Annualized risk-free rate
        dividend_yield: Continuous dividend yield
        trend: Qualitative trend tag
        volatility_rank: IV rank 0-100 if known
        option_volumes: Daily volume per option symbol if known
        is_default: True when built from fallback defaults
    """

    underlying_price: float
    implied_volatility: float
    risk_free_rate: float
    dividend_yield: float = 0.0
    trend: MarketTrend = MarketTrend.NEUTRAL
    volatility_rank: Optional[float] = None
    option_volumes: Dict[str, int] = field(default_factory=dict)
    is_default: bool = False

    def __post_init__(self):
        if self.underlying_price <= 0:
            raise ValueError(f"Underlying price must be positive, got {self.underlying_price}")
        if self.implied_volatility < 0:
            raise ValueError(f"Implied volatility must be non-negative, got {self.implied_volatility}")

    @classmethod
    def defaults(
        cls,
        underlying_price: float,
        market_defaults: MarketDefaults | None = None,
    ) -> "MarketConditions":
        """Conservative fallback conditions (25% IV, 5% rate, neutral)."""
        market_defaults = market_defaults or MarketDefaults()
        return cls(
            underlying_price=underlying_price,
            implied_volatility=market_defaults.implied_volatility,
            risk_free_rate=market_defaults.risk_free_rate,
            dividend_yield=market_defaults.dividend_yield,
            trend=MarketTrend.NEUTRAL,
            is_default=True,
        )

    def __repr__(self) -> str:
        return (
            f"MarketConditions(S={self.underlying_price:.2f}, "
            f"iv={self.implied_volatility:.1%}, r={self.risk_free_rate:.2%}, "
            f"trend={self.trend.value})"
        )
