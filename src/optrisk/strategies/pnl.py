"""
Profit / Loss Profiles

Samples a strategy's expiration P&L over a price range. Each leg contributes
(intrinsic value − entry price) × quantity × multiplier, negated for short
legs.
"""

from typing import List

import numpy as np

from optrisk.strategies.models import OptionsStrategy, PnLPoint, PriceRange


def calculate_pnl_at_price(strategy: OptionsStrategy, underlying_price: float) -> float:
    """Total expiration P&L of ``strategy`` at ``underlying_price``."""
    return sum(leg.pnl_at(underlying_price) for leg in strategy.legs)


def calculate_pnl_profile(strategy: OptionsStrategy, price_range: PriceRange) -> List[PnLPoint]:
    """
    Sample the expiration P&L curve.

    Args:
        strategy: Strategy to evaluate
        price_range: Min/max price and number of steps

    Returns:
        ``steps + 1`` evenly spaced points from min_price to max_price
    """
    prices = np.linspace(price_range.min_price, price_range.max_price, price_range.steps + 1)
    return [
        PnLPoint(price=float(price), pnl=calculate_pnl_at_price(strategy, float(price)))
        for price in prices
    ]


def default_price_range(underlying_price: float, width: float = 0.3, steps: int = 50) -> PriceRange:
    """Range of ±``width`` around the current price."""
    return PriceRange(
        min_price=underlying_price * (1 - width),
        max_price=underlying_price * (1 + width),
        steps=steps,
    )
