"""
Strategy and Portfolio Greeks

Aggregates per-contract Greeks into strategy and portfolio totals and derives
per-strategy risk metrics.

Aggregation rules:
- strategy Greeks = Σ legs contract Greeks × side sign × quantity
- portfolio Greeks = Σ strategy Greeks (superposition holds)

Greeks are per share of the underlying; multiply by the contract multiplier
for dollar exposure.
"""

import math
from datetime import datetime
from typing import Iterable, Sequence

from loguru import logger
from scipy.stats import norm

from optrisk.models.contracts import OptionContract, StrategyLeg, time_to_expiration
from optrisk.pricing.black_scholes import calculate_option_greeks, shift_expiration
from optrisk.pricing.models import (
    ZERO_GREEKS,
    GreeksCalculation,
    GreeksSensitivity,
    PricedPosition,
    RiskMetrics,
)
from optrisk.strategies.models import OptionsStrategy
from optrisk.strategies.pnl import calculate_pnl_at_price

ONE_DAY_HORIZON = 1 / 365


def calculate_legs_greeks(
    legs: Sequence[StrategyLeg],
    underlying_price: float,
    volatility: float,
    risk_free_rate: float,
    dividend_yield: float = 0.0,
    as_of: datetime | None = None,
) -> GreeksCalculation:
    """Signed, quantity-weighted sum of leg Greeks."""
    total = ZERO_GREEKS
    for leg in legs:
        leg_greeks = calculate_option_greeks(
            leg.contract, underlying_price, volatility, risk_free_rate, dividend_yield, as_of
        )
        total = total + leg_greeks.scaled(leg.signed_quantity)
    return total


def calculate_strategy_greeks(
    strategy: OptionsStrategy,
    underlying_price: float,
    volatility: float,
    risk_free_rate: float,
    dividend_yield: float = 0.0,
    as_of: datetime | None = None,
) -> GreeksCalculation:
    """
    Greeks of a whole strategy.

    Args:
        strategy: Strategy to evaluate
        underlying_price: Underlying price
        volatility: Annualized volatility applied to every leg
        risk_free_rate: Risk-free rate
        dividend_yield: Continuous dividend yield
        as_of: Valuation time (default: now)

    Returns:
        Signed sum of leg Greeks × quantity
    """
    return calculate_legs_greeks(
        strategy.legs, underlying_price, volatility, risk_free_rate, dividend_yield, as_of
    )


def calculate_portfolio_greeks(
    positions: Iterable[PricedPosition],
    as_of: datetime | None = None,
) -> GreeksCalculation:
    """Sum of strategy Greeks, each priced under its own market conditions."""
    total = ZERO_GREEKS
    for position in positions:
        mc = position.market_conditions
        total = total + calculate_strategy_greeks(
            position.strategy,
            mc.underlying_price,
            mc.implied_volatility,
            mc.risk_free_rate,
            mc.dividend_yield,
            as_of,
        )
    return total


def calculate_greeks_sensitivity(
    contract: OptionContract,
    underlying_price: float,
    volatility: float,
    risk_free_rate: float,
    dividend_yield: float = 0.0,
    price_shift: float = 0.01,
    vol_shift: float = 0.01,
    as_of: datetime | None = None,
) -> GreeksSensitivity:
    """
    Finite-difference sensitivity of the Greeks.

    Re-evaluates the Greeks at S × (1 + price_shift), at σ × (1 + vol_shift)
    and with expiration one day earlier, each against the base Greeks.
    """
    base = calculate_option_greeks(
        contract, underlying_price, volatility, risk_free_rate, dividend_yield, as_of
    )
    price_up = calculate_option_greeks(
        contract, underlying_price * (1 + price_shift), volatility, risk_free_rate, dividend_yield, as_of
    )
    vol_up = calculate_option_greeks(
        contract, underlying_price, volatility * (1 + vol_shift), risk_free_rate, dividend_yield, as_of
    )
    tomorrow = calculate_option_greeks(
        shift_expiration(contract, -1), underlying_price, volatility, risk_free_rate, dividend_yield, as_of
    )

    return GreeksSensitivity(
        delta_change=price_up.delta - base.delta,
        gamma_change=price_up.gamma - base.gamma,
        vega_change=vol_up.vega - base.vega,
        theta_decay=tomorrow.theta - base.theta,
    )


def _probability_of_profit(
    strategy: OptionsStrategy,
    underlying_price: float,
    expected_move: float,
) -> float:
    breakevens = strategy.breakeven
    if not breakevens:
        return 0.5

    if expected_move <= 0:
        # No remaining uncertainty: profitable now or not
        return 1.0 if calculate_pnl_at_price(strategy, underlying_price) > 0 else 0.0

    if len(breakevens) == 1:
        distance = abs(underlying_price - breakevens[0])
        return float(1 - norm.cdf(distance / expected_move))

    lower, upper = breakevens[0], breakevens[-1]
    inside = float(
        norm.cdf((upper - underlying_price) / expected_move)
        - norm.cdf((lower - underlying_price) / expected_move)
    )
    # Long straddles/strangles profit outside the breakevens
    midpoint_pnl = calculate_pnl_at_price(strategy, (lower + upper) / 2)
    return inside if midpoint_pnl >= 0 else 1 - inside


def _weighted(value: float, weight: float) -> float:
    """value × weight with a zero weight cancelling an infinite value."""
    return 0.0 if weight == 0 else value * weight


def calculate_risk_metrics(
    strategy: OptionsStrategy,
    underlying_price: float,
    volatility: float,
    risk_free_rate: float,
    dividend_yield: float = 0.0,
    as_of: datetime | None = None,
) -> RiskMetrics:
    """
    VaR, probability of profit and expected value of a strategy.

    - VaR: |delta| × S × σ × √(1/365)
    - POP: normal CDF of the breakeven distance scaled by S × σ × √T,
      clamped to [0, 1]
    - EV: max_profit × POP − max_loss × (1 − POP)

    Returns:
        RiskMetrics with max_drawdown = strategy.max_loss
    """
    greeks = calculate_strategy_greeks(
        strategy, underlying_price, volatility, risk_free_rate, dividend_yield, as_of
    )
    value_at_risk = abs(greeks.delta * underlying_price * volatility * math.sqrt(ONE_DAY_HORIZON))

    T = time_to_expiration(strategy.expiration, as_of)
    expected_move = underlying_price * volatility * math.sqrt(T)
    pop = min(1.0, max(0.0, _probability_of_profit(strategy, underlying_price, expected_move)))

    expected_value = _weighted(strategy.max_profit, pop) - _weighted(strategy.max_loss, 1 - pop)

    logger.debug(
        f"Risk metrics {strategy.name}: VaR={value_at_risk:.4f}, POP={pop:.2%}, EV={expected_value:.2f}"
    )
    return RiskMetrics(
        greeks=greeks,
        value_at_risk=value_at_risk,
        max_drawdown=strategy.max_loss,
        probability_of_profit=pop,
        expected_value=expected_value,
    )
