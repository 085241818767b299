"""
Strategy Analysis

Combines Greeks, risk metrics and P&L sampling into one report for a
proposed strategy: expiration P&L curve, value/theta as expiration nears,
value/vega across a volatility band, and plain-language recommendations.
"""

from datetime import datetime, timedelta
from typing import List

import numpy as np

from optrisk.models.contracts import days_to_expiration
from optrisk.models.market import MarketConditions
from optrisk.pricing.black_scholes import calculate_option_price
from optrisk.pricing.greeks import calculate_risk_metrics, calculate_strategy_greeks
from optrisk.pricing.models import (
    GreeksCalculation,
    RiskMetrics,
    StrategyAnalysis,
    TimeDecayPoint,
    VolatilityPoint,
)
from optrisk.strategies.models import OptionsStrategy, StrategyKind
from optrisk.strategies.pnl import calculate_pnl_profile, default_price_range

TIME_DECAY_STEP_DAYS = 5
VOL_BAND = (0.5, 1.5)
VOL_STEPS = 20

HIGH_DELTA = 0.5
HIGH_GAMMA = 0.1
HIGH_THETA = -50
HIGH_VEGA = 100
LOW_POP = 0.4
STRADDLE_MAX_DELTA = 0.1
IRON_CONDOR_MIN_RETURN = 0.1


def theoretical_value(
    strategy: OptionsStrategy,
    underlying_price: float,
    volatility: float,
    risk_free_rate: float,
    dividend_yield: float = 0.0,
    as_of: datetime | None = None,
) -> float:
    """Model value of the position in dollars (long legs +, short legs −)."""
    return sum(
        leg.side.sign
        * calculate_option_price(
            leg.contract, underlying_price, volatility, risk_free_rate, dividend_yield, as_of
        )
        * leg.quantity
        * leg.contract.multiplier
        for leg in strategy.legs
    )


def _time_decay_profile(
    strategy: OptionsStrategy,
    mc: MarketConditions,
    as_of: datetime,
) -> List[TimeDecayPoint]:
    expires_at = datetime.combine(strategy.expiration, datetime.min.time())
    total_days = days_to_expiration(strategy.expiration, as_of)

    points = []
    for days_remaining in range(total_days, -1, -TIME_DECAY_STEP_DAYS):
        valuation_time = expires_at - timedelta(days=days_remaining)
        greeks = calculate_strategy_greeks(
            strategy, mc.underlying_price, mc.implied_volatility,
            mc.risk_free_rate, mc.dividend_yield, valuation_time,
        )
        value = theoretical_value(
            strategy, mc.underlying_price, mc.implied_volatility,
            mc.risk_free_rate, mc.dividend_yield, valuation_time,
        )
        points.append(TimeDecayPoint(days_remaining, value, greeks.theta))
    return points


def _volatility_sensitivity(
    strategy: OptionsStrategy,
    mc: MarketConditions,
    as_of: datetime,
) -> List[VolatilityPoint]:
    low, high = VOL_BAND
    vols = np.linspace(mc.implied_volatility * low, mc.implied_volatility * high, VOL_STEPS + 1)

    points = []
    for vol in vols:
        vol = float(vol)
        greeks = calculate_strategy_greeks(
            strategy, mc.underlying_price, vol, mc.risk_free_rate, mc.dividend_yield, as_of
        )
        value = theoretical_value(
            strategy, mc.underlying_price, vol, mc.risk_free_rate, mc.dividend_yield, as_of
        )
        points.append(VolatilityPoint(vol, value, greeks.vega))
    return points


def generate_recommendations(
    strategy: OptionsStrategy,
    greeks: GreeksCalculation,
    risk_metrics: RiskMetrics,
) -> List[str]:
    """Plain-language hints derived from Greeks and risk metrics."""
    recommendations = []

    if abs(greeks.delta) > HIGH_DELTA:
        recommendations.append(
            f"High delta exposure ({greeks.delta:.2f}). Consider hedging with underlying stock."
        )
    if abs(greeks.gamma) > HIGH_GAMMA:
        recommendations.append(
            f"High gamma exposure ({greeks.gamma:.3f}). Delta will change rapidly with price moves."
        )
    if greeks.theta < HIGH_THETA:
        recommendations.append(
            f"High time decay ({greeks.theta:.2f}/day). Monitor position closely as expiration approaches."
        )
    if abs(greeks.vega) > HIGH_VEGA:
        recommendations.append(
            f"High volatility sensitivity ({greeks.vega:.0f}). Position value will change "
            f"significantly with IV changes."
        )
    if risk_metrics.probability_of_profit < LOW_POP:
        recommendations.append(
            f"Low probability of profit ({risk_metrics.probability_of_profit:.1%}). "
            f"Consider adjusting strategy."
        )
    if (
        strategy.kind is StrategyKind.IRON_CONDOR
        and strategy.max_profit < strategy.margin * IRON_CONDOR_MIN_RETURN
    ):
        recommendations.append(
            "Low return on capital for iron condor. Consider wider spreads or different expiration."
        )
    if strategy.kind is StrategyKind.STRADDLE and abs(greeks.delta) > STRADDLE_MAX_DELTA:
        recommendations.append(
            "Straddle is not delta-neutral. Consider adjusting strikes or hedge with stock."
        )

    return recommendations


def analyze_strategy(
    strategy: OptionsStrategy,
    market_conditions: MarketConditions,
    as_of: datetime | None = None,
) -> StrategyAnalysis:
    """
    Full analysis of ``strategy`` under ``market_conditions``.

    Args:
        strategy: Strategy to analyze
        market_conditions: Price, volatility and rates to evaluate with
        as_of: Valuation time (default: now)

    Returns:
        StrategyAnalysis with Greeks, risk metrics, P&L profile over
        0.7S..1.3S, time decay every 5 days, volatility band 0.5σ..1.5σ and
        recommendations
    """
    as_of = as_of or datetime.now()
    mc = market_conditions

    greeks = calculate_strategy_greeks(
        strategy, mc.underlying_price, mc.implied_volatility,
        mc.risk_free_rate, mc.dividend_yield, as_of,
    )
    risk_metrics = calculate_risk_metrics(
        strategy, mc.underlying_price, mc.implied_volatility,
        mc.risk_free_rate, mc.dividend_yield, as_of,
    )

    return StrategyAnalysis(
        greeks=greeks,
        risk_metrics=risk_metrics,
        theoretical_value=theoretical_value(
            strategy, mc.underlying_price, mc.implied_volatility,
            mc.risk_free_rate, mc.dividend_yield, as_of,
        ),
        pnl_profile=calculate_pnl_profile(strategy, default_price_range(mc.underlying_price)),
        time_decay=_time_decay_profile(strategy, mc, as_of),
        volatility_sensitivity=_volatility_sensitivity(strategy, mc, as_of),
        recommendations=generate_recommendations(strategy, greeks, risk_metrics),
    )
