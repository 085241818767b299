"""
Pricing & Greeks Engine

Black-Scholes pricing, Greeks, implied volatility, strategy/portfolio Greeks
aggregation, sensitivity analysis and per-strategy risk metrics.

Example:
    >>> from optrisk.pricing import calculate_option_greeks, calculate_implied_volatility
    >>> greeks = calculate_option_greeks(contract, 100.0, 0.20, 0.05)
    >>> iv = calculate_implied_volatility(contract, 100.0, 4.62, 0.05)
"""

from optrisk.pricing.analysis import analyze_strategy, generate_recommendations, theoretical_value
from optrisk.pricing.black_scholes import (
    black_scholes_greeks,
    black_scholes_price,
    calculate_implied_volatility,
    calculate_option_greeks,
    calculate_option_price,
)
from optrisk.pricing.greeks import (
    calculate_greeks_sensitivity,
    calculate_legs_greeks,
    calculate_portfolio_greeks,
    calculate_risk_metrics,
    calculate_strategy_greeks,
)
from optrisk.pricing.models import (
    ZERO_GREEKS,
    GreeksCalculation,
    GreeksSensitivity,
    PricedPosition,
    RiskMetrics,
    StrategyAnalysis,
    TimeDecayPoint,
    VolatilityPoint,
)

__all__ = [
    "GreeksCalculation",
    "GreeksSensitivity",
    "PricedPosition",
    "RiskMetrics",
    "StrategyAnalysis",
    "TimeDecayPoint",
    "VolatilityPoint",
    "ZERO_GREEKS",
    "analyze_strategy",
    "black_scholes_greeks",
    "black_scholes_price",
    "calculate_greeks_sensitivity",
    "calculate_implied_volatility",
    "calculate_legs_greeks",
    "calculate_option_greeks",
    "calculate_option_price",
    "calculate_portfolio_greeks",
    "calculate_risk_metrics",
    "calculate_strategy_greeks",
    "generate_recommendations",
    "theoretical_value",
]
