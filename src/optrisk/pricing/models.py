"""
Pricing Data Models

Results of Black-Scholes pricing, Greeks aggregation and per-strategy risk
metrics.

Key patterns:
- dataclass(slots=True, frozen=True) value objects
- GreeksCalculation supports + and scaling so aggregation is a plain sum
"""

from dataclasses import dataclass, field
from typing import List

from optrisk.models.market import MarketConditions
from optrisk.strategies.models import OptionsStrategy, PnLPoint


@dataclass(slots=True, frozen=True)
class GreeksCalculation:
    """
    Option sensitivities.

    Attributes:
        delta: dV/dS
        gamma: d²V/dS²
        theta: Value change per calendar day
        vega: Value change per 1 vol point
        rho: Value change per 1 rate point
    """

    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0
    rho: float = 0.0

    def __add__(self, other: "GreeksCalculation") -> "GreeksCalculation":
        return GreeksCalculation(
            delta=self.delta + other.delta,
            gamma=self.gamma + other.gamma,
            theta=self.theta + other.theta,
            vega=self.vega + other.vega,
            rho=self.rho + other.rho,
        )

    def scaled(self, factor: float) -> "GreeksCalculation":
        return GreeksCalculation(
            delta=self.delta * factor,
            gamma=self.gamma * factor,
            theta=self.theta * factor,
            vega=self.vega * factor,
            rho=self.rho * factor,
        )

    def __repr__(self) -> str:
        return (
            f"Greeks(Δ={self.delta:.4f}, Γ={self.gamma:.4f}, Θ={self.theta:.4f}, "
            f"V={self.vega:.4f}, ρ={self.rho:.4f})"
        )


ZERO_GREEKS = GreeksCalculation()


@dataclass(slots=True, frozen=True)
class GreeksSensitivity:
    """
    Finite-difference changes of the Greeks.

    Attributes:
        delta_change: Delta change for the price shift
        gamma_change: Gamma change for the price shift
        vega_change: Vega change for the volatility shift
        theta_decay: Theta change when expiration moves one day closer
    """

    delta_change: float
    gamma_change: float
    vega_change: float
    theta_decay: float


@dataclass(slots=True, frozen=True)
class RiskMetrics:
    """
    Per-strategy risk metrics.

    Attributes:
        greeks: Strategy Greeks
        value_at_risk: One-day VaR estimate (dollars per share of delta exposure)
        max_drawdown: Strategy max loss (math.inf if unbounded)
        probability_of_profit: POP in [0, 1]
        expected_value: max_profit × POP − max_loss × (1 − POP)
    """

    greeks: GreeksCalculation
    value_at_risk: float
    max_drawdown: float
    probability_of_profit: float
    expected_value: float


@dataclass(slots=True, frozen=True)
class PricedPosition:
    """A strategy together with the market conditions used to price it."""

    strategy: OptionsStrategy
    market_conditions: MarketConditions


@dataclass(slots=True, frozen=True)
class TimeDecayPoint:
    days_remaining: int
    theoretical_value: float
    theta: float


@dataclass(slots=True, frozen=True)
class VolatilityPoint:
    volatility: float
    theoretical_value: float
    vega: float


@dataclass(slots=True)
class StrategyAnalysis:
    """
    Full analysis of a strategy under current market conditions.

    Attributes:
        greeks: Strategy Greeks
        risk_metrics: VaR / POP / expected value
        theoretical_value: Current model value of the position
        pnl_profile: Expiration P&L over 0.7S..1.3S
        time_decay: Value and theta every 5 days until expiration
        volatility_sensitivity: Value and vega over 0.5σ..1.5σ
        recommendations: Human-readable hints
    """

    greeks: GreeksCalculation
    risk_metrics: RiskMetrics
    theoretical_value: float
    pnl_profile: List[PnLPoint] = field(default_factory=list)
    time_decay: List[TimeDecayPoint] = field(default_factory=list)
    volatility_sensitivity: List[VolatilityPoint] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
