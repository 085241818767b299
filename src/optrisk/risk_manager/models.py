"""
Risk Management Models

Result types of the portfolio risk assessor and monitor.

Key patterns:
- dataclass(slots=True) for performance (internal data, validated on entry)
- Type hints for all fields
- Assessments are superseded by the next one, never appended to

Decision tree:
    Is this data internal to my process?
    ├─ Yes → Use dataclass (performance matters) ← WE ARE HERE
    └─ No → Use Pydantic (validation critical)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from optrisk.alerts.models import RiskAlert
from optrisk.pricing.models import GreeksCalculation


class RiskLevel(str, Enum):
    """Dashboard risk level derived from the risk score."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


def risk_level_for(score: float) -> RiskLevel:
    """≥ 80 critical, ≥ 60 high, ≥ 40 medium, otherwise low."""
    if score >= 80:
        return RiskLevel.CRITICAL
    if score >= 60:
        return RiskLevel.HIGH
    if score >= 40:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


@dataclass(slots=True, frozen=True)
class ConcentrationEntry:
    """Exposure attributed to one underlying."""

    underlying: str
    exposure: float
    percentage: float  # share of total exposure, 0-100


@dataclass(slots=True)
class ConcentrationRisk:
    """
    Concentration breakdown.

    Attributes:
        top_concentrations: Underlyings by exposure, largest first
        max_concentration: Largest share of exposure (0-1)
        concentration_score: Herfindahl index of exposure shares × 100
        is_over_concentrated: Largest share above the configured limit
    """

    top_concentrations: List[ConcentrationEntry] = field(default_factory=list)
    max_concentration: float = 0.0
    concentration_score: float = 0.0
    is_over_concentrated: bool = False


@dataclass(slots=True)
class MarginAnalysis:
    """
    Margin usage.

    Attributes:
        total_margin_used: Margin required by open positions
        available_margin: Buying power reported by the account
        margin_utilization: used / available (0-1, may exceed 1)
        is_over_margin: Utilization above the configured limit
    """

    total_margin_used: float = 0.0
    available_margin: float = 0.0
    margin_utilization: float = 0.0
    is_over_margin: bool = False


@dataclass(slots=True, frozen=True)
class StressScenarioResult:
    """Projected portfolio P&L under one shock."""

    scenario: str
    price_change: float
    volatility_change: float
    portfolio_pnl: float
    portfolio_pnl_percent: float


@dataclass(slots=True)
class PortfolioRiskMetrics:
    """
    Portfolio-level risk numbers.

    Attributes:
        value_at_risk: One-day VaR in dollars
        max_portfolio_loss: Worst stress-scenario loss (positive dollars)
        current_leverage: Total exposure / portfolio value
        total_exposure: Σ leg notional (quantity × strike × multiplier)
    """

    value_at_risk: float = 0.0
    max_portfolio_loss: float = 0.0
    current_leverage: float = 0.0
    total_exposure: float = 0.0


@dataclass(slots=True)
class PortfolioRiskAssessment:
    """
    Complete portfolio risk assessment.

    Attributes:
        risk_score: Blended score in [0, 100]
        portfolio_greeks: Aggregated Greeks
        risk_metrics: VaR, worst stress loss, leverage
        alerts: Alerts raised by this assessment (deduplicated)
        concentration_risk: Exposure by underlying
        margin_analysis: Margin usage
        stress_test_results: One entry per scenario
        portfolio_value: Account net liquidation value
        options_exposure_pct: Model value of options / portfolio value × 100
        position_count: Number of open options positions
        greeks_by_symbol: Greeks per underlying
        timestamp: When the assessment was computed
    """

    risk_score: float
    portfolio_greeks: GreeksCalculation
    risk_metrics: PortfolioRiskMetrics
    alerts: List[RiskAlert]
    concentration_risk: ConcentrationRisk
    margin_analysis: MarginAnalysis
    stress_test_results: List[StressScenarioResult]
    portfolio_value: float
    options_exposure_pct: float
    position_count: int
    greeks_by_symbol: Dict[str, GreeksCalculation] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not (0 <= self.risk_score <= 100):
            raise ValueError(f"Risk score must be in [0, 100], got {self.risk_score}")

    @property
    def risk_level(self) -> RiskLevel:
        return risk_level_for(self.risk_score)

    def __repr__(self) -> str:
        return (
            f"PortfolioRiskAssessment(score={self.risk_score:.1f}, "
            f"level={self.risk_level.value}, positions={self.position_count}, "
            f"alerts={len(self.alerts)})"
        )


@dataclass(slots=True)
class PositionValidation:
    """
    Outcome of checking a candidate position against portfolio limits.

    Hard-limit breaches go to errors (is_valid False); soft breaches to
    warnings.
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    position_risk_pct: float = 0.0
    concentration_pct: float = 0.0
    margin_impact: float = 0.0
    projected_margin_utilization: float = 0.0
    projected_delta: float = 0.0

    def __repr__(self) -> str:
        status = "VALID" if self.is_valid else "INVALID"
        return (
            f"PositionValidation({status}, risk={self.position_risk_pct:.2%}, "
            f"conc={self.concentration_pct:.1%}, errors={len(self.errors)}, "
            f"warnings={len(self.warnings)})"
        )


@dataclass(slots=True)
class RiskDashboardData:
    """Snapshot consumed by the presentation layer."""

    risk_score: float
    risk_level: RiskLevel
    portfolio_greeks: GreeksCalculation
    risk_metrics: PortfolioRiskMetrics
    alerts: List[RiskAlert]
    concentration_risk: ConcentrationRisk
    margin_analysis: MarginAnalysis
    stress_test_results: List[StressScenarioResult]
    portfolio_value: float
    options_exposure_pct: float
    last_updated: datetime


@dataclass(slots=True)
class MonitoringStatus:
    """Monitor state for health checks."""

    is_active: bool
    last_update: Optional[datetime]
    subscriber_count: int
    risk_score: Optional[float]
    alert_count: int
    interval_minutes: Optional[float] = None
