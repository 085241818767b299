"""
Risk Management Module

Portfolio risk assessment, new position validation and continuous monitoring.

Example:
    >>> from optrisk.risk_manager import PortfolioRiskAssessor, PortfolioRiskMonitor
    >>>
    >>> assessor = PortfolioRiskAssessor(RiskLimitsConfig(max_portfolio_delta=25.0))
    >>> monitor = PortfolioRiskMonitor(account_provider, market_data_provider, assessor=assessor)
    >>>
    >>> await monitor.start_monitoring(interval_minutes=1)
    >>> validation = await monitor.validate_new_position(strategy)
"""

from optrisk.config.engine_config import RiskLimitsConfig
from optrisk.risk_manager.assessor import PortfolioRiskAssessor, position_legs
from optrisk.risk_manager.models import (
    ConcentrationEntry,
    ConcentrationRisk,
    MarginAnalysis,
    MonitoringStatus,
    PortfolioRiskAssessment,
    PortfolioRiskMetrics,
    PositionValidation,
    RiskDashboardData,
    RiskLevel,
    StressScenarioResult,
    risk_level_for,
)
from optrisk.risk_manager.monitor import PortfolioRiskMonitor
from optrisk.risk_manager.providers import (
    AccountProvider,
    MarketDataProvider,
    MarketDataUnavailableError,
)

__all__ = [
    "AccountProvider",
    "ConcentrationEntry",
    "ConcentrationRisk",
    "MarginAnalysis",
    "MarketDataProvider",
    "MarketDataUnavailableError",
    "MonitoringStatus",
    "PortfolioRiskAssessment",
    "PortfolioRiskAssessor",
    "PortfolioRiskMetrics",
    "PortfolioRiskMonitor",
    "PositionValidation",
    "RiskDashboardData",
    "RiskLevel",
    "RiskLimitsConfig",
    "StressScenarioResult",
    "position_legs",
    "risk_level_for",
]
