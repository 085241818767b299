"""
Engine Configuration

Nested configuration dataclasses for the options risk engine.

Config location: config/optrisk.yaml

Schema:
- risk_limits: Portfolio and position risk thresholds
- monitoring: Monitoring loop, cache and alert windows
- market_defaults: Conservative fallbacks when market data is unavailable
- margin: Flat margin model rates
- stress_test: Price / volatility shock scenarios
- logging: loguru sink settings
"""

from dataclasses import dataclass, field
from typing import List


@dataclass(slots=True)
class RiskLimitsConfig:
    """
    Portfolio-level risk limits configuration.

    Attributes:
        max_single_position_risk: Max loss of one position as a fraction of
            portfolio value (default: 0.03 = 3%)
        position_risk_warning_ratio: Fraction of the position limit at which a
            warning is issued (default: 0.8)
        max_concentration: Max share of exposure in one underlying (hard limit)
        concentration_warning: Share of exposure that triggers a warning
        max_portfolio_delta: Max absolute net portfolio delta
        max_margin_utilization: Max used margin / buying power (hard limit)
        margin_warning: Margin utilization that triggers a warning
        max_var_pct: One-day VaR as a fraction of portfolio value
        max_stress_loss_pct: Worst stress-scenario loss as a fraction of
            portfolio value
        max_leverage: Exposure / portfolio value at which the leverage
            component of the risk score saturates
        leverage_weight: Weight of leverage in the risk score
        concentration_weight: Weight of concentration in the risk score
        var_weight: Weight of VaR in the risk score
    """

    max_single_position_risk: float = 0.03
    position_risk_warning_ratio: float = 0.8
    max_concentration: float = 0.40
    concentration_warning: float = 0.25
    max_portfolio_delta: float = 25.0
    max_margin_utilization: float = 0.80
    margin_warning: float = 0.60
    max_var_pct: float = 0.02
    max_stress_loss_pct: float = 0.10
    max_leverage: float = 2.0
    leverage_weight: float = 0.4
    concentration_weight: float = 0.3
    var_weight: float = 0.3

    def __repr__(self) -> str:
        """Return string representation of risk limits config."""
        return (
            f"RiskLimitsConfig("
            f"max_pos_risk={self.max_single_position_risk:.1%}, "
            f"max_conc={self.max_concentration:.1%}, "
            f"max_delta={self.max_portfolio_delta}, "
            f"max_margin={self.max_margin_utilization:.1%})"
        )


@dataclass(slots=True)
class MonitoringConfig:
    """Monitoring loop configuration (minutes / seconds)."""
    interval_minutes: float = 1.0
    cache_ttl_seconds: float = 300.0          # 5 minutes
    alert_dedup_window_seconds: float = 300.0  # 5 minutes
    alert_retention_seconds: float = 3600.0   # 1 hour


@dataclass(slots=True)
class MarketDefaults:
    """Fallback market conditions used when a quote is unavailable."""
    implied_volatility: float = 0.25
    risk_free_rate: float = 0.05
    dividend_yield: float = 0.0


@dataclass(slots=True)
class MarginConfig:
    """Flat margin model rates."""
    naked_call_rate: float = 0.20


@dataclass(slots=True)
class StressTestConfig:
    """Stress-test scenarios applied to every assessment."""
    price_shocks: List[float] = field(default_factory=lambda: [-0.20, -0.10, 0.10, 0.20])
    crash_price_shock: float = -0.20
    crash_vol_shock: float = 0.50


@dataclass(slots=True)
class LoggingConfig:
    """loguru sink configuration."""
    level: str = "INFO"
    file: str | None = "logs/optrisk.log"
    rotation: str = "10 MB"
    retention: str = "7 days"
    format: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[component]}</cyan> | "
        "<level>{message}</level>"
    )


@dataclass
class EngineConfig:
    """Complete engine configuration."""

    risk_limits: RiskLimitsConfig = field(default_factory=RiskLimitsConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    market_defaults: MarketDefaults = field(default_factory=MarketDefaults)
    margin: MarginConfig = field(default_factory=MarginConfig)
    stress_test: StressTestConfig = field(default_factory=StressTestConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "EngineConfig":
        """Create config from dictionary with nested dataclass instantiation."""
        sections = {
            "risk_limits": RiskLimitsConfig,
            "monitoring": MonitoringConfig,
            "market_defaults": MarketDefaults,
            "margin": MarginConfig,
            "stress_test": StressTestConfig,
            "logging": LoggingConfig,
        }

        kwargs = {}
        for name, section_cls in sections.items():
            section = data.get(name) or {}
            known = set(section_cls.__dataclass_fields__)
            unknown = set(section) - known
            if unknown:
                raise ValueError(f"Unknown keys in '{name}': {sorted(unknown)}")
            kwargs[name] = section_cls(**section)

        return cls(**kwargs)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        limits = self.risk_limits

        # Fractions
        for name in (
            "max_single_position_risk",
            "position_risk_warning_ratio",
            "max_concentration",
            "concentration_warning",
            "max_margin_utilization",
            "margin_warning",
            "max_var_pct",
            "max_stress_loss_pct",
        ):
            value = getattr(limits, name)
            if not (0 < value <= 1):
                errors.append(f"{name} must be between 0 and 1: {value}")

        if limits.concentration_warning > limits.max_concentration:
            errors.append("concentration_warning must not exceed max_concentration")
        if limits.margin_warning > limits.max_margin_utilization:
            errors.append("margin_warning must not exceed max_margin_utilization")
        if limits.max_portfolio_delta <= 0:
            errors.append(f"max_portfolio_delta must be positive: {limits.max_portfolio_delta}")
        if limits.max_leverage <= 0:
            errors.append(f"max_leverage must be positive: {limits.max_leverage}")

        weights = limits.leverage_weight + limits.concentration_weight + limits.var_weight
        if abs(weights - 1.0) > 1e-6:
            errors.append(f"risk score weights must sum to 1.0: {weights}")

        # Monitoring
        if self.monitoring.interval_minutes <= 0:
            errors.append("interval_minutes must be > 0")
        if self.monitoring.cache_ttl_seconds < 0:
            errors.append("cache_ttl_seconds must be >= 0")
        if self.monitoring.alert_dedup_window_seconds < 0:
            errors.append("alert_dedup_window_seconds must be >= 0")
        if self.monitoring.alert_retention_seconds < self.monitoring.alert_dedup_window_seconds:
            errors.append("alert_retention_seconds must be >= alert_dedup_window_seconds")

        # Market defaults
        if self.market_defaults.implied_volatility <= 0:
            errors.append(f"Invalid default implied_volatility: {self.market_defaults.implied_volatility}")

        # Margin
        if not (0 < self.margin.naked_call_rate <= 1):
            errors.append(f"naked_call_rate must be between 0 and 1: {self.margin.naked_call_rate}")

        # Stress tests
        if any(shock <= -1 for shock in self.stress_test.price_shocks):
            errors.append("price_shocks must be greater than -1")
        if self.stress_test.crash_price_shock <= -1:
            errors.append("crash_price_shock must be greater than -1")
        if self.stress_test.crash_vol_shock <= -1:
            errors.append("crash_vol_shock must be greater than -1")

        return errors
