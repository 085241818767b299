"""
Portfolio Risk Assessor

Turns open options positions, the account snapshot and per-underlying market
conditions into a PortfolioRiskAssessment, and checks candidate positions
against the configured limits.

Key features:
- Portfolio Greeks (signed leg sums, per underlying and total)
- Concentration by underlying (Polars group_by over leg notional)
- Margin utilization through the pluggable MarginModel
- Stress tests with full Black-Scholes repricing under price / IV shocks
- One-day VaR, leverage and a blended 0-100 risk score
- Threshold alerts, deduplicated per (symbol, category)

Usage:
    >>> assessor = PortfolioRiskAssessor(RiskLimitsConfig())
    >>> assessment = assessor.assess_portfolio_risk(positions, account, market_by_symbol)
    >>> validation = assessor.validate_new_position(strategy, positions, account, market_by_symbol)
    >>> if not validation.is_valid:
    ...     print(validation.errors)
"""

import math
from collections import defaultdict
from datetime import datetime
from statistics import mean
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import polars as pl
from loguru import logger

from optrisk.alerts.manager import dedupe_alerts
from optrisk.alerts.models import AlertCategory, AlertSeverity, AlertType, RiskAlert
from optrisk.config.engine_config import EngineConfig, MarketDefaults, RiskLimitsConfig, StressTestConfig
from optrisk.models.broker import AccountInfo, OptionsPosition
from optrisk.models.contracts import StrategyLeg
from optrisk.models.market import MarketConditions
from optrisk.pricing.black_scholes import calculate_option_price
from optrisk.pricing.greeks import calculate_legs_greeks
from optrisk.pricing.models import ZERO_GREEKS, GreeksCalculation
from optrisk.risk_manager.models import (
    ConcentrationEntry,
    ConcentrationRisk,
    MarginAnalysis,
    PortfolioRiskAssessment,
    PortfolioRiskMetrics,
    PositionValidation,
    StressScenarioResult,
)
from optrisk.strategies.margin import FlatNotionalMarginModel, MarginModel
from optrisk.strategies.models import OptionsStrategy

PositionLike = Union[OptionsPosition, OptionsStrategy]

ONE_DAY_HORIZON = 1 / 365
TOP_CONCENTRATIONS = 5
DELTA_WARNING_RATIO = 0.8


def position_legs(position: PositionLike) -> List[StrategyLeg]:
    """Legs of a broker position or an engine strategy."""
    if isinstance(position, OptionsStrategy):
        return list(position.legs)
    return position.to_legs()


def _legs_by_symbol(positions: Iterable[PositionLike]) -> Dict[str, List[StrategyLeg]]:
    grouped: Dict[str, List[StrategyLeg]] = defaultdict(list)
    for position in positions:
        for leg in position_legs(position):
            grouped[leg.contract.underlying].append(leg)
    return dict(grouped)


def _legs_value(
    legs: Sequence[StrategyLeg],
    mc: MarketConditions,
    price_shift: float = 0.0,
    vol_shift: float = 0.0,
    as_of: Optional[datetime] = None,
) -> float:
    """Model value of ``legs`` in dollars, optionally under a shock."""
    S = mc.underlying_price * (1 + price_shift)
    sigma = mc.implied_volatility * (1 + vol_shift)
    return sum(
        leg.side.sign
        * calculate_option_price(leg.contract, S, sigma, mc.risk_free_rate, mc.dividend_yield, as_of)
        * leg.quantity
        * leg.contract.multiplier
        for leg in legs
    )


def _alert(
    category: AlertCategory,
    severity: AlertSeverity,
    message: str,
    timestamp: datetime,
    symbol: Optional[str] = None,
    alert_type: AlertType = AlertType.RISK,
) -> RiskAlert:
    return RiskAlert(
        alert_type=alert_type,
        category=category,
        severity=severity,
        message=message,
        timestamp=timestamp,
        symbol=symbol,
    )


class PortfolioRiskAssessor:
    """
    Computes portfolio risk assessments and validates new positions.

    Pure computation: no I/O and no awaits. Market conditions are supplied by
    the caller; underlyings without conditions are priced with conservative
    defaults at the mean strike of their legs.

    Attributes:
        limits: RiskLimitsConfig with risk thresholds
        margin_model: MarginModel used for margin requirements
        stress_config: Stress scenarios to run
        market_defaults: Fallback volatility / rates
    """

    def __init__(
        self,
        limits: RiskLimitsConfig | None = None,
        margin_model: MarginModel | None = None,
        stress_config: StressTestConfig | None = None,
        market_defaults: MarketDefaults | None = None,
        dedup_window_seconds: float = 300.0,
    ):
        """
        Initialize portfolio risk assessor.

        Args:
            limits: Risk thresholds (default: RiskLimitsConfig())
            margin_model: Margin model (default: FlatNotionalMarginModel())
            stress_config: Stress scenarios (default: ±10%, ±20%, crash)
            market_defaults: Fallback market inputs
            dedup_window_seconds: Window for deduplicating an assessment's alerts
        """
        self.limits = limits or RiskLimitsConfig()
        self.margin_model = margin_model or FlatNotionalMarginModel()
        self.stress_config = stress_config or StressTestConfig()
        self.market_defaults = market_defaults or MarketDefaults()
        self.dedup_window_seconds = dedup_window_seconds
        self.logger = logger.bind(component="PortfolioRiskAssessor")

    @classmethod
    def from_config(cls, config: EngineConfig) -> "PortfolioRiskAssessor":
        """
        Create an assessor wired from a loaded EngineConfig.

        Uses the risk_limits, stress_test and market_defaults sections, the
        margin section for a FlatNotionalMarginModel and the monitoring dedup
        window for an assessment's own alerts.

        Example:
            >>> assessor = PortfolioRiskAssessor.from_config(load_and_validate_config())
        """
        return cls(
            limits=config.risk_limits,
            margin_model=FlatNotionalMarginModel.from_config(config.margin),
            stress_config=config.stress_test,
            market_defaults=config.market_defaults,
            dedup_window_seconds=config.monitoring.alert_dedup_window_seconds,
        )

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def market_for(
        self,
        symbol: str,
        legs: Sequence[StrategyLeg],
        market_conditions: Mapping[str, MarketConditions],
    ) -> MarketConditions:
        """Conditions for ``symbol``, or defaults priced at the mean strike."""
        mc = market_conditions.get(symbol)
        if mc is not None:
            return mc
        fallback_price = mean(leg.contract.strike for leg in legs)
        self.logger.warning(
            f"No market conditions for {symbol}, using defaults at ${fallback_price:.2f}"
        )
        return MarketConditions.defaults(fallback_price, self.market_defaults)

    def calculate_concentration(self, legs_by_symbol: Mapping[str, Sequence[StrategyLeg]]) -> ConcentrationRisk:
        """Share of leg notional per underlying."""
        rows = [
            {
                "symbol": symbol,
                "quantity": leg.quantity,
                "strike": leg.contract.strike,
                "multiplier": leg.contract.multiplier,
            }
            for symbol, legs in legs_by_symbol.items()
            for leg in legs
        ]
        if not rows:
            return ConcentrationRisk()

        df = pl.DataFrame(rows).with_columns(
            (pl.col("quantity") * pl.col("strike") * pl.col("multiplier")).alias("position_value")
        )
        symbol_exposure = (
            df.group_by("symbol")
            .agg(pl.col("position_value").sum().alias("exposure"))
            .sort(["exposure", "symbol"], descending=[True, False])
        )

        total = float(symbol_exposure["exposure"].sum())
        if total <= 0:
            return ConcentrationRisk()

        shares = [
            (row["symbol"], float(row["exposure"]), float(row["exposure"]) / total)
            for row in symbol_exposure.iter_rows(named=True)
        ]
        max_share = shares[0][2]

        return ConcentrationRisk(
            top_concentrations=[
                ConcentrationEntry(underlying=s, exposure=e, percentage=share * 100)
                for s, e, share in shares[:TOP_CONCENTRATIONS]
            ],
            max_concentration=max_share,
            concentration_score=sum(share ** 2 for _, _, share in shares) * 100,
            is_over_concentrated=len(shares) > 1 and max_share > self.limits.max_concentration,
        )

    def calculate_margin(
        self,
        legs_by_symbol: Mapping[str, Sequence[StrategyLeg]],
        market_by_symbol: Mapping[str, MarketConditions],
        account_info: AccountInfo,
    ) -> MarginAnalysis:
        """Margin used by open positions relative to buying power."""
        used = sum(
            self.margin_model.requirement(legs, market_by_symbol[symbol].underlying_price)
            for symbol, legs in legs_by_symbol.items()
        )
        available = account_info.buying_power
        if available > 0:
            utilization = used / available
        else:
            utilization = 1.0 if used > 0 else 0.0

        return MarginAnalysis(
            total_margin_used=used,
            available_margin=available,
            margin_utilization=utilization,
            is_over_margin=utilization > self.limits.max_margin_utilization,
        )

    def run_stress_tests(
        self,
        legs_by_symbol: Mapping[str, Sequence[StrategyLeg]],
        market_by_symbol: Mapping[str, MarketConditions],
        portfolio_value: float,
        as_of: Optional[datetime] = None,
    ) -> List[StressScenarioResult]:
        """Reprice every position under each price / volatility shock."""
        scenarios = [
            (f"Underlying {shock:+.0%}", shock, 0.0) for shock in self.stress_config.price_shocks
        ]
        scenarios.append(
            (
                "Market crash",
                self.stress_config.crash_price_shock,
                self.stress_config.crash_vol_shock,
            )
        )

        base = {
            symbol: _legs_value(legs, market_by_symbol[symbol], as_of=as_of)
            for symbol, legs in legs_by_symbol.items()
        }

        results = []
        for name, price_shift, vol_shift in scenarios:
            pnl = sum(
                _legs_value(legs, market_by_symbol[symbol], price_shift, vol_shift, as_of) - base[symbol]
                for symbol, legs in legs_by_symbol.items()
            )
            pnl_pct = pnl / portfolio_value * 100 if portfolio_value > 0 else 0.0
            results.append(
                StressScenarioResult(
                    scenario=name,
                    price_change=price_shift,
                    volatility_change=vol_shift,
                    portfolio_pnl=pnl,
                    portfolio_pnl_percent=pnl_pct,
                )
            )
        return results

    def score_risk(self, leverage: float, concentration: float, var_pct: float) -> float:
        """
        Weighted blend of leverage, concentration and VaR, clamped to [0, 100].

        Each component is its value relative to the configured limit, capped
        at 100.
        """
        limits = self.limits

        def component(value: float, limit: float) -> float:
            if limit <= 0:
                return 100.0 if value > 0 else 0.0
            return min(max(value, 0.0) / limit, 1.0) * 100

        score = (
            limits.leverage_weight * component(leverage, limits.max_leverage)
            + limits.concentration_weight * component(concentration, limits.max_concentration)
            + limits.var_weight * component(var_pct, limits.max_var_pct)
        )
        return min(100.0, max(0.0, score))

    # ------------------------------------------------------------------
    # Assessment
    # ------------------------------------------------------------------

    def assess_portfolio_risk(
        self,
        positions: Sequence[PositionLike],
        account_info: AccountInfo,
        market_conditions: Mapping[str, MarketConditions],
        unavailable_symbols: Iterable[str] = (),
        as_of: Optional[datetime] = None,
    ) -> PortfolioRiskAssessment:
        """
        Compute a full portfolio risk assessment.

        Args:
            positions: Open options positions
            account_info: Account snapshot
            market_conditions: Conditions per underlying symbol
            unavailable_symbols: Symbols priced with fallback defaults
            as_of: Valuation time (default: now)

        Returns:
            PortfolioRiskAssessment with deduplicated alerts
        """
        now = as_of or datetime.now()
        legs_by_symbol = _legs_by_symbol(positions)
        market_by_symbol = {
            symbol: self.market_for(symbol, legs, market_conditions)
            for symbol, legs in legs_by_symbol.items()
        }
        portfolio_value = account_info.portfolio_value

        # Greeks
        greeks_by_symbol: Dict[str, GreeksCalculation] = {}
        total_greeks = ZERO_GREEKS
        for symbol, legs in legs_by_symbol.items():
            mc = market_by_symbol[symbol]
            symbol_greeks = calculate_legs_greeks(
                legs, mc.underlying_price, mc.implied_volatility,
                mc.risk_free_rate, mc.dividend_yield, now,
            )
            greeks_by_symbol[symbol] = symbol_greeks
            total_greeks = total_greeks + symbol_greeks

        # VaR (dollars): per-underlying delta exposure × one-day move
        value_at_risk = sum(
            abs(
                greeks_by_symbol[symbol].delta
                * legs[0].contract.multiplier
                * market_by_symbol[symbol].underlying_price
                * market_by_symbol[symbol].implied_volatility
                * math.sqrt(ONE_DAY_HORIZON)
            )
            for symbol, legs in legs_by_symbol.items()
        )

        concentration = self.calculate_concentration(legs_by_symbol)
        margin = self.calculate_margin(legs_by_symbol, market_by_symbol, account_info)
        stress_results = self.run_stress_tests(legs_by_symbol, market_by_symbol, portfolio_value, now)

        total_exposure = sum(
            leg.quantity * leg.contract.strike * leg.contract.multiplier
            for legs in legs_by_symbol.values()
            for leg in legs
        )
        if portfolio_value > 0:
            leverage = total_exposure / portfolio_value
            var_pct = value_at_risk / portfolio_value
        else:
            leverage = self.limits.max_leverage if total_exposure > 0 else 0.0
            var_pct = self.limits.max_var_pct if value_at_risk > 0 else 0.0

        worst_pnl = min((r.portfolio_pnl for r in stress_results), default=0.0)
        risk_metrics = PortfolioRiskMetrics(
            value_at_risk=value_at_risk,
            max_portfolio_loss=max(-worst_pnl, 0.0),
            current_leverage=leverage,
            total_exposure=total_exposure,
        )

        risk_score = self.score_risk(leverage, concentration.max_concentration, var_pct)

        options_value = sum(
            abs(_legs_value(legs, market_by_symbol[symbol], as_of=now))
            for symbol, legs in legs_by_symbol.items()
        )
        options_exposure_pct = options_value / portfolio_value * 100 if portfolio_value > 0 else 0.0

        alerts = self._generate_alerts(
            risk_score=risk_score,
            greeks=total_greeks,
            concentration=concentration,
            margin=margin,
            var_pct=var_pct,
            worst_pnl=worst_pnl,
            portfolio_value=portfolio_value,
            unavailable_symbols=unavailable_symbols,
            timestamp=now,
        )

        assessment = PortfolioRiskAssessment(
            risk_score=risk_score,
            portfolio_greeks=total_greeks,
            risk_metrics=risk_metrics,
            alerts=alerts,
            concentration_risk=concentration,
            margin_analysis=margin,
            stress_test_results=stress_results,
            portfolio_value=portfolio_value,
            options_exposure_pct=options_exposure_pct,
            position_count=len(positions),
            greeks_by_symbol=greeks_by_symbol,
            timestamp=now,
        )

        self.logger.debug(f"Assessed {assessment!r}")
        return assessment

    def _generate_alerts(
        self,
        *,
        risk_score: float,
        greeks: GreeksCalculation,
        concentration: ConcentrationRisk,
        margin: MarginAnalysis,
        var_pct: float,
        worst_pnl: float,
        portfolio_value: float,
        unavailable_symbols: Iterable[str],
        timestamp: datetime,
    ) -> List[RiskAlert]:
        limits = self.limits
        alerts: List[RiskAlert] = []

        # Risk score
        if risk_score >= 80:
            alerts.append(_alert(
                AlertCategory.RISK_SCORE, AlertSeverity.HIGH,
                f"Portfolio risk score is critical: {risk_score:.0f}/100", timestamp,
            ))
        elif risk_score >= 60:
            alerts.append(_alert(
                AlertCategory.RISK_SCORE, AlertSeverity.MEDIUM,
                f"Portfolio risk score is elevated: {risk_score:.0f}/100", timestamp,
            ))

        # Concentration (a single underlying is reported, never escalated)
        multiple_underlyings = len(concentration.top_concentrations) > 1
        for entry in concentration.top_concentrations:
            share = entry.percentage / 100
            if share > limits.max_concentration and multiple_underlyings:
                alerts.append(_alert(
                    AlertCategory.CONCENTRATION, AlertSeverity.HIGH,
                    f"{entry.underlying} is {entry.percentage:.1f}% of exposure "
                    f"(limit {limits.max_concentration:.0%})",
                    timestamp, symbol=entry.underlying,
                ))
            elif share > limits.concentration_warning:
                alerts.append(_alert(
                    AlertCategory.CONCENTRATION, AlertSeverity.MEDIUM,
                    f"{entry.underlying} is {entry.percentage:.1f}% of exposure",
                    timestamp, symbol=entry.underlying,
                ))

        # Margin
        if margin.is_over_margin:
            alerts.append(_alert(
                AlertCategory.MARGIN, AlertSeverity.HIGH,
                f"Margin utilization {margin.margin_utilization:.1%} exceeds "
                f"{limits.max_margin_utilization:.0%}",
                timestamp,
            ))
        elif margin.margin_utilization > limits.margin_warning:
            alerts.append(_alert(
                AlertCategory.MARGIN, AlertSeverity.MEDIUM,
                f"Margin utilization is {margin.margin_utilization:.1%}", timestamp,
            ))

        # Delta
        abs_delta = abs(greeks.delta)
        if abs_delta > limits.max_portfolio_delta:
            alerts.append(_alert(
                AlertCategory.DELTA, AlertSeverity.HIGH,
                f"Portfolio delta {greeks.delta:.2f} exceeds ±{limits.max_portfolio_delta}",
                timestamp,
            ))
        elif abs_delta > limits.max_portfolio_delta * DELTA_WARNING_RATIO:
            alerts.append(_alert(
                AlertCategory.DELTA, AlertSeverity.MEDIUM,
                f"Portfolio delta {greeks.delta:.2f} is near the ±{limits.max_portfolio_delta} limit",
                timestamp,
            ))

        # VaR
        if var_pct > limits.max_var_pct:
            alerts.append(_alert(
                AlertCategory.VAR, AlertSeverity.MEDIUM,
                f"One-day VaR is {var_pct:.2%} of portfolio (limit {limits.max_var_pct:.2%})",
                timestamp,
            ))

        # Stress tests
        if portfolio_value > 0 and -worst_pnl / portfolio_value > limits.max_stress_loss_pct:
            alerts.append(_alert(
                AlertCategory.STRESS_TEST, AlertSeverity.HIGH,
                f"Worst stress scenario loses ${-worst_pnl:,.0f} "
                f"({-worst_pnl / portfolio_value:.1%} of portfolio)",
                timestamp,
            ))

        # Market data fallbacks
        for symbol in unavailable_symbols:
            alerts.append(_alert(
                AlertCategory.MARKET_DATA, AlertSeverity.LOW,
                f"Market data unavailable for {symbol}; using default conditions",
                timestamp, symbol=symbol,
            ))

        return dedupe_alerts(alerts, self.dedup_window_seconds)

    # ------------------------------------------------------------------
    # New position validation
    # ------------------------------------------------------------------

    def validate_new_position(
        self,
        strategy: OptionsStrategy,
        current_positions: Sequence[PositionLike],
        account_info: AccountInfo,
        market_conditions: Mapping[str, MarketConditions],
        as_of: Optional[datetime] = None,
    ) -> PositionValidation:
        """
        Check whether adding ``strategy`` keeps the portfolio within limits.

        Hard limits (errors): position risk, concentration across several
        underlyings, margin utilization, buying power, portfolio delta.
        Soft limits (warnings): position risk near its limit, concentration
        warning level, margin warning level, unbounded loss.

        Never raises for a limit breach.

        Args:
            strategy: Candidate strategy
            current_positions: Open positions
            account_info: Account snapshot
            market_conditions: Conditions per underlying symbol
            as_of: Valuation time (default: now)

        Returns:
            PositionValidation with errors, warnings and projected metrics
        """
        now = as_of or datetime.now()
        limits = self.limits
        errors: List[str] = []
        warnings: List[str] = []
        portfolio_value = account_info.portfolio_value

        if portfolio_value <= 0:
            errors.append("Portfolio value must be positive to size a new position")
            self.logger.warning(f"Entry REJECTED: {errors[0]}")
            return PositionValidation(is_valid=False, errors=errors)

        # Position-level risk
        if strategy.has_unbounded_loss:
            # Covered calls carry no margin; the shares they write against are the risk
            risk_amount = max(strategy.margin, strategy.collateral)
            warnings.append(
                "Strategy has unlimited loss potential; margin or collateral used as the risk estimate"
            )
        else:
            risk_amount = strategy.max_loss
        position_risk_pct = risk_amount / portfolio_value

        if position_risk_pct > limits.max_single_position_risk:
            errors.append(
                f"Position risk {position_risk_pct:.2%} exceeds limit "
                f"{limits.max_single_position_risk:.2%}"
            )
        elif position_risk_pct > limits.max_single_position_risk * limits.position_risk_warning_ratio:
            warnings.append(
                f"Position risk {position_risk_pct:.2%} is close to limit "
                f"{limits.max_single_position_risk:.2%}"
            )

        # Concentration after adding
        projected_positions = list(current_positions) + [strategy]
        legs_by_symbol = _legs_by_symbol(projected_positions)
        concentration = self.calculate_concentration(legs_by_symbol)
        symbol = strategy.underlying
        concentration_pct = next(
            (e.percentage / 100 for e in concentration.top_concentrations if e.underlying == symbol),
            0.0,
        )
        if len(legs_by_symbol) > 1:
            if concentration_pct > limits.max_concentration:
                errors.append(
                    f"{symbol} concentration {concentration_pct:.1%} would exceed limit "
                    f"{limits.max_concentration:.0%}"
                )
            elif concentration_pct > limits.concentration_warning:
                warnings.append(f"{symbol} concentration would be {concentration_pct:.1%}")
        else:
            warnings.append(f"All options exposure would be in {symbol}")

        # Margin impact
        market_by_symbol = {
            s: self.market_for(s, legs, market_conditions) for s, legs in legs_by_symbol.items()
        }
        current_legs = _legs_by_symbol(current_positions)
        current_margin = self.calculate_margin(
            current_legs, {s: market_by_symbol[s] for s in current_legs}, account_info
        )
        margin_impact = strategy.margin
        buying_power = account_info.buying_power
        projected_used = current_margin.total_margin_used + margin_impact
        if buying_power > 0:
            projected_utilization = projected_used / buying_power
        else:
            projected_utilization = 1.0 if projected_used > 0 else 0.0

        if margin_impact > buying_power:
            errors.append(
                f"Insufficient buying power. Required: ${margin_impact:,.2f}, "
                f"Available: ${buying_power:,.2f}"
            )
        if projected_utilization > limits.max_margin_utilization:
            errors.append(
                f"Margin utilization would be {projected_utilization:.1%} "
                f"(limit {limits.max_margin_utilization:.0%})"
            )
        elif projected_utilization > limits.margin_warning:
            warnings.append(f"Margin utilization would be {projected_utilization:.1%}")

        # Portfolio delta after adding
        projected_delta = 0.0
        for s, legs in legs_by_symbol.items():
            mc = market_by_symbol[s]
            projected_delta += calculate_legs_greeks(
                legs, mc.underlying_price, mc.implied_volatility,
                mc.risk_free_rate, mc.dividend_yield, now,
            ).delta
        if abs(projected_delta) > limits.max_portfolio_delta:
            errors.append(
                f"Portfolio delta would be {projected_delta:.2f} "
                f"(limit ±{limits.max_portfolio_delta})"
            )

        validation = PositionValidation(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            position_risk_pct=position_risk_pct,
            concentration_pct=concentration_pct,
            margin_impact=margin_impact,
            projected_margin_utilization=projected_utilization,
            projected_delta=projected_delta,
        )

        if errors:
            self.logger.warning(f"Entry REJECTED for {strategy.name}: {'; '.join(errors)}")
        else:
            self.logger.info(f"✓ Entry allowed for {strategy.name} ({len(warnings)} warnings)")
        return validation
