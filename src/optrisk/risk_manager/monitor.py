"""
Portfolio Risk Monitor

Owns the monitoring schedule, the cached assessment and alert fan-out.
Gathers positions, account and market data from the async collaborators and
hands them to the PortfolioRiskAssessor.

Key patterns:
- Run-immediately-then-repeat periodic asyncio task
- Assessments serialized by an "assessment in flight" lock, so a manual
  refresh never interleaves with a scheduled tick
- stop_monitoring() cancels a sleeping schedule but drains a running tick
- Market data failures degrade to default MarketConditions; a failed tick
  becomes one high-severity monitoring alert and the schedule keeps running
- Injectable clock and sleep for deterministic tests

States: stopped → (start_monitoring) → running → (stop_monitoring) → stopped

Usage:
    >>> monitor = PortfolioRiskMonitor.from_config(load_and_validate_config(), account_provider, market_data_provider)
    >>> unsubscribe = monitor.subscribe_to_alerts(lambda a: print(a.message))
    >>> await monitor.start_monitoring(interval_minutes=1)
    >>> dashboard = await monitor.get_risk_dashboard_data()
    >>> await monitor.stop_monitoring()
"""

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from optrisk.alerts.manager import AlertCallback, AlertManager
from optrisk.alerts.models import AlertCategory, AlertSeverity, AlertType, RiskAlert
from optrisk.config.engine_config import EngineConfig, MarketDefaults, MonitoringConfig
from optrisk.models.broker import OptionsPosition
from optrisk.models.market import MarketConditions, trend_from_change
from optrisk.risk_manager.assessor import PortfolioRiskAssessor
from optrisk.risk_manager.models import (
    MonitoringStatus,
    PortfolioRiskAssessment,
    PositionValidation,
    RiskDashboardData,
)
from optrisk.risk_manager.providers import AccountProvider, MarketDataProvider
from optrisk.strategies.models import OptionsStrategy

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


class PortfolioRiskMonitor:
    """
    Continuous portfolio risk monitoring with alert subscribers.

    Attributes:
        assessor: PortfolioRiskAssessor doing the computation
        alert_manager: AlertManager storing and fanning out alerts
        config: MonitoringConfig (interval, cache TTL)
        assessment_count: Number of completed assessments
    """

    def __init__(
        self,
        account_provider: AccountProvider,
        market_data_provider: MarketDataProvider,
        assessor: Optional[PortfolioRiskAssessor] = None,
        alert_manager: Optional[AlertManager] = None,
        config: Optional[MonitoringConfig] = None,
        market_defaults: Optional[MarketDefaults] = None,
        clock: Clock = datetime.now,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize portfolio risk monitor.

        Args:
            account_provider: Source of account info and open positions
            market_data_provider: Source of quotes and implied volatility
            assessor: Risk assessor (default: PortfolioRiskAssessor())
            alert_manager: Alert store (default: AlertManager with config windows)
            config: Monitoring configuration
            market_defaults: Fallback volatility / rates
            clock: Source of the current time
            sleep: Coroutine used to wait between ticks
        """
        self.account_provider = account_provider
        self.market_data_provider = market_data_provider
        self.config = config or MonitoringConfig()
        self.market_defaults = market_defaults or MarketDefaults()
        self.assessor = assessor or PortfolioRiskAssessor(
            market_defaults=self.market_defaults,
            dedup_window_seconds=self.config.alert_dedup_window_seconds,
        )
        self.alert_manager = alert_manager or AlertManager(
            dedup_window_seconds=self.config.alert_dedup_window_seconds,
            retention_seconds=self.config.alert_retention_seconds,
            clock=clock,
        )
        self._clock = clock
        self._sleep = sleep

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._tick_running = False
        self._assessment_lock = asyncio.Lock()
        self._cached: Optional[PortfolioRiskAssessment] = None
        self._cached_at: Optional[datetime] = None
        self.interval_minutes: Optional[float] = None
        self.assessment_count = 0

        self.logger = logger.bind(component="PortfolioRiskMonitor")

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        account_provider: AccountProvider,
        market_data_provider: MarketDataProvider,
        clock: Clock = datetime.now,
        sleep: Sleep = asyncio.sleep,
    ) -> "PortfolioRiskMonitor":
        """
        Create a fully-wired monitor from a loaded EngineConfig.

        The assessor gets the risk limits, stress scenarios, market defaults
        and margin model from ``config``; the monitor itself uses the
        monitoring section.

        Example:
            >>> config = load_and_validate_config("config/optrisk.yaml")
            >>> monitor = PortfolioRiskMonitor.from_config(config, broker, market_data)
        """
        return cls(
            account_provider,
            market_data_provider,
            assessor=PortfolioRiskAssessor.from_config(config),
            config=config.monitoring,
            market_defaults=config.market_defaults,
            clock=clock,
            sleep=sleep,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start_monitoring(self, interval_minutes: Optional[float] = None) -> None:
        """
        Start monitoring: one immediate assessment, then one per interval.

        No-op (with a warning) when already running.

        Args:
            interval_minutes: Tick interval (default: config.interval_minutes)

        Raises:
            ValueError: If interval_minutes is not positive
        """
        if self._running:
            self.logger.warning("Risk monitoring already running, ignoring start request")
            return

        interval = interval_minutes if interval_minutes is not None else self.config.interval_minutes
        if interval <= 0:
            raise ValueError(f"interval_minutes must be positive, got {interval}")

        self._running = True
        self.interval_minutes = interval
        self.logger.info(f"Starting risk monitoring (interval={interval} min)")

        await self._run_tick()

        # stop_monitoring() may have been awaited during the first tick
        if self._running:
            self._task = asyncio.create_task(self._monitoring_loop(interval * 60))

    async def stop_monitoring(self) -> None:
        """
        Stop monitoring.

        A sleeping schedule is cancelled immediately; a tick that is already
        running is allowed to finish.
        """
        if not self._running:
            self.logger.debug("Risk monitoring not running")
            return

        self._running = False
        task, self._task = self._task, None

        if task is not None:
            if not self._tick_running:
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.logger.info("✓ Risk monitoring stopped")

    async def _monitoring_loop(self, interval_seconds: float) -> None:
        while self._running:
            try:
                await self._sleep(interval_seconds)
            except asyncio.CancelledError:
                self.logger.info("Monitoring loop cancelled")
                break

            if not self._running:
                break

            self._tick_running = True
            try:
                await self._run_tick()
            finally:
                self._tick_running = False

    async def _run_tick(self) -> None:
        """One assessment; failures become a single monitoring alert."""
        try:
            await self.perform_risk_assessment()
        except Exception as e:
            self.logger.error(f"Risk assessment tick failed: {e}")
            self.alert_manager.raise_alert(
                RiskAlert(
                    alert_type=AlertType.ERROR,
                    category=AlertCategory.MONITORING,
                    severity=AlertSeverity.HIGH,
                    message=f"Risk monitoring error: {e}",
                    timestamp=self._clock(),
                )
            )

    # ------------------------------------------------------------------
    # Data gathering
    # ------------------------------------------------------------------

    async def _fetch_positions(self) -> List[OptionsPosition]:
        try:
            return await self.account_provider.get_options_positions()
        except Exception as e:
            self.logger.warning(f"Could not fetch options positions, assuming none: {e}")
            return []

    async def _fetch_market_conditions(
        self,
        symbols: Sequence[str],
    ) -> Tuple[Dict[str, MarketConditions], List[str]]:
        """
        Market conditions per symbol.

        Returns:
            (conditions by symbol, symbols whose data was unavailable)
        """
        conditions: Dict[str, MarketConditions] = {}
        unavailable: List[str] = []

        for symbol in dict.fromkeys(symbols):
            try:
                market_data = await self.market_data_provider.get_market_data(symbol)
                iv = await self.market_data_provider.get_implied_volatility(symbol)
                conditions[symbol] = MarketConditions(
                    underlying_price=market_data.price,
                    implied_volatility=iv if iv else self.market_defaults.implied_volatility,
                    risk_free_rate=self.market_defaults.risk_free_rate,
                    dividend_yield=self.market_defaults.dividend_yield,
                    trend=trend_from_change(market_data.change_percent),
                )
            except Exception as e:
                self.logger.warning(f"Market data unavailable for {symbol}, using defaults: {e}")
                unavailable.append(symbol)

        return conditions, unavailable

    # ------------------------------------------------------------------
    # Assessment
    # ------------------------------------------------------------------

    async def perform_risk_assessment(self) -> PortfolioRiskAssessment:
        """
        Gather data, assess portfolio risk, cache the result and raise alerts.

        Serialized: a call made while another assessment is in flight waits
        for it and then computes a fresh one.

        Returns:
            New PortfolioRiskAssessment (also cached)
        """
        async with self._assessment_lock:
            positions = await self._fetch_positions()
            account_info = await self.account_provider.get_account_info()
            symbols = [p.underlying for p in positions]
            market, unavailable = await self._fetch_market_conditions(symbols)

            assessment = self.assessor.assess_portfolio_risk(
                positions,
                account_info,
                market,
                unavailable_symbols=unavailable,
                as_of=self._clock(),
            )

            self._cached = assessment
            self._cached_at = self._clock()
            self.assessment_count += 1

            raised = self.alert_manager.raise_alerts(assessment.alerts)

        self.logger.info(
            f"Risk assessment: score={assessment.risk_score:.1f} "
            f"({assessment.risk_level.value}), positions={assessment.position_count}, "
            f"delta={assessment.portfolio_greeks.delta:.2f}, new alerts={len(raised)}"
        )
        return assessment

    async def get_current_risk_metrics(self) -> PortfolioRiskAssessment:
        """Cached assessment if fresher than the cache TTL, else a new one."""
        if self._cached is not None and self._cached_at is not None:
            age = self._clock() - self._cached_at
            if age < timedelta(seconds=self.config.cache_ttl_seconds):
                return self._cached
        return await self.perform_risk_assessment()

    async def refresh_risk_data(self) -> PortfolioRiskAssessment:
        """Invalidate the cache and recompute."""
        self._cached = None
        self._cached_at = None
        return await self.perform_risk_assessment()

    async def validate_new_position(self, strategy: OptionsStrategy) -> PositionValidation:
        """
        Validate ``strategy`` against current positions and limits.

        Fetches positions, account and market data, then delegates to the
        assessor.
        """
        positions = await self._fetch_positions()
        account_info = await self.account_provider.get_account_info()
        symbols = [p.underlying for p in positions] + [strategy.underlying]
        market, _ = await self._fetch_market_conditions(symbols)

        return self.assessor.validate_new_position(
            strategy, positions, account_info, market, as_of=self._clock()
        )

    # ------------------------------------------------------------------
    # Alerts and dashboard
    # ------------------------------------------------------------------

    def subscribe_to_alerts(self, callback: AlertCallback) -> Callable[[], None]:
        """Register ``callback`` for new alerts; returns an unsubscribe function."""
        return self.alert_manager.subscribe(callback)

    def get_active_alerts(self) -> List[RiskAlert]:
        return self.alert_manager.get_active_alerts(self._clock())

    async def get_risk_dashboard_data(self) -> RiskDashboardData:
        """Dashboard snapshot built from the current (possibly cached) assessment."""
        assessment = await self.get_current_risk_metrics()
        return RiskDashboardData(
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level,
            portfolio_greeks=assessment.portfolio_greeks,
            risk_metrics=assessment.risk_metrics,
            alerts=self.get_active_alerts(),
            concentration_risk=assessment.concentration_risk,
            margin_analysis=assessment.margin_analysis,
            stress_test_results=assessment.stress_test_results,
            portfolio_value=assessment.portfolio_value,
            options_exposure_pct=assessment.options_exposure_pct,
            last_updated=assessment.timestamp,
        )

    def get_monitoring_status(self) -> MonitoringStatus:
        return MonitoringStatus(
            is_active=self._running,
            last_update=self._cached_at,
            subscriber_count=self.alert_manager.subscriber_count,
            risk_score=self._cached.risk_score if self._cached else None,
            alert_count=len(self.get_active_alerts()),
            interval_minutes=self.interval_minutes if self._running else None,
        )
