"""
Alert Manager with Deduplication and Subscribers

This module provides the AlertManager class for raising, deduplicating and
querying risk alerts, and for notifying subscribers.

Key patterns:
- In-memory store pruned by a retention window
- Deduplication per (symbol, category) within a 5-minute window
- Subscribers notified once per newly stored alert; a failing subscriber is
  logged and never breaks the caller
- Injectable clock for deterministic tests

Alert lifecycle:
1. Assessor / monitor → AlertManager.raise_alert()
2. Duplicate within the window → dropped
3. New alert stored, subscribers notified
4. Alert can be acknowledged or dismissed
5. Alert expires after the retention window
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from optrisk.alerts.models import AlertCategory, AlertStatus, RiskAlert

AlertCallback = Callable[[RiskAlert], None]
Clock = Callable[[], datetime]


def dedupe_alerts(alerts: Iterable[RiskAlert], window_seconds: float = 300.0) -> List[RiskAlert]:
    """
    Drop alerts whose (symbol, category) was already seen within the window.

    Args:
        alerts: Alerts in the order they were raised
        window_seconds: Deduplication window

    Returns:
        Alerts with duplicates removed (first occurrence kept)
    """
    window = timedelta(seconds=window_seconds)
    last_seen: Dict[Tuple[Optional[str], AlertCategory], datetime] = {}
    result = []
    for alert in alerts:
        seen_at = last_seen.get(alert.dedup_key)
        if seen_at is not None and abs(alert.timestamp - seen_at) < window:
            continue
        last_seen[alert.dedup_key] = alert.timestamp
        result.append(alert)
    return result


class AlertManager:
    """
    Manage alert storage, deduplication and subscriber notification.

    **Deduplication:**
    - Key: (symbol, category); symbol None means portfolio-wide
    - An alert is dropped when an alert with the same key was stored less
      than ``dedup_window_seconds`` earlier
    - A dropped duplicate does not extend the window

    **Retention:**
    - Alerts older than ``retention_seconds`` are pruned on access

    Example:
        ```python
        manager = AlertManager()
        unsubscribe = manager.subscribe(lambda alert: print(alert.message))

        manager.raise_alert(RiskAlert(
            alert_type=AlertType.RISK,
            category=AlertCategory.CONCENTRATION,
            severity=AlertSeverity.MEDIUM,
            message="AAPL is 45% of exposure",
            symbol="AAPL",
        ))

        unsubscribe()
        ```
    """

    def __init__(
        self,
        dedup_window_seconds: float = 300.0,
        retention_seconds: float = 3600.0,
        clock: Clock = datetime.now,
    ):
        """
        Initialize alert manager.

        Args:
            dedup_window_seconds: Deduplication window (default: 5 minutes)
            retention_seconds: How long alerts stay queryable (default: 1 hour)
            clock: Source of the current time
        """
        self.dedup_window = timedelta(seconds=dedup_window_seconds)
        self.retention = timedelta(seconds=retention_seconds)
        self._clock = clock
        self._alerts: List[RiskAlert] = []
        self._subscribers: List[AlertCallback] = []
        self.logger = logger.bind(component="AlertManager")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: AlertCallback) -> Callable[[], None]:
        """
        Register a listener for newly raised alerts.

        Args:
            callback: Called once per new (non-duplicate) alert

        Returns:
            Function that removes the listener (safe to call twice)
        """
        self._subscribers.append(callback)
        self.logger.debug(f"Subscriber added ({self.subscriber_count} total)")

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
                self.logger.debug(f"Subscriber removed ({self.subscriber_count} total)")

        return unsubscribe

    def _is_duplicate(self, alert: RiskAlert) -> bool:
        for existing in reversed(self._alerts):
            if existing.dedup_key != alert.dedup_key:
                continue
            if abs(alert.timestamp - existing.timestamp) < self.dedup_window:
                return True
        return False

    def _prune(self, now: datetime) -> None:
        cutoff = now - self.retention
        self._alerts = [a for a in self._alerts if a.timestamp >= cutoff]

    def raise_alert(self, alert: RiskAlert) -> bool:
        """
        Store ``alert`` and notify subscribers unless it is a duplicate.

        Args:
            alert: Alert to raise

        Returns:
            True if stored, False if dropped as a duplicate
        """
        self._prune(self._clock())

        if self._is_duplicate(alert):
            self.logger.debug(f"Suppressed duplicate alert: {alert!r}")
            return False

        self._alerts.append(alert)
        self.logger.info(
            f"✓ Raised alert: {alert.alert_id[:8]}... "
            f"({alert.category.value}, {alert.severity.value}) {alert.message}"
        )

        for callback in list(self._subscribers):
            try:
                callback(alert)
            except Exception as e:
                self.logger.error(f"Alert subscriber failed: {e}")

        return True

    def raise_alerts(self, alerts: Iterable[RiskAlert]) -> List[RiskAlert]:
        """Raise several alerts; returns the ones actually stored."""
        return [alert for alert in alerts if self.raise_alert(alert)]

    def get_active_alerts(self, now: Optional[datetime] = None) -> List[RiskAlert]:
        """
        Non-dismissed alerts within the retention window, newest first.
        """
        self._prune(now or self._clock())
        active = [a for a in self._alerts if a.status is not AlertStatus.DISMISSED]
        return sorted(active, key=lambda a: a.timestamp, reverse=True)

    def _find(self, alert_id: str) -> RiskAlert:
        alert = next((a for a in self._alerts if a.alert_id == alert_id), None)
        if alert is None:
            raise ValueError(f"Alert not found: {alert_id}")
        return alert

    def acknowledge_alert(self, alert_id: str) -> RiskAlert:
        """
        Mark an alert as seen.

        Raises:
            ValueError: If alert not found
        """
        alert = self._find(alert_id)
        alert.status = AlertStatus.ACKNOWLEDGED
        self.logger.info(f"✓ Acknowledged alert: {alert_id[:8]}...")
        return alert

    def dismiss_alert(self, alert_id: str) -> RiskAlert:
        """
        Hide an alert from get_active_alerts (it still blocks duplicates).

        Raises:
            ValueError: If alert not found
        """
        alert = self._find(alert_id)
        alert.status = AlertStatus.DISMISSED
        self.logger.info(f"✓ Dismissed alert: {alert_id[:8]}...")
        return alert

    def clear(self) -> None:
        self._alerts.clear()
