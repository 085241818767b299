"""
Alerts Module

Risk alerts with (symbol, category) deduplication and subscriber callbacks.
"""

from optrisk.alerts.manager import AlertManager, dedupe_alerts
from optrisk.alerts.models import (
    AlertCategory,
    AlertSeverity,
    AlertStatus,
    AlertType,
    RiskAlert,
    generate_alert_id,
)

__all__ = [
    "AlertCategory",
    "AlertManager",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "RiskAlert",
    "dedupe_alerts",
    "generate_alert_id",
]
