"""
Alert Data Models

Risk alerts raised by the portfolio risk assessor and monitor. Alerts are
transient: kept in memory for a retention window, never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4


class AlertType(str, Enum):
    """Alert type enum."""

    RISK = "risk"
    ERROR = "error"


class AlertSeverity(str, Enum):
    """Alert severity enum."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AlertCategory(str, Enum):
    """
    Metric or subsystem an alert refers to.

    Deduplication is keyed on (symbol, category).
    """

    RISK_SCORE = "risk_score"
    CONCENTRATION = "concentration"
    MARGIN = "margin"
    DELTA = "delta"
    VAR = "var"
    STRESS_TEST = "stress_test"
    MARKET_DATA = "market_data"
    MONITORING = "monitoring"


class AlertStatus(str, Enum):
    """Alert lifecycle status."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    DISMISSED = "dismissed"


def generate_alert_id() -> str:
    return str(uuid4())


@dataclass(slots=True)
class RiskAlert:
    """
    Risk alert.

    Attributes:
        alert_type: RISK or ERROR
        category: Metric the alert refers to
        severity: LOW, MEDIUM or HIGH
        message: Human-readable description
        timestamp: When the alert was raised
        symbol: Underlying symbol (None for portfolio-wide alerts)
        alert_id: Unique identifier
        status: Lifecycle status
    """

    alert_type: AlertType
    category: AlertCategory
    severity: AlertSeverity
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    symbol: Optional[str] = None
    alert_id: str = field(default_factory=generate_alert_id)
    status: AlertStatus = AlertStatus.ACTIVE

    @property
    def dedup_key(self) -> tuple[Optional[str], AlertCategory]:
        return (self.symbol, self.category)

    def __repr__(self) -> str:
        scope = self.symbol or "PORTFOLIO"
        return (
            f"RiskAlert({self.severity.value.upper()} {self.category.value} "
            f"{scope}: {self.message})"
        )
