"""
Data Models

Engine value objects (dataclasses) and broker boundary payloads (Pydantic).
"""

from optrisk.models.broker import (
    AccountInfo,
    AccountPosition,
    AssetClass,
    MarketData,
    OptionsPosition,
    PositionLegPayload,
)
from optrisk.models.contracts import (
    ContractType,
    LegAction,
    OptionContract,
    PositionSide,
    StrategyLeg,
    days_to_expiration,
    long_leg,
    short_leg,
    time_to_expiration,
)
from optrisk.models.market import MarketConditions, MarketTrend, trend_from_change

__all__ = [
    "AccountInfo",
    "AccountPosition",
    "AssetClass",
    "ContractType",
    "LegAction",
    "MarketConditions",
    "MarketData",
    "MarketTrend",
    "OptionContract",
    "OptionsPosition",
    "PositionLegPayload",
    "PositionSide",
    "StrategyLeg",
    "days_to_expiration",
    "long_leg",
    "short_leg",
    "time_to_expiration",
    "trend_from_change",
]
