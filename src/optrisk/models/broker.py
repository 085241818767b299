"""
Pydantic Models for Broker / Market Data Validation

Payloads handed to the engine by the account and market data collaborators.
Pydantic is used here (instead of dataclasses) because this data comes from
outside the process and can be malformed. Validation happens once at the
boundary; the engine then works with the typed dataclasses in
models/contracts.py.

Key patterns:
- Field constraints: gt/ge for prices and quantities
- Custom validators: symbols upper-cased, legs non-empty
- to_legs(): conversion into engine value objects

Decision tree (from research):
    Does this data come from outside my process?
    ├─ Yes → Use Pydantic (validation critical) ← WE ARE HERE
    └─ No → Use dataclass (performance matters)
"""

from datetime import date, datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from optrisk.models.contracts import (
    DEFAULT_MULTIPLIER,
    ContractType,
    LegAction,
    OptionContract,
    PositionSide,
    StrategyLeg,
)


class AssetClass(str, Enum):
    """Asset class of an account position."""

    EQUITY = "equity"
    OPTION = "option"


class MarketData(BaseModel):
    """
    Quote snapshot for one underlying.

    Attributes:
        symbol: Underlying symbol
        price: Last price
        volume: Session volume
        change_percent: Daily change in percent (2.5 = +2.5%)
        timestamp: Quote time
        is_market_open: Whether the market was open at quote time
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1)
    price: float = Field(..., gt=0, description="Last price")
    volume: int = Field(default=0, ge=0)
    change_percent: float = Field(default=0.0)
    timestamp: datetime = Field(default_factory=datetime.now)
    is_market_open: bool = True

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.upper()


class AccountPosition(BaseModel):
    """Single holding reported by the account collaborator."""

    symbol: str = Field(..., min_length=1)
    quantity: float
    market_value: float
    asset_class: AssetClass = AssetClass.EQUITY


class AccountInfo(BaseModel):
    """
    Account snapshot.

    Attributes:
        buying_power: Capital available for new margin
        cash: Settled cash
        portfolio_value: Net liquidation value
        positions: Current holdings
    """

    buying_power: float = Field(..., ge=0)
    cash: float
    portfolio_value: float = Field(..., ge=0)
    positions: List[AccountPosition] = Field(default_factory=list)

    @property
    def options_market_value(self) -> float:
        return sum(
            abs(p.market_value) for p in self.positions if p.asset_class is AssetClass.OPTION
        )


class PositionLegPayload(BaseModel):
    """One leg of an open options position, as reported by the broker."""

    underlying: str = Field(..., min_length=1)
    strike: float = Field(..., gt=0)
    expiration: date
    contract_type: ContractType
    action: LegAction
    side: PositionSide
    quantity: float = Field(..., gt=0)
    price: float = Field(..., ge=0)
    multiplier: int = Field(default=DEFAULT_MULTIPLIER, gt=0)

    @field_validator("underlying")
    @classmethod
    def normalize_underlying(cls, v: str) -> str:
        return v.upper()

    def to_leg(self) -> StrategyLeg:
        contract = OptionContract(
            underlying=self.underlying,
            strike=self.strike,
            expiration=self.expiration,
            contract_type=self.contract_type,
            multiplier=self.multiplier,
        )
        return StrategyLeg(
            contract=contract,
            action=self.action,
            side=self.side,
            quantity=self.quantity,
            price=self.price,
        )


class OptionsPosition(BaseModel):
    """
    Open multi-leg options position.

    Attributes:
        underlying: Underlying symbol
        legs: Position legs (at least one)
        strategy_kind: Archetype tag if the broker/orchestrator knows it
    """

    underlying: str = Field(..., min_length=1)
    legs: List[PositionLegPayload] = Field(..., min_length=1)
    strategy_kind: str | None = None

    @field_validator("underlying")
    @classmethod
    def normalize_underlying(cls, v: str) -> str:
        return v.upper()

    def to_legs(self) -> List[StrategyLeg]:
        return [leg.to_leg() for leg in self.legs]
