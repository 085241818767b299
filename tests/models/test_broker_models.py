"""
Tests for broker payload validation and market conditions.
"""

import pytest
from pydantic import ValidationError

from optrisk.config.engine_config import MarketDefaults
from optrisk.models.broker import AccountInfo, MarketData, OptionsPosition, PositionLegPayload
from optrisk.models.contracts import ContractType, LegAction, PositionSide
from optrisk.models.market import MarketConditions, MarketTrend, trend_from_change

from tests.fixtures.contract_fixtures import EXPIRY


class TestMarketData:
    """Test MarketData validation."""

    def test_symbol_upper_cased(self):
        """Test symbols are normalized to upper case."""
        data = MarketData(symbol="spy", price=450.0)
        assert data.symbol == "SPY"
        assert data.is_market_open

    def test_non_positive_price_rejected(self):
        """Test price must be positive."""
        with pytest.raises(ValidationError):
            MarketData(symbol="SPY", price=0)

    def test_negative_volume_rejected(self):
        """Test volume must be non-negative."""
        with pytest.raises(ValidationError):
            MarketData(symbol="SPY", price=450.0, volume=-1)

    def test_frozen(self):
        """Test quotes are immutable."""
        data = MarketData(symbol="SPY", price=450.0)
        with pytest.raises(ValidationError):
            data.price = 451.0


class TestAccountInfo:
    """Test AccountInfo validation."""

    def test_negative_buying_power_rejected(self):
        """Test buying power must be non-negative."""
        with pytest.raises(ValidationError):
            AccountInfo(buying_power=-1, cash=0, portfolio_value=1000)

    def test_options_market_value(self, account_info):
        """Test only option holdings count towards options market value."""
        assert account_info.options_market_value == pytest.approx(250.0)


class TestOptionsPosition:
    """Test OptionsPosition payloads."""

    def test_empty_legs_rejected(self):
        """Test a position needs at least one leg."""
        with pytest.raises(ValidationError):
            OptionsPosition(underlying="SPY", legs=[])

    def test_enum_coercion_and_to_legs(self):
        """Test string payload values become engine enums and legs."""
        payload = PositionLegPayload(
            underlying="aapl",
            strike=150,
            expiration=EXPIRY,
            contract_type="put",
            action="sell_to_open",
            side="short",
            quantity=2,
            price=2.5,
        )
        position = OptionsPosition(underlying="aapl", legs=[payload])

        [leg] = position.to_legs()
        assert position.underlying == "AAPL"
        assert leg.contract.underlying == "AAPL"
        assert leg.contract.contract_type is ContractType.PUT
        assert leg.action is LegAction.SELL_TO_OPEN
        assert leg.side is PositionSide.SHORT
        assert leg.quantity == 2
        assert leg.contract.multiplier == 100

    def test_fixture_positions(self, open_positions):
        """Test the shared fixture positions convert cleanly."""
        condor, short_put = open_positions
        assert len(condor.to_legs()) == 4
        assert short_put.to_legs()[0].contract.strike == 150


class TestMarketConditions:
    """Test MarketConditions and trend classification."""

    @pytest.mark.parametrize(
        "change,trend",
        [
            (2.5, MarketTrend.BULLISH),
            (-3.0, MarketTrend.BEARISH),
            (2.0, MarketTrend.NEUTRAL),
            (-2.0, MarketTrend.NEUTRAL),
            (0.0, MarketTrend.NEUTRAL),
        ],
    )
    def test_trend_from_change(self, change, trend):
        """Test daily change above ±2% sets the trend."""
        assert trend_from_change(change) is trend

    def test_defaults(self):
        """Test fallback conditions are flagged and use configured defaults."""
        mc = MarketConditions.defaults(150.0, MarketDefaults(implied_volatility=0.3))
        assert mc.is_default
        assert mc.underlying_price == 150.0
        assert mc.implied_volatility == 0.3
        assert mc.risk_free_rate == 0.05
        assert mc.trend is MarketTrend.NEUTRAL

    def test_non_positive_price_rejected(self):
        """Test the underlying price must be positive."""
        with pytest.raises(ValueError):
            MarketConditions(underlying_price=0, implied_volatility=0.2, risk_free_rate=0.05)

    def test_negative_volatility_rejected(self):
        """Test volatility must be non-negative."""
        with pytest.raises(ValueError):
            MarketConditions(underlying_price=100, implied_volatility=-0.1, risk_free_rate=0.05)
