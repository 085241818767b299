"""
Unit tests for contract and leg value objects.

Tests:
- OCC option symbols
- Time to expiration (years and whole days)
- OptionContract / StrategyLeg validation
- Leg action / side agreement and expiration P&L
"""

from datetime import date, datetime

import pytest

from optrisk.models.contracts import (
    SECONDS_PER_YEAR,
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

from tests.fixtures.contract_fixtures import AS_OF, EXPIRED, EXPIRY, NEAR_EXPIRY


class TestOptionContract:
    """Test OptionContract dataclass."""

    def test_option_symbol(self):
        """Test OCC-style symbol with 8-digit strike in thousandths."""
        contract = OptionContract("SPY", 450.0, date(2026, 3, 20), ContractType.CALL)
        assert contract.option_symbol == "SPY260320C00450000"

    def test_option_symbol_put_fractional_strike(self):
        """Test put symbol with a fractional strike."""
        contract = OptionContract("aapl", 152.5, date(2026, 1, 16), ContractType.PUT)
        assert contract.option_symbol == "AAPL260116P00152500"

    def test_default_multiplier(self, atm_call):
        """Test contracts default to 100 shares."""
        assert atm_call.multiplier == 100

    @pytest.mark.parametrize("strike", [0, -5])
    def test_non_positive_strike_rejected(self, strike):
        """Test strike must be positive."""
        with pytest.raises(ValueError, match="Strike must be positive"):
            OptionContract("SPY", strike, EXPIRY, ContractType.CALL)

    def test_empty_underlying_rejected(self):
        """Test underlying symbol is required."""
        with pytest.raises(ValueError, match="Underlying"):
            OptionContract("", 100.0, EXPIRY, ContractType.CALL)

    def test_intrinsic_value(self, atm_call, atm_put):
        """Test intrinsic value of calls and puts."""
        assert atm_call.intrinsic_value(110) == 10
        assert atm_call.intrinsic_value(90) == 0
        assert atm_put.intrinsic_value(90) == 10
        assert atm_put.intrinsic_value(110) == 0

    def test_expires_at_midnight(self, atm_call):
        """Test the expiry instant is midnight at the start of the expiration date."""
        assert atm_call.expires_at == datetime(2026, 3, 20, 0, 0)


class TestTimeToExpiration:
    """Test time_to_expiration and days_to_expiration."""

    def test_one_day(self):
        """Test one day before expiry is 1/365.25 years."""
        T = time_to_expiration(date(2026, 3, 20), datetime(2026, 3, 19))
        assert T == pytest.approx(86400 / SECONDS_PER_YEAR)
        assert T == pytest.approx(1 / 365.25)

    def test_expired_is_zero(self):
        """Test expired contracts have zero time left (never negative)."""
        assert time_to_expiration(EXPIRED, AS_OF) == 0.0

    def test_days_rounded_up(self):
        """Test partial days count as a full day."""
        assert days_to_expiration(EXPIRY, AS_OF) == 74
        assert days_to_expiration(NEAR_EXPIRY, AS_OF) == 4

    def test_days_expired_is_zero(self):
        """Test expired contracts have zero days left."""
        assert days_to_expiration(EXPIRED, AS_OF) == 0


class TestStrategyLeg:
    """Test StrategyLeg dataclass."""

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, atm_call, quantity):
        """Test quantity must be positive."""
        with pytest.raises(ValueError, match="Quantity must be positive"):
            StrategyLeg(atm_call, LegAction.BUY_TO_OPEN, PositionSide.LONG, quantity, 1.0)

    def test_negative_price_rejected(self, atm_call):
        """Test entry price must be non-negative."""
        with pytest.raises(ValueError, match="Price must be non-negative"):
            StrategyLeg(atm_call, LegAction.BUY_TO_OPEN, PositionSide.LONG, 1, -0.5)

    def test_inconsistent_leg_constructs(self, atm_call):
        """Test side/action mismatch is reported, not raised, by the leg itself."""
        leg = StrategyLeg(atm_call, LegAction.BUY_TO_OPEN, PositionSide.SHORT, 1, 2.0)
        assert not leg.is_consistent

    @pytest.mark.parametrize(
        "action,side",
        [
            (LegAction.BUY_TO_OPEN, PositionSide.LONG),
            (LegAction.SELL_TO_CLOSE, PositionSide.LONG),
            (LegAction.SELL_TO_OPEN, PositionSide.SHORT),
            (LegAction.BUY_TO_CLOSE, PositionSide.SHORT),
        ],
    )
    def test_expected_side(self, action, side):
        """Test the side implied by each leg action."""
        assert action.expected_side is side

    def test_long_and_short_helpers(self, atm_call):
        """Test long_leg / short_leg build consistent legs."""
        long = long_leg(atm_call, 2, 4.0)
        short = short_leg(atm_call, 2, 4.0)

        assert long.is_consistent and short.is_consistent
        assert long.signed_quantity == 2
        assert short.signed_quantity == -2
        assert long.premium == 800.0

    def test_pnl_at_expiration(self, atm_call):
        """Test expiration P&L of long and short legs mirror each other."""
        long = long_leg(atm_call, 1, 4.0)
        short = short_leg(atm_call, 1, 4.0)

        assert long.pnl_at(110) == pytest.approx(600.0)
        assert short.pnl_at(110) == pytest.approx(-600.0)
        assert long.pnl_at(90) == pytest.approx(-400.0)
