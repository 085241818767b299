"""
Tests for strategy builders and payoff calculators.

Covers every archetype's max profit / max loss / breakevens / collateral /
margin, plus malformed leg sets.
"""

import math
from dataclasses import replace

import pytest

from optrisk.models.contracts import (
    ContractType,
    LegAction,
    OptionContract,
    PositionSide,
    StrategyLeg,
    long_leg,
    short_leg,
)
from optrisk.models.market import MarketConditions
from optrisk.strategies.builders import (
    build_strategy,
    create_butterfly_spread,
    create_cash_secured_put,
    create_covered_call,
    create_iron_condor,
    create_long_strangle,
    create_protective_put,
    create_single_leg,
)
from optrisk.strategies.margin import FlatNotionalMarginModel
from optrisk.strategies.models import InvalidStrategyError, OptionsStrategy, StrategyKind

from tests.fixtures.contract_fixtures import EXPIRY


def put(strike, underlying="SPY"):
    return OptionContract(underlying, strike, EXPIRY, ContractType.PUT)


def call(strike, underlying="SPY"):
    return OptionContract(underlying, strike, EXPIRY, ContractType.CALL)


class TestSingleLeg:
    """Test single-leg strategies."""

    def test_long_call(self, sample_long_call):
        """Test long call: unbounded profit, premium at risk."""
        s = sample_long_call
        assert s.kind is StrategyKind.SINGLE_LEG
        assert math.isinf(s.max_profit)
        assert s.max_loss == pytest.approx(400.0)
        assert s.breakeven == (104.0,)
        assert s.margin == pytest.approx(400.0)
        assert s.name == "SPY Long Call"

    def test_short_call(self):
        """Test short call: unbounded loss, naked call margin."""
        s = create_single_leg(
            "SPY", 100.0, EXPIRY, ContractType.CALL, PositionSide.SHORT,
            premium=3.0, underlying_price=100.0,
        )
        assert s.max_profit == pytest.approx(300.0)
        assert s.has_unbounded_loss
        assert s.breakeven == (103.0,)
        assert s.margin == pytest.approx(2000.0)  # 20% × $100 × 100

    def test_short_put(self):
        """Test short put: loss bounded by strike minus premium."""
        s = create_single_leg(
            "SPY", 100.0, EXPIRY, ContractType.PUT, PositionSide.SHORT, premium=3.0,
        )
        assert s.max_profit == pytest.approx(300.0)
        assert s.max_loss == pytest.approx(9700.0)
        assert s.breakeven == (97.0,)
        assert s.collateral == pytest.approx(10000.0)

    def test_long_put(self):
        """Test long put: profit bounded by strike minus premium."""
        s = create_single_leg(
            "SPY", 100.0, EXPIRY, ContractType.PUT, PositionSide.LONG, premium=3.0,
        )
        assert s.max_profit == pytest.approx(9700.0)
        assert s.max_loss == pytest.approx(300.0)
        assert s.breakeven == (97.0,)

    def test_custom_margin_model(self):
        """Test the margin model is pluggable."""
        s = create_single_leg(
            "SPY", 100.0, EXPIRY, ContractType.CALL, PositionSide.SHORT,
            premium=3.0, underlying_price=100.0,
            margin_model=FlatNotionalMarginModel(naked_call_rate=0.5),
        )
        assert s.margin == pytest.approx(5000.0)


class TestIncomeStrategies:
    """Test covered call, cash-secured put and protective put."""

    def test_covered_call(self):
        """Test covered call attributes (breakeven reported as strike + premium)."""
        s = create_covered_call("AAPL", stock_price=150.0, strike=155.0, expiration=EXPIRY, premium=3.0)

        assert s.kind is StrategyKind.COVERED_CALL
        assert s.max_profit == pytest.approx(15800.0)
        assert math.isinf(s.max_loss)
        assert s.breakeven == (158.0,)
        assert s.collateral == pytest.approx(15500.0)
        assert s.margin == 0.0
        assert s.name == "AAPL Covered Call"

    def test_cash_secured_put(self):
        """Test cash-secured put collateral covers the strike notional."""
        s = create_cash_secured_put("XYZ", strike=50.0, expiration=EXPIRY, premium=2.0, quantity=2)

        assert s.max_profit == pytest.approx(400.0)
        assert s.max_loss == pytest.approx(9600.0)
        assert s.breakeven == (48.0,)
        assert s.collateral == pytest.approx(10000.0)
        assert s.margin == pytest.approx(10000.0)

    def test_protective_put(self):
        """Test protective put caps the loss below the stock price."""
        s = create_protective_put("XYZ", stock_price=100.0, strike=95.0, expiration=EXPIRY, premium=3.0)

        assert math.isinf(s.max_profit)
        assert s.max_loss == pytest.approx(800.0)
        assert s.breakeven == (103.0,)
        assert s.margin == pytest.approx(300.0)

    def test_protective_put_in_the_money_loss_clamped(self):
        """Test a deep ITM put never reports a negative max loss."""
        s = create_protective_put("XYZ", stock_price=80.0, strike=100.0, expiration=EXPIRY, premium=3.0)
        assert s.max_loss == 0.0

    def test_protective_put_requires_stock_price(self):
        """Test protective put cannot fall back to the mean strike."""
        with pytest.raises(InvalidStrategyError, match="stock"):
            build_strategy(StrategyKind.PROTECTIVE_PUT, [long_leg(put(95), 1, 3.0)])

    def test_covered_call_requires_short_call(self):
        """Test covered call rejects a long call leg."""
        with pytest.raises(InvalidStrategyError, match="short call"):
            build_strategy(StrategyKind.COVERED_CALL, [long_leg(call(155), 1, 3.0)], underlying_price=150)


class TestVolatilityStrategies:
    """Test straddles and strangles."""

    def test_long_straddle(self, sample_straddle):
        """Test straddle breakevens are strike ± total premium."""
        s = sample_straddle
        assert math.isinf(s.max_profit)
        assert s.max_loss == pytest.approx(950.0)
        assert s.breakeven == pytest.approx((90.5, 109.5))
        assert s.margin == pytest.approx(950.0)

    def test_long_strangle(self):
        """Test strangle breakevens use each leg's own strike."""
        s = create_long_strangle(
            "SPY", call_strike=105.0, put_strike=95.0, expiration=EXPIRY,
            call_price=3.0, put_price=2.5,
        )
        assert s.max_loss == pytest.approx(550.0)
        assert s.breakeven == pytest.approx((89.5, 110.5))

    def test_straddle_requires_same_strike(self):
        """Test a straddle with different strikes is rejected."""
        legs = [long_leg(call(105), 1, 3.0), long_leg(put(95), 1, 2.5)]
        with pytest.raises(InvalidStrategyError, match="share a strike"):
            build_strategy(StrategyKind.STRADDLE, legs)

    def test_strangle_requires_put_below_call(self):
        """Test strangle strikes must be ordered."""
        legs = [long_leg(call(95), 1, 3.0), long_leg(put(105), 1, 2.5)]
        with pytest.raises(InvalidStrategyError):
            build_strategy(StrategyKind.STRANGLE, legs)

    def test_straddle_accepts_kind_string(self):
        """Test kind may be passed by value."""
        legs = [long_leg(call(100), 1, 5.0), long_leg(put(100), 1, 4.5)]
        s = build_strategy("straddle", legs)
        assert s.kind is StrategyKind.STRADDLE


class TestSpreads:
    """Test iron condor and butterfly spreads."""

    def test_iron_condor(self, sample_iron_condor):
        """Test iron condor credit, max loss and breakevens."""
        s = sample_iron_condor
        assert s.kind is StrategyKind.IRON_CONDOR
        assert len(s.legs) == 4
        assert s.max_profit == pytest.approx(200.0)
        assert s.max_loss == pytest.approx(300.0)
        assert s.breakeven == pytest.approx((93.0, 107.0))
        assert s.collateral == pytest.approx(500.0)
        assert s.margin == pytest.approx(300.0)
        assert s.net_premium == pytest.approx(-200.0)

    def test_iron_condor_leg_order(self, sample_iron_condor):
        """Test legs are ordered put sell, put buy, call sell, call buy."""
        roles = [
            (leg.contract.contract_type, leg.side, leg.contract.strike)
            for leg in sample_iron_condor.legs
        ]
        assert roles == [
            (ContractType.PUT, PositionSide.SHORT, 95),
            (ContractType.PUT, PositionSide.LONG, 90),
            (ContractType.CALL, PositionSide.SHORT, 105),
            (ContractType.CALL, PositionSide.LONG, 110),
        ]

    def test_iron_condor_bad_strikes(self):
        """Test wings inside the short strikes are rejected."""
        with pytest.raises(InvalidStrategyError, match="strikes"):
            create_iron_condor(
                "SPY", put_sell_strike=95, put_buy_strike=96,
                call_sell_strike=105, call_buy_strike=110, expiration=EXPIRY,
                put_sell_price=2.0, put_buy_price=1.0, call_sell_price=2.0, call_buy_price=1.0,
            )

    def test_iron_condor_wrong_leg_count(self):
        """Test an iron condor needs four legs."""
        with pytest.raises(InvalidStrategyError, match="4 leg"):
            build_strategy(StrategyKind.IRON_CONDOR, [short_leg(put(95), 1, 2.0)])

    def test_butterfly(self):
        """Test butterfly debit, max profit and breakevens."""
        s = create_butterfly_spread(
            "SPY", lower_strike=90, middle_strike=100, upper_strike=110, expiration=EXPIRY,
            lower_price=12.0, middle_price=5.0, upper_price=1.0,
        )
        assert [leg.quantity for leg in s.legs] == [1, 2, 1]
        assert s.max_loss == pytest.approx(300.0)
        assert s.max_profit == pytest.approx(700.0)
        assert s.breakeven == pytest.approx((93.0, 107.0))

    def test_butterfly_requires_double_middle(self):
        """Test the body must be twice the wing quantity."""
        legs = [
            long_leg(call(90), 1, 12.0),
            short_leg(call(100), 1, 5.0),
            long_leg(call(110), 1, 1.0),
        ]
        with pytest.raises(InvalidStrategyError, match="twice"):
            build_strategy(StrategyKind.BUTTERFLY, legs)


class TestBuildStrategyErrors:
    """Test malformed leg sets."""

    def test_empty_legs(self):
        """Test a strategy needs at least one leg."""
        with pytest.raises(InvalidStrategyError, match="at least one leg") as exc_info:
            build_strategy(StrategyKind.SINGLE_LEG, [])
        assert exc_info.value.kind is StrategyKind.SINGLE_LEG

    def test_side_action_mismatch(self):
        """Test a leg whose side disagrees with its action is rejected."""
        leg = StrategyLeg(call(100), LegAction.BUY_TO_OPEN, PositionSide.SHORT, 1, 2.0)
        with pytest.raises(InvalidStrategyError, match="does not match action"):
            build_strategy(StrategyKind.SINGLE_LEG, [leg])

    def test_mixed_underlyings(self):
        """Test all legs must share one underlying."""
        legs = [long_leg(call(100), 1, 5.0), long_leg(put(100, underlying="QQQ"), 1, 4.5)]
        with pytest.raises(InvalidStrategyError, match="one underlying"):
            build_strategy(StrategyKind.STRADDLE, legs)

    def test_invalid_strategy_is_value_error(self):
        """Test callers can catch InvalidStrategyError as ValueError."""
        with pytest.raises(ValueError):
            build_strategy(StrategyKind.SINGLE_LEG, [])

    def test_market_conditions_supply_price(self):
        """Test the underlying price can come from market conditions."""
        mc = MarketConditions(underlying_price=120.0, implied_volatility=0.2, risk_free_rate=0.05)
        s = build_strategy(
            StrategyKind.SINGLE_LEG, [short_leg(call(100), 1, 3.0)], market_conditions=mc
        )
        assert s.margin == pytest.approx(0.2 * 120.0 * 100)


class TestOptionsStrategy:
    """Test OptionsStrategy invariants."""

    def test_unsorted_breakevens_rejected(self, sample_iron_condor):
        """Test breakevens must be sorted ascending."""
        with pytest.raises(ValueError, match="sorted"):
            replace(sample_iron_condor, breakeven=(107.0, 93.0))

    def test_negative_margin_rejected(self, sample_iron_condor):
        """Test margin must be non-negative."""
        with pytest.raises(ValueError, match="Margin"):
            replace(sample_iron_condor, margin=-1.0)

    def test_empty_legs_rejected(self):
        """Test a strategy value object needs legs."""
        with pytest.raises(InvalidStrategyError):
            OptionsStrategy(
                name="Empty", kind=StrategyKind.SINGLE_LEG, legs=(),
                max_profit=0.0, max_loss=0.0, breakeven=(), collateral=0.0, margin=0.0,
            )

    def test_expiration_is_nearest_leg(self, sample_iron_condor):
        """Test strategy expiration is the earliest leg expiration."""
        assert sample_iron_condor.expiration == EXPIRY
        assert sample_iron_condor.underlying == "SPY"
