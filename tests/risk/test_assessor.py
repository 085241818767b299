"""
Tests for PortfolioRiskAssessor

Tests portfolio risk assessment and new position validation including:
- Concentration by underlying (leg notional)
- Margin utilization
- Stress scenarios
- Risk score and level
- Threshold alerts
- Market data fallbacks
- Position limits (risk, concentration, margin, delta)
"""

import pytest

from optrisk.alerts.models import AlertCategory, AlertSeverity
from optrisk.config.engine_config import RiskLimitsConfig
from optrisk.models.broker import AccountInfo
from optrisk.models.contracts import ContractType, PositionSide
from optrisk.risk_manager.assessor import PortfolioRiskAssessor
from optrisk.risk_manager.models import RiskLevel, risk_level_for
from optrisk.strategies.builders import create_covered_call, create_single_leg

from tests.fixtures.contract_fixtures import AS_OF, EXPIRY


@pytest.fixture
def assessor():
    """Assessor with default limits."""
    return PortfolioRiskAssessor(RiskLimitsConfig())


def msft_call(premium=2.0, strike=300.0, quantity=1, side=PositionSide.LONG):
    return create_single_leg(
        "MSFT", strike, EXPIRY, ContractType.CALL, side,
        premium=premium, quantity=quantity, underlying_price=300.0,
    )


def alerts_by(assessment, category):
    return [a for a in assessment.alerts if a.category is category]


class TestRiskScore:
    """Test score_risk and risk levels."""

    def test_zero(self, assessor):
        """Test no exposure scores zero."""
        assert assessor.score_risk(0.0, 0.0, 0.0) == 0.0

    def test_weighted_blend(self, assessor):
        """Test each component is its value relative to the limit, weighted."""
        # leverage 1.0/2.0, concentration 0.2/0.4, VaR 1%/2% → 50 each
        assert assessor.score_risk(1.0, 0.2, 0.01) == pytest.approx(50.0)

    def test_clamped(self, assessor):
        """Test components saturate so the score never exceeds 100."""
        assert assessor.score_risk(10.0, 1.0, 1.0) == pytest.approx(100.0)

    @pytest.mark.parametrize(
        "score,level",
        [(0, RiskLevel.LOW), (39.9, RiskLevel.LOW), (40, RiskLevel.MEDIUM),
         (60, RiskLevel.HIGH), (80, RiskLevel.CRITICAL), (100, RiskLevel.CRITICAL)],
    )
    def test_risk_levels(self, score, level):
        """Test score bands map to dashboard levels."""
        assert risk_level_for(score) is level


class TestAssessPortfolioRisk:
    """Test assess_portfolio_risk."""

    def test_concentration(self, assessor, open_positions, account_info, market_by_symbol):
        """Test concentration shares of leg notional (SPY 40k, AAPL 15k)."""
        assessment = assessor.assess_portfolio_risk(
            open_positions, account_info, market_by_symbol, as_of=AS_OF
        )
        concentration = assessment.concentration_risk

        assert [e.underlying for e in concentration.top_concentrations] == ["SPY", "AAPL"]
        assert concentration.top_concentrations[0].exposure == pytest.approx(40_000)
        assert concentration.top_concentrations[0].percentage == pytest.approx(40 / 55 * 100)
        assert concentration.max_concentration == pytest.approx(40 / 55)
        assert concentration.concentration_score == pytest.approx(((40 / 55) ** 2 + (15 / 55) ** 2) * 100)
        assert concentration.is_over_concentrated

    def test_metrics(self, assessor, open_positions, account_info, market_by_symbol):
        """Test leverage, margin, Greeks and stress results."""
        assessment = assessor.assess_portfolio_risk(
            open_positions, account_info, market_by_symbol, as_of=AS_OF
        )

        assert assessment.position_count == 2
        assert assessment.portfolio_value == 100_000
        assert assessment.risk_metrics.total_exposure == pytest.approx(55_000)
        assert assessment.risk_metrics.current_leverage == pytest.approx(0.55)

        # short 95 put 9,500 + short 105 call 20% × 100 × 100 + short 150 put 15,000
        assert assessment.margin_analysis.total_margin_used == pytest.approx(26_500)
        assert assessment.margin_analysis.margin_utilization == pytest.approx(0.53)
        assert not assessment.margin_analysis.is_over_margin

        assert set(assessment.greeks_by_symbol) == {"SPY", "AAPL"}
        assert assessment.portfolio_greeks.delta == pytest.approx(
            sum(g.delta for g in assessment.greeks_by_symbol.values())
        )
        assert assessment.risk_metrics.value_at_risk > 0

        scenarios = [r.scenario for r in assessment.stress_test_results]
        assert scenarios == [
            "Underlying -20%", "Underlying -10%", "Underlying +10%", "Underlying +20%", "Market crash",
        ]
        worst = min(r.portfolio_pnl for r in assessment.stress_test_results)
        assert assessment.risk_metrics.max_portfolio_loss == pytest.approx(-worst)
        assert assessment.options_exposure_pct > 0

    def test_score_and_alerts(self, assessor, open_positions, account_info, market_by_symbol):
        """Test a moderately concentrated book: medium score, concentration alerts only."""
        assessment = assessor.assess_portfolio_risk(
            open_positions, account_info, market_by_symbol, as_of=AS_OF
        )

        assert 40 <= assessment.risk_score < 60
        assert assessment.risk_level is RiskLevel.MEDIUM
        assert {a.category for a in assessment.alerts} == {AlertCategory.CONCENTRATION}

        severity = {a.symbol: a.severity for a in assessment.alerts}
        assert severity == {"SPY": AlertSeverity.HIGH, "AAPL": AlertSeverity.MEDIUM}

    def test_small_account_is_critical(self, assessor, open_positions, market_by_symbol):
        """Test the same book on a $1k account saturates the score."""
        account = AccountInfo(buying_power=50_000, cash=1_000, portfolio_value=1_000)
        assessment = assessor.assess_portfolio_risk(open_positions, account, market_by_symbol, as_of=AS_OF)

        assert assessment.risk_score >= 80
        assert assessment.risk_level is RiskLevel.CRITICAL
        [score_alert] = alerts_by(assessment, AlertCategory.RISK_SCORE)
        assert score_alert.severity is AlertSeverity.HIGH
        assert alerts_by(assessment, AlertCategory.VAR)
        assert alerts_by(assessment, AlertCategory.STRESS_TEST)

    def test_empty_portfolio(self, assessor, account_info):
        """Test no positions: zero score and no alerts."""
        assessment = assessor.assess_portfolio_risk([], account_info, {}, as_of=AS_OF)

        assert assessment.risk_score == 0.0
        assert assessment.risk_level is RiskLevel.LOW
        assert assessment.alerts == []
        assert assessment.position_count == 0
        assert assessment.portfolio_greeks.delta == 0.0
        assert assessment.risk_metrics.total_exposure == 0.0
        assert all(r.portfolio_pnl == 0.0 for r in assessment.stress_test_results)

    def test_single_underlying_not_escalated(self, assessor, open_positions, account_info, market_by_symbol):
        """Test 100% in one underlying is a warning, never a hard concentration alert."""
        assessment = assessor.assess_portfolio_risk(
            open_positions[:1], account_info, market_by_symbol, as_of=AS_OF
        )

        assert assessment.concentration_risk.max_concentration == pytest.approx(1.0)
        assert not assessment.concentration_risk.is_over_concentrated
        [alert] = alerts_by(assessment, AlertCategory.CONCENTRATION)
        assert alert.severity is AlertSeverity.MEDIUM

    def test_margin_alert(self, assessor, open_positions, market_by_symbol):
        """Test utilization above the limit raises a high margin alert."""
        account = AccountInfo(buying_power=20_000, cash=60_000, portfolio_value=100_000)
        assessment = assessor.assess_portfolio_risk(open_positions, account, market_by_symbol, as_of=AS_OF)

        assert assessment.margin_analysis.is_over_margin
        [alert] = alerts_by(assessment, AlertCategory.MARGIN)
        assert alert.severity is AlertSeverity.HIGH

    def test_delta_alert(self, assessor, account_info, market_by_symbol):
        """Test net delta above the limit raises a high delta alert."""
        deep_itm_calls = create_single_leg(
            "SPY", 80.0, EXPIRY, ContractType.CALL, PositionSide.LONG,
            premium=21.0, quantity=30, underlying_price=100.0,
        )
        assessment = assessor.assess_portfolio_risk(
            [deep_itm_calls], account_info, market_by_symbol, as_of=AS_OF
        )

        assert assessment.portfolio_greeks.delta > 25
        [alert] = alerts_by(assessment, AlertCategory.DELTA)
        assert alert.severity is AlertSeverity.HIGH

    def test_missing_market_data_uses_defaults(self, assessor, open_positions, account_info, spy_market):
        """Test an underlying without conditions is priced with defaults and flagged."""
        assessment = assessor.assess_portfolio_risk(
            open_positions, account_info, {"SPY": spy_market},
            unavailable_symbols=["AAPL"], as_of=AS_OF,
        )

        assert "AAPL" in assessment.greeks_by_symbol
        [alert] = alerts_by(assessment, AlertCategory.MARKET_DATA)
        assert alert.symbol == "AAPL"
        assert alert.severity is AlertSeverity.LOW

    def test_market_for_fallback(self, assessor, open_positions):
        """Test fallback conditions are priced at the mean strike."""
        legs = open_positions[0].to_legs()
        mc = assessor.market_for("SPY", legs, {})

        assert mc.is_default
        assert mc.underlying_price == pytest.approx(100.0)
        assert mc.implied_volatility == 0.25

    def test_accepts_engine_strategies(self, assessor, sample_iron_condor, account_info, market_by_symbol):
        """Test built strategies can be assessed alongside broker positions."""
        assessment = assessor.assess_portfolio_risk(
            [sample_iron_condor], account_info, market_by_symbol, as_of=AS_OF
        )
        assert assessment.risk_metrics.total_exposure == pytest.approx(40_000)


class TestValidateNewPosition:
    """Test validate_new_position."""

    def test_allowed_with_concentration_warning(self, assessor, open_positions, account_info, market_by_symbol):
        """Test a small MSFT call is allowed (MSFT ~35% of notional warns)."""
        result = assessor.validate_new_position(
            msft_call(), open_positions, account_info, market_by_symbol, as_of=AS_OF
        )

        assert result.is_valid, result.errors
        assert result.position_risk_pct == pytest.approx(0.002)
        assert result.concentration_pct == pytest.approx(30 / 85)
        assert result.margin_impact == pytest.approx(200.0)
        assert result.projected_margin_utilization == pytest.approx(26_700 / 50_000)
        assert any("MSFT concentration would be" in w for w in result.warnings)

    def test_position_risk_limit(self, assessor, open_positions, account_info, market_by_symbol):
        """Test max loss above 3% of the portfolio is rejected."""
        result = assessor.validate_new_position(
            msft_call(premium=40.0), open_positions, account_info, market_by_symbol, as_of=AS_OF
        )

        assert not result.is_valid
        assert any("Position risk 4.00% exceeds limit" in e for e in result.errors)

    def test_position_risk_warning(self, assessor, open_positions, account_info, market_by_symbol):
        """Test max loss close to the limit warns."""
        result = assessor.validate_new_position(
            msft_call(premium=27.0), open_positions, account_info, market_by_symbol, as_of=AS_OF
        )

        assert result.is_valid
        assert any("close to limit" in w for w in result.warnings)

    def test_concentration_limit(self, assessor, open_positions, sample_iron_condor, account_info, market_by_symbol):
        """Test another SPY condor would push SPY over the concentration limit."""
        result = assessor.validate_new_position(
            sample_iron_condor, open_positions, account_info, market_by_symbol, as_of=AS_OF
        )

        assert not result.is_valid
        assert any("SPY concentration" in e and "would exceed limit" in e for e in result.errors)

    def test_unbounded_loss_uses_margin(self, assessor, open_positions, account_info, market_by_symbol):
        """Test a naked call is sized by its margin and warned about."""
        naked = msft_call(premium=5.0, side=PositionSide.SHORT)
        result = assessor.validate_new_position(
            naked, open_positions, account_info, market_by_symbol, as_of=AS_OF
        )

        assert result.position_risk_pct == pytest.approx(0.06)
        assert any("unlimited" in w for w in result.warnings)
        assert not result.is_valid

    def test_covered_call_sized_by_collateral(self, assessor, open_positions, account_info, market_by_symbol):
        """Test a margin-free covered call is sized by the shares it writes against."""
        covered = create_covered_call("AAPL", stock_price=150.0, strike=155.0, expiration=EXPIRY, premium=3.0)
        assert covered.margin == 0.0

        result = assessor.validate_new_position(
            covered, open_positions, account_info, market_by_symbol, as_of=AS_OF
        )

        assert result.position_risk_pct == pytest.approx(0.155)
        assert any("Position risk 15.50% exceeds limit" in e for e in result.errors)
        assert not result.is_valid

    def test_insufficient_buying_power(self, assessor, market_by_symbol):
        """Test margin above buying power is rejected."""
        account = AccountInfo(buying_power=1_000, cash=10_000, portfolio_value=100_000)
        result = assessor.validate_new_position(
            msft_call(premium=20.0), [], account, market_by_symbol, as_of=AS_OF
        )

        assert any("Insufficient buying power" in e for e in result.errors)
        assert any("Margin utilization would be" in e for e in result.errors)

    def test_delta_limit(self, assessor, account_info, market_by_symbol):
        """Test projected delta above the limit is rejected."""
        many_calls = msft_call(premium=0.5, strike=200.0, quantity=30)
        result = assessor.validate_new_position(
            many_calls, [], account_info, market_by_symbol, as_of=AS_OF
        )

        assert result.projected_delta > 25
        assert any("Portfolio delta would be" in e for e in result.errors)

    def test_first_position(self, assessor, sample_iron_condor, account_info, market_by_symbol):
        """Test the first position only warns that exposure is in one underlying."""
        result = assessor.validate_new_position(
            sample_iron_condor, [], account_info, market_by_symbol, as_of=AS_OF
        )

        assert result.is_valid
        assert result.warnings == ["All options exposure would be in SPY"]
        assert result.concentration_pct == pytest.approx(1.0)

    def test_zero_portfolio_value(self, assessor, sample_iron_condor, market_by_symbol):
        """Test a position cannot be sized against an empty account."""
        account = AccountInfo(buying_power=0, cash=0, portfolio_value=0)
        result = assessor.validate_new_position(
            sample_iron_condor, [], account, market_by_symbol, as_of=AS_OF
        )

        assert not result.is_valid
        assert len(result.errors) == 1
