"""
Strategy Validation

Checks a strategy against the account before it is proposed. Failures are
returned as structured errors/warnings; nothing here raises for a business
rule violation.
"""

from datetime import datetime
from typing import List

from loguru import logger

from optrisk.models.broker import AccountInfo
from optrisk.models.contracts import ContractType, PositionSide, days_to_expiration
from optrisk.models.market import MarketConditions, MarketTrend
from optrisk.strategies.models import OptionsStrategy, StrategyKind, StrategyValidation

SHORT_EXPIRY_WARNING_DAYS = 7
EARLY_ASSIGNMENT_DAYS = 30
MIN_OPTION_VOLUME = 10
MAX_SIMPLE_LEGS = 4
HIGH_VOL_RANK = 80
LOW_VOL_RANK = 20


def validate_strategy(
    strategy: OptionsStrategy,
    account_info: AccountInfo,
    as_of: datetime | None = None,
) -> StrategyValidation:
    """
    Validate a strategy against account capital and expiration dates.

    Errors:
    - margin exceeds buying power
    - collateral exceeds cash
    - any leg already expired

    Warnings:
    - expiration within 7 days
    - unbounded max loss

    Args:
        strategy: Strategy to validate
        account_info: Current account snapshot
        as_of: Valuation time (default: now)

    Returns:
        StrategyValidation (is_valid is False when errors is non-empty)
    """
    as_of = as_of or datetime.now()
    errors: List[str] = []
    warnings: List[str] = []

    if strategy.margin > account_info.buying_power:
        errors.append(
            f"Insufficient buying power. Required: ${strategy.margin:,.2f}, "
            f"Available: ${account_info.buying_power:,.2f}"
        )

    if strategy.collateral > account_info.cash:
        errors.append(
            f"Insufficient cash for collateral. Required: ${strategy.collateral:,.2f}, "
            f"Available: ${account_info.cash:,.2f}"
        )

    for leg in strategy.legs:
        if leg.contract.expires_at <= as_of:
            errors.append(f"Option {leg.contract.option_symbol} has expired")
            continue

        days = days_to_expiration(leg.contract.expiration, as_of)
        if days <= SHORT_EXPIRY_WARNING_DAYS:
            warnings.append(
                f"Option {leg.contract.option_symbol} expires in {days} days. "
                f"Consider time decay risk."
            )

    if strategy.has_unbounded_loss:
        warnings.append("Strategy has unlimited loss potential. Use appropriate position sizing.")

    validation = StrategyValidation(is_valid=not errors, errors=errors, warnings=warnings)
    if errors:
        logger.debug(f"Strategy {strategy.name} failed validation: {errors}")
    return validation


def assess_risk_level(strategy: OptionsStrategy) -> str:
    """
    Classify a strategy as low / medium / high risk.

    Unbounded loss is high; otherwise the max loss / max profit ratio decides
    (> 3 high, > 1 medium).
    """
    if strategy.has_unbounded_loss:
        return "high"
    if strategy.max_profit == 0:
        return "high" if strategy.max_loss > 0 else "low"

    ratio = abs(strategy.max_loss / strategy.max_profit)
    if ratio > 3:
        return "high"
    if ratio > 1:
        return "medium"
    return "low"


def _market_recommendations(strategy: OptionsStrategy, market_conditions: MarketConditions) -> List[str]:
    recommendations = []
    if market_conditions.trend is MarketTrend.BULLISH and strategy.kind is StrategyKind.CASH_SECURED_PUT:
        recommendations.append("Bullish market conditions favor cash-secured puts.")
    if market_conditions.trend is MarketTrend.BEARISH and strategy.kind is StrategyKind.COVERED_CALL:
        recommendations.append("Bearish conditions may result in stock assignment for covered calls.")
    return recommendations


def validate_multi_leg_strategy(
    strategy: OptionsStrategy,
    account_info: AccountInfo,
    market_conditions: MarketConditions,
    as_of: datetime | None = None,
) -> StrategyValidation:
    """
    validate_strategy plus multi-leg and market-condition checks.

    Adds warnings for complex strategies (> 4 legs), in-the-money short calls
    close to expiration (early assignment), thin option volume, and volatility
    regimes that work against straddles or iron condors. Also attaches a risk
    level and market recommendations.
    """
    as_of = as_of or datetime.now()
    result = validate_strategy(strategy, account_info, as_of=as_of)

    if len(strategy.legs) > MAX_SIMPLE_LEGS:
        result.warnings.append(
            f"Complex strategy with more than {MAX_SIMPLE_LEGS} legs. Ensure proper risk management."
        )

    for leg in strategy.legs:
        contract = leg.contract
        if leg.side is PositionSide.SHORT and contract.contract_type is ContractType.CALL:
            days = days_to_expiration(contract.expiration, as_of)
            if days < EARLY_ASSIGNMENT_DAYS and market_conditions.underlying_price > contract.strike:
                result.warnings.append(
                    f"Short call {contract.option_symbol} is ITM with < {EARLY_ASSIGNMENT_DAYS} "
                    f"days to expiration. Early assignment risk."
                )

    for leg in strategy.legs:
        volume = market_conditions.option_volumes.get(leg.contract.option_symbol)
        if volume is not None and volume < MIN_OPTION_VOLUME:
            result.warnings.append(
                f"Low liquidity for {leg.contract.option_symbol}. May have difficulty closing position."
            )

    vol_rank = market_conditions.volatility_rank
    if vol_rank is not None:
        if vol_rank > HIGH_VOL_RANK and strategy.kind is StrategyKind.STRADDLE:
            result.warnings.append("High volatility environment. Long straddle may be expensive.")
        if vol_rank < LOW_VOL_RANK and strategy.kind is StrategyKind.IRON_CONDOR:
            result.warnings.append(
                "Low volatility environment. Iron condor may have limited profit potential."
            )

    result.risk_level = assess_risk_level(strategy)
    result.recommendations = _market_recommendations(strategy, market_conditions)
    return result

