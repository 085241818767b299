"""
Strategy Builder

Builds multi-leg options strategies with static payoff attributes, samples
their expiration P&L and validates them against an account.

Example:
    >>> from optrisk.strategies import create_long_straddle, calculate_pnl_profile, PriceRange
    >>> straddle = create_long_straddle("AAPL", 150, date(2026, 12, 18), 5.0, 4.5)
    >>> profile = calculate_pnl_profile(straddle, PriceRange(120, 180, 60))
"""

from optrisk.strategies.builders import (
    build_strategy,
    create_butterfly_spread,
    create_cash_secured_put,
    create_covered_call,
    create_iron_condor,
    create_long_straddle,
    create_long_strangle,
    create_protective_put,
    create_single_leg,
)
from optrisk.strategies.margin import FlatNotionalMarginModel, MarginModel
from optrisk.strategies.models import (
    InvalidStrategyError,
    OptionsStrategy,
    PnLPoint,
    PriceRange,
    StrategyKind,
    StrategyValidation,
)
from optrisk.strategies.payoff import PAYOFF_CALCULATORS, PayoffSummary
from optrisk.strategies.pnl import calculate_pnl_at_price, calculate_pnl_profile, default_price_range
from optrisk.strategies.validation import (
    assess_risk_level,
    validate_multi_leg_strategy,
    validate_strategy,
)

__all__ = [
    "FlatNotionalMarginModel",
    "InvalidStrategyError",
    "MarginModel",
    "OptionsStrategy",
    "PAYOFF_CALCULATORS",
    "PayoffSummary",
    "PnLPoint",
    "PriceRange",
    "StrategyKind",
    "StrategyValidation",
    "assess_risk_level",
    "build_strategy",
    "calculate_pnl_at_price",
    "calculate_pnl_profile",
    "create_butterfly_spread",
    "create_cash_secured_put",
    "create_covered_call",
    "create_iron_condor",
    "create_long_straddle",
    "create_long_strangle",
    "create_protective_put",
    "create_single_leg",
    "default_price_range",
    "validate_multi_leg_strategy",
    "validate_strategy",
]
