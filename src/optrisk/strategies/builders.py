"""
Strategy Builders for Options Trading

Composes legs into named strategy archetypes and attaches their static
payoff attributes (max profit/loss, breakevens, collateral, margin).

Key patterns:
- One entry point (build_strategy) dispatching on StrategyKind through the
  PAYOFF_CALCULATORS lookup table
- Named constructors per archetype that assemble the legs
- Pluggable MarginModel (FlatNotionalMarginModel by default)
- InvalidStrategyError for malformed input (empty legs, side/action mismatch)

Usage:
    >>> from datetime import date
    >>> from optrisk.strategies import create_iron_condor
    >>> ic = create_iron_condor(
    ...     "SPY", put_sell_strike=95, put_buy_strike=90,
    ...     call_sell_strike=105, call_buy_strike=110,
    ...     expiration=date(2026, 12, 18),
    ...     put_sell_price=2.0, put_buy_price=1.0,
    ...     call_sell_price=2.0, call_buy_price=1.0,
    ... )
    >>> ic.max_profit, ic.max_loss
    (200.0, 300.0)
"""

from datetime import date
from statistics import mean
from typing import Optional, Sequence

from loguru import logger

from optrisk.models.contracts import (
    DEFAULT_MULTIPLIER,
    ContractType,
    OptionContract,
    PositionSide,
    StrategyLeg,
    long_leg,
    short_leg,
)
from optrisk.models.market import MarketConditions
from optrisk.strategies.margin import FlatNotionalMarginModel, MarginModel
from optrisk.strategies.models import (
    STRATEGY_DESCRIPTIONS,
    InvalidStrategyError,
    OptionsStrategy,
    StrategyKind,
)
from optrisk.strategies.payoff import PAYOFF_CALCULATORS

_DEFAULT_MARGIN_MODEL = FlatNotionalMarginModel()

_KIND_NAMES = {
    StrategyKind.SINGLE_LEG: "Single Leg",
    StrategyKind.COVERED_CALL: "Covered Call",
    StrategyKind.CASH_SECURED_PUT: "Cash-Secured Put",
    StrategyKind.PROTECTIVE_PUT: "Protective Put",
    StrategyKind.STRADDLE: "Long Straddle",
    StrategyKind.STRANGLE: "Long Strangle",
    StrategyKind.IRON_CONDOR: "Iron Condor",
    StrategyKind.BUTTERFLY: "Butterfly Spread",
}


def _check_legs(kind: StrategyKind, legs: Sequence[StrategyLeg]) -> None:
    if not legs:
        raise InvalidStrategyError("Strategy must have at least one leg", kind=kind)

    for index, leg in enumerate(legs):
        if not leg.is_consistent:
            raise InvalidStrategyError(
                f"Leg {index} side {leg.side.value} does not match action "
                f"{leg.action.value} (expected {leg.action.expected_side.value})",
                kind=kind,
            )

    underlyings = {leg.contract.underlying for leg in legs}
    if len(underlyings) > 1:
        raise InvalidStrategyError(
            f"All legs must share one underlying, got {sorted(underlyings)}", kind=kind
        )


def build_strategy(
    kind: StrategyKind,
    legs: Sequence[StrategyLeg],
    market_conditions: Optional[MarketConditions] = None,
    underlying_price: Optional[float] = None,
    margin_model: Optional[MarginModel] = None,
    name: Optional[str] = None,
) -> OptionsStrategy:
    """
    Build a strategy of ``kind`` from ``legs``.

    Args:
        kind: Strategy archetype
        legs: Ordered strategy legs
        market_conditions: Current market conditions (supplies the price)
        underlying_price: Explicit underlying price (wins over market_conditions)
        margin_model: Margin model (default: FlatNotionalMarginModel)
        name: Display name (default: "<UNDERLYING> <Kind>")

    Returns:
        OptionsStrategy with static payoff attributes

    Raises:
        InvalidStrategyError: If legs are empty, inconsistent, or do not fit ``kind``
    """
    kind = StrategyKind(kind)
    _check_legs(kind, legs)

    if underlying_price is None and market_conditions is not None:
        underlying_price = market_conditions.underlying_price
    if underlying_price is None:
        if kind is StrategyKind.PROTECTIVE_PUT:
            raise InvalidStrategyError(
                "protective_put requires the underlying (stock) price", kind=kind
            )
        underlying_price = mean(leg.contract.strike for leg in legs)
        logger.debug(f"No underlying price for {kind.value}, using mean strike {underlying_price:.2f}")

    payoff = PAYOFF_CALCULATORS[kind](legs, underlying_price, margin_model or _DEFAULT_MARGIN_MODEL)
    underlying = legs[0].contract.underlying

    strategy = OptionsStrategy(
        name=name or f"{underlying} {_KIND_NAMES[kind]}",
        kind=kind,
        legs=tuple(legs),
        max_profit=payoff.max_profit,
        max_loss=payoff.max_loss,
        breakeven=payoff.breakeven,
        collateral=payoff.collateral,
        margin=payoff.margin,
        description=STRATEGY_DESCRIPTIONS[kind],
    )

    logger.debug(f"Built {strategy!r}")
    return strategy


def _contract(
    underlying: str,
    strike: float,
    expiration: date,
    contract_type: ContractType,
) -> OptionContract:
    return OptionContract(
        underlying=underlying.upper(),
        strike=strike,
        expiration=expiration,
        contract_type=contract_type,
    )


def create_single_leg(
    underlying: str,
    strike: float,
    expiration: date,
    contract_type: ContractType,
    side: PositionSide,
    premium: float,
    quantity: float = 1,
    underlying_price: Optional[float] = None,
    margin_model: Optional[MarginModel] = None,
) -> OptionsStrategy:
    """Long or short call/put."""
    contract = _contract(underlying, strike, expiration, contract_type)
    make_leg = long_leg if side is PositionSide.LONG else short_leg
    return build_strategy(
        StrategyKind.SINGLE_LEG,
        [make_leg(contract, quantity, premium)],
        underlying_price=underlying_price,
        margin_model=margin_model,
        name=f"{underlying.upper()} {side.value.title()} {contract_type.value.title()}",
    )


def create_covered_call(
    underlying: str,
    stock_price: float,
    strike: float,
    expiration: date,
    premium: float,
    shares: int = 100,
) -> OptionsStrategy:
    """
    Covered call: short one call per 100 shares owned.

    Args:
        underlying: Underlying symbol
        stock_price: Current stock price
        strike: Call strike
        expiration: Expiration date
        premium: Call premium per share
        shares: Shares owned (default: 100)
    """
    contract = _contract(underlying, strike, expiration, ContractType.CALL)
    leg = short_leg(contract, shares / DEFAULT_MULTIPLIER, premium)
    return build_strategy(StrategyKind.COVERED_CALL, [leg], underlying_price=stock_price)


def create_cash_secured_put(
    underlying: str,
    strike: float,
    expiration: date,
    premium: float,
    quantity: float = 1,
    underlying_price: Optional[float] = None,
) -> OptionsStrategy:
    """Short put backed by cash equal to the strike notional."""
    contract = _contract(underlying, strike, expiration, ContractType.PUT)
    return build_strategy(
        StrategyKind.CASH_SECURED_PUT,
        [short_leg(contract, quantity, premium)],
        underlying_price=underlying_price,
    )


def create_protective_put(
    underlying: str,
    stock_price: float,
    strike: float,
    expiration: date,
    premium: float,
    shares: int = 100,
) -> OptionsStrategy:
    """Long put over owned shares."""
    contract = _contract(underlying, strike, expiration, ContractType.PUT)
    leg = long_leg(contract, shares / DEFAULT_MULTIPLIER, premium)
    return build_strategy(StrategyKind.PROTECTIVE_PUT, [leg], underlying_price=stock_price)


def create_long_straddle(
    underlying: str,
    strike: float,
    expiration: date,
    call_price: float,
    put_price: float,
    quantity: float = 1,
    underlying_price: Optional[float] = None,
) -> OptionsStrategy:
    """Long call + long put at the same strike."""
    legs = [
        long_leg(_contract(underlying, strike, expiration, ContractType.CALL), quantity, call_price),
        long_leg(_contract(underlying, strike, expiration, ContractType.PUT), quantity, put_price),
    ]
    return build_strategy(StrategyKind.STRADDLE, legs, underlying_price=underlying_price)


def create_long_strangle(
    underlying: str,
    call_strike: float,
    put_strike: float,
    expiration: date,
    call_price: float,
    put_price: float,
    quantity: float = 1,
    underlying_price: Optional[float] = None,
) -> OptionsStrategy:
    """Long OTM call + long OTM put at different strikes."""
    legs = [
        long_leg(_contract(underlying, call_strike, expiration, ContractType.CALL), quantity, call_price),
        long_leg(_contract(underlying, put_strike, expiration, ContractType.PUT), quantity, put_price),
    ]
    return build_strategy(StrategyKind.STRANGLE, legs, underlying_price=underlying_price)


def create_iron_condor(
    underlying: str,
    put_sell_strike: float,
    put_buy_strike: float,
    call_sell_strike: float,
    call_buy_strike: float,
    expiration: date,
    put_sell_price: float,
    put_buy_price: float,
    call_sell_price: float,
    call_buy_price: float,
    quantity: float = 1,
    underlying_price: Optional[float] = None,
) -> OptionsStrategy:
    """
    Iron condor: short put spread + short call spread.

    Legs are ordered put sell, put buy, call sell, call buy.
    """
    legs = [
        short_leg(_contract(underlying, put_sell_strike, expiration, ContractType.PUT), quantity, put_sell_price),
        long_leg(_contract(underlying, put_buy_strike, expiration, ContractType.PUT), quantity, put_buy_price),
        short_leg(_contract(underlying, call_sell_strike, expiration, ContractType.CALL), quantity, call_sell_price),
        long_leg(_contract(underlying, call_buy_strike, expiration, ContractType.CALL), quantity, call_buy_price),
    ]
    return build_strategy(StrategyKind.IRON_CONDOR, legs, underlying_price=underlying_price)


def create_butterfly_spread(
    underlying: str,
    lower_strike: float,
    middle_strike: float,
    upper_strike: float,
    expiration: date,
    lower_price: float,
    middle_price: float,
    upper_price: float,
    contract_type: ContractType = ContractType.CALL,
    quantity: float = 1,
    underlying_price: Optional[float] = None,
) -> OptionsStrategy:
    """Long-short(x2)-long butterfly of calls or puts."""
    legs = [
        long_leg(_contract(underlying, lower_strike, expiration, contract_type), quantity, lower_price),
        short_leg(_contract(underlying, middle_strike, expiration, contract_type), quantity * 2, middle_price),
        long_leg(_contract(underlying, upper_strike, expiration, contract_type), quantity, upper_price),
    ]
    return build_strategy(StrategyKind.BUTTERFLY, legs, underlying_price=underlying_price)
