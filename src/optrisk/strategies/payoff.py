"""
Strategy Payoff Calculators

One calculator per StrategyKind, dispatched through PAYOFF_CALCULATORS.
Each calculator checks the leg shape it expects and returns the static payoff
attributes of the strategy held to expiration.

Conventions:
- premium is in dollars per share, scaled by quantity × contract multiplier
- max_loss is a positive magnitude; math.inf marks an unbounded side
- breakevens are returned sorted ascending
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from optrisk.models.contracts import ContractType, PositionSide, StrategyLeg
from optrisk.strategies.margin import MarginModel
from optrisk.strategies.models import InvalidStrategyError, StrategyKind


@dataclass(slots=True, frozen=True)
class PayoffSummary:
    """Static payoff attributes computed for one strategy."""

    max_profit: float
    max_loss: float
    breakeven: Tuple[float, ...]
    collateral: float
    margin: float


PayoffCalculator = Callable[[Sequence[StrategyLeg], float, MarginModel], PayoffSummary]


def _summary(
    max_profit: float,
    max_loss: float,
    breakeven: List[float],
    collateral: float,
    margin: float,
) -> PayoffSummary:
    return PayoffSummary(
        max_profit=max_profit,
        max_loss=max_loss,
        breakeven=tuple(sorted(breakeven)),
        collateral=collateral,
        margin=max(margin, 0.0),
    )


def _require_leg_count(legs: Sequence[StrategyLeg], count: int, kind: StrategyKind) -> None:
    if len(legs) != count:
        raise InvalidStrategyError(
            f"{kind.value} requires {count} leg(s), got {len(legs)}", kind=kind
        )


def _require(condition: bool, message: str, kind: StrategyKind) -> None:
    if not condition:
        raise InvalidStrategyError(message, kind=kind)


def _units(leg: StrategyLeg) -> float:
    """Shares controlled by a leg (quantity × multiplier)."""
    return leg.quantity * leg.contract.multiplier


def _single_leg(legs: Sequence[StrategyLeg], underlying_price: float, margin_model: MarginModel) -> PayoffSummary:
    kind = StrategyKind.SINGLE_LEG
    _require_leg_count(legs, 1, kind)
    leg = legs[0]
    strike = leg.contract.strike
    premium = leg.price * _units(leg)
    margin = margin_model.requirement(legs, underlying_price)
    is_call = leg.contract.contract_type is ContractType.CALL

    if leg.side is PositionSide.LONG:
        if is_call:
            return _summary(math.inf, premium, [strike + leg.price], 0.0, margin)
        return _summary((strike - leg.price) * _units(leg), premium, [strike - leg.price], 0.0, margin)

    if is_call:
        return _summary(premium, math.inf, [strike + leg.price], 0.0, margin)
    return _summary(
        premium,
        (strike - leg.price) * _units(leg),
        [strike - leg.price],
        strike * _units(leg),
        margin,
    )


def _covered_call(legs: Sequence[StrategyLeg], underlying_price: float, margin_model: MarginModel) -> PayoffSummary:
    kind = StrategyKind.COVERED_CALL
    _require_leg_count(legs, 1, kind)
    leg = legs[0]
    _require(
        leg.side is PositionSide.SHORT and leg.contract.contract_type is ContractType.CALL,
        "covered_call requires one short call",
        kind,
    )
    shares = _units(leg)
    strike = leg.contract.strike

    # Breakeven reported as strike + premium (long-call formula)
    return _summary(
        max_profit=strike * shares + leg.price * shares,
        max_loss=math.inf,
        breakeven=[strike + leg.price],
        collateral=shares * strike,
        margin=0.0,
    )


def _cash_secured_put(legs: Sequence[StrategyLeg], underlying_price: float, margin_model: MarginModel) -> PayoffSummary:
    kind = StrategyKind.CASH_SECURED_PUT
    _require_leg_count(legs, 1, kind)
    leg = legs[0]
    _require(
        leg.side is PositionSide.SHORT and leg.contract.contract_type is ContractType.PUT,
        "cash_secured_put requires one short put",
        kind,
    )
    units = _units(leg)
    strike = leg.contract.strike
    collateral = strike * units

    return _summary(
        max_profit=leg.price * units,
        max_loss=(strike - leg.price) * units,
        breakeven=[strike - leg.price],
        collateral=collateral,
        margin=collateral,
    )


def _protective_put(legs: Sequence[StrategyLeg], underlying_price: float, margin_model: MarginModel) -> PayoffSummary:
    kind = StrategyKind.PROTECTIVE_PUT
    _require_leg_count(legs, 1, kind)
    leg = legs[0]
    _require(
        leg.side is PositionSide.LONG and leg.contract.contract_type is ContractType.PUT,
        "protective_put requires one long put",
        kind,
    )
    shares = _units(leg)
    stock_price = underlying_price

    return _summary(
        max_profit=math.inf,
        max_loss=max((stock_price - leg.contract.strike + leg.price) * shares, 0.0),
        breakeven=[stock_price + leg.price],
        collateral=0.0,
        margin=leg.price * shares,
    )


def _split_call_put(legs: Sequence[StrategyLeg], kind: StrategyKind) -> Tuple[StrategyLeg, StrategyLeg]:
    _require_leg_count(legs, 2, kind)
    calls = [leg for leg in legs if leg.contract.contract_type is ContractType.CALL]
    puts = [leg for leg in legs if leg.contract.contract_type is ContractType.PUT]
    _require(len(calls) == 1 and len(puts) == 1, f"{kind.value} requires one call and one put", kind)
    call, put = calls[0], puts[0]
    _require(
        call.side is PositionSide.LONG and put.side is PositionSide.LONG,
        f"{kind.value} requires long legs",
        kind,
    )
    _require(call.quantity == put.quantity, f"{kind.value} legs must have equal quantity", kind)
    return call, put


def _straddle(legs: Sequence[StrategyLeg], underlying_price: float, margin_model: MarginModel) -> PayoffSummary:
    kind = StrategyKind.STRADDLE
    call, put = _split_call_put(legs, kind)
    _require(call.contract.strike == put.contract.strike, "straddle legs must share a strike", kind)

    total = call.price + put.price
    total_premium = total * _units(call)
    strike = call.contract.strike

    return _summary(
        max_profit=math.inf,
        max_loss=total_premium,
        breakeven=[strike - total, strike + total],
        collateral=0.0,
        margin=total_premium,
    )


def _strangle(legs: Sequence[StrategyLeg], underlying_price: float, margin_model: MarginModel) -> PayoffSummary:
    kind = StrategyKind.STRANGLE
    call, put = _split_call_put(legs, kind)
    _require(
        put.contract.strike < call.contract.strike,
        "strangle put strike must be below call strike",
        kind,
    )

    total = call.price + put.price
    total_premium = total * _units(call)

    return _summary(
        max_profit=math.inf,
        max_loss=total_premium,
        breakeven=[put.contract.strike - total, call.contract.strike + total],
        collateral=0.0,
        margin=total_premium,
    )


def _pick(legs: Sequence[StrategyLeg], contract_type: ContractType, side: PositionSide) -> List[StrategyLeg]:
    return [
        leg for leg in legs
        if leg.contract.contract_type is contract_type and leg.side is side
    ]


def _iron_condor(legs: Sequence[StrategyLeg], underlying_price: float, margin_model: MarginModel) -> PayoffSummary:
    kind = StrategyKind.IRON_CONDOR
    _require_leg_count(legs, 4, kind)
    roles = [
        _pick(legs, ContractType.PUT, PositionSide.SHORT),
        _pick(legs, ContractType.PUT, PositionSide.LONG),
        _pick(legs, ContractType.CALL, PositionSide.SHORT),
        _pick(legs, ContractType.CALL, PositionSide.LONG),
    ]
    _require(
        all(len(role) == 1 for role in roles),
        "iron_condor requires short put, long put, short call and long call",
        kind,
    )
    put_sell, put_buy, call_sell, call_buy = (role[0] for role in roles)

    _require(
        put_buy.contract.strike < put_sell.contract.strike
        <= call_sell.contract.strike < call_buy.contract.strike,
        "iron_condor strikes must satisfy put_buy < put_sell <= call_sell < call_buy",
        kind,
    )
    _require(
        len({leg.quantity for leg in legs}) == 1,
        "iron_condor legs must have equal quantity",
        kind,
    )

    units = _units(put_sell)
    net_credit = (put_sell.price - put_buy.price + call_sell.price - call_buy.price) * units
    put_width = put_sell.contract.strike - put_buy.contract.strike
    call_width = call_buy.contract.strike - call_sell.contract.strike
    max_loss = max(put_width, call_width) * units - net_credit

    return _summary(
        max_profit=net_credit,
        max_loss=max_loss,
        breakeven=[
            put_sell.contract.strike - net_credit / units,
            call_sell.contract.strike + net_credit / units,
        ],
        collateral=max(put_width, call_width) * units,
        margin=max_loss,
    )


def _butterfly(legs: Sequence[StrategyLeg], underlying_price: float, margin_model: MarginModel) -> PayoffSummary:
    kind = StrategyKind.BUTTERFLY
    _require_leg_count(legs, 3, kind)
    _require(
        len({leg.contract.contract_type for leg in legs}) == 1,
        "butterfly legs must share a contract type",
        kind,
    )
    lower, middle, upper = sorted(legs, key=lambda leg: leg.contract.strike)
    _require(
        lower.contract.strike < middle.contract.strike < upper.contract.strike,
        "butterfly requires three distinct strikes",
        kind,
    )
    _require(
        lower.side is PositionSide.LONG
        and middle.side is PositionSide.SHORT
        and upper.side is PositionSide.LONG,
        "butterfly requires long-short-long legs",
        kind,
    )
    _require(
        lower.quantity == upper.quantity and math.isclose(middle.quantity, 2 * lower.quantity),
        "butterfly middle leg must be twice the wing quantity",
        kind,
    )

    units = _units(lower)
    net_debit = (lower.price - 2 * middle.price + upper.price) * units
    max_profit = (middle.contract.strike - lower.contract.strike) * units - net_debit

    return _summary(
        max_profit=max_profit,
        max_loss=net_debit,
        breakeven=[
            lower.contract.strike + net_debit / units,
            upper.contract.strike - net_debit / units,
        ],
        collateral=0.0,
        margin=net_debit,
    )


PAYOFF_CALCULATORS: Dict[StrategyKind, PayoffCalculator] = {
    StrategyKind.SINGLE_LEG: _single_leg,
    StrategyKind.COVERED_CALL: _covered_call,
    StrategyKind.CASH_SECURED_PUT: _cash_secured_put,
    StrategyKind.PROTECTIVE_PUT: _protective_put,
    StrategyKind.STRADDLE: _straddle,
    StrategyKind.STRANGLE: _strangle,
    StrategyKind.IRON_CONDOR: _iron_condor,
    StrategyKind.BUTTERFLY: _butterfly,
}
