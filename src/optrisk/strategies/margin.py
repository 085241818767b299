"""
Margin Models

The strategy builder and the risk assessor only depend on the MarginModel
protocol, so a broker-accurate margin engine can replace the flat estimate
without touching either.
"""

from dataclasses import dataclass
from typing import Protocol, Sequence

from optrisk.config.engine_config import MarginConfig
from optrisk.models.contracts import ContractType, PositionSide, StrategyLeg


class MarginModel(Protocol):
    """
    Margin model protocol.

    All margin models must implement this protocol.
    """

    def requirement(self, legs: Sequence[StrategyLeg], underlying_price: float) -> float:
        """
        Margin required to carry ``legs``.

        Args:
            legs: Strategy legs
            underlying_price: Current underlying price

        Returns:
            Margin requirement in dollars (>= 0)
        """
        ...


@dataclass(slots=True)
class FlatNotionalMarginModel:
    """
    Flat notional margin estimate.

    - Short put: strike notional (cash-secured)
    - Short call: ``naked_call_rate`` of underlying notional
    - Long legs: no margin

    The result is never less than the net debit paid for the legs.
    """

    naked_call_rate: float = 0.20

    @classmethod
    def from_config(cls, config: MarginConfig) -> "FlatNotionalMarginModel":
        """Create the model from the `margin` config section."""
        return cls(naked_call_rate=config.naked_call_rate)

    def requirement(self, legs: Sequence[StrategyLeg], underlying_price: float) -> float:
        short_requirement = 0.0
        for leg in legs:
            if leg.side is not PositionSide.SHORT:
                continue
            notional_shares = leg.quantity * leg.contract.multiplier
            if leg.contract.contract_type is ContractType.PUT:
                short_requirement += leg.contract.strike * notional_shares
            else:
                short_requirement += self.naked_call_rate * underlying_price * notional_shares

        net_debit = sum(leg.side.sign * leg.premium for leg in legs)
        return max(short_requirement, net_debit, 0.0)
