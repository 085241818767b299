"""
Collaborator Interfaces

The monitor consumes account and market data through these async protocols.
Implementations live outside the engine (broker adapters, quote services);
payloads are validated by the Pydantic models in optrisk.models.broker.
"""

from typing import List, Protocol

from optrisk.models.broker import AccountInfo, MarketData, OptionsPosition


class MarketDataUnavailableError(RuntimeError):
    """
    Raised by a market data provider when a quote cannot be obtained.

    Attributes:
        symbol: Symbol that could not be quoted
    """

    def __init__(self, symbol: str, reason: str = "no data"):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Market data unavailable for {symbol}: {reason}")


class AccountProvider(Protocol):
    """Account / position source."""

    async def get_account_info(self) -> AccountInfo:
        ...

    async def get_options_positions(self) -> List[OptionsPosition]:
        ...


class MarketDataProvider(Protocol):
    """Quote and volatility source."""

    async def get_market_data(self, symbol: str) -> MarketData:
        """
        Latest quote for ``symbol``.

        Raises:
            MarketDataUnavailableError: If no quote is available
        """
        ...

    async def get_implied_volatility(self, symbol: str) -> float | None:
        """Implied volatility for ``symbol`` if known, else None."""
        ...
