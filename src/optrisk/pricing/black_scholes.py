"""
Black-Scholes Pricing Engine

Closed-form European option pricing with a continuous dividend yield,
per-contract Greeks and Newton-Raphson implied volatility.

Key patterns:
- scipy.stats.norm for N(x) and φ(x)
- Raw-year functions (black_scholes_price / black_scholes_greeks) wrapped by
  contract-level functions that derive T from the expiration date
- At T <= 0 the price is intrinsic value and every Greek is exactly zero

Conventions:
- theta is per calendar day (annual / 365)
- vega and rho are per 1 point (÷ 100)

Usage:
    >>> from optrisk.pricing import black_scholes_price
    >>> black_scholes_price(100, 100, 0.25, 0.20, 0.05, 0.0, ContractType.CALL)
    4.6150...
"""

import math
from datetime import datetime, timedelta

from loguru import logger
from scipy.stats import norm

from optrisk.models.contracts import ContractType, OptionContract, time_to_expiration
from optrisk.pricing.models import ZERO_GREEKS, GreeksCalculation

DAYS_PER_YEAR = 365
IV_INITIAL_GUESS = 0.20
IV_FLOOR = 0.001
IV_CAP = 5.0
VEGA_EPSILON = 1e-8


def _intrinsic(S: float, K: float, contract_type: ContractType) -> float:
    if contract_type is ContractType.CALL:
        return max(S - K, 0.0)
    return max(K - S, 0.0)


def _d1_d2(S: float, K: float, T: float, sigma: float, r: float, q: float) -> tuple[float, float]:
    sqrt_t = math.sqrt(T)
    d1 = (math.log(S / K) + (r - q + 0.5 * sigma ** 2) * T) / (sigma * sqrt_t)
    return d1, d1 - sigma * sqrt_t


def black_scholes_price(
    S: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    q: float,
    contract_type: ContractType,
) -> float:
    """
    Black-Scholes price of a European option.

    Args:
        S: Underlying price
        K: Strike price
        T: Time to expiration in years
        sigma: Annualized volatility
        r: Risk-free rate
        q: Continuous dividend yield
        contract_type: CALL or PUT

    Returns:
        Option price per share (intrinsic value when T <= 0)
    """
    if T <= 0:
        return _intrinsic(S, K, contract_type)
    if sigma <= 0:
        # Zero volatility: discounted forward intrinsic
        forward = S * math.exp(-q * T) - K * math.exp(-r * T)
        return max(forward, 0.0) if contract_type is ContractType.CALL else max(-forward, 0.0)

    d1, d2 = _d1_d2(S, K, T, sigma, r, q)
    if contract_type is ContractType.CALL:
        return S * math.exp(-q * T) * norm.cdf(d1) - K * math.exp(-r * T) * norm.cdf(d2)
    return K * math.exp(-r * T) * norm.cdf(-d2) - S * math.exp(-q * T) * norm.cdf(-d1)


def black_scholes_greeks(
    S: float,
    K: float,
    T: float,
    sigma: float,
    r: float,
    q: float,
    contract_type: ContractType,
) -> GreeksCalculation:
    """
    Black-Scholes Greeks of a European option.

    Returns:
        GreeksCalculation (all zero when T <= 0 or sigma <= 0)
    """
    if T <= 0 or sigma <= 0:
        return ZERO_GREEKS

    d1, d2 = _d1_d2(S, K, T, sigma, r, q)
    sqrt_t = math.sqrt(T)
    div_discount = math.exp(-q * T)
    rate_discount = math.exp(-r * T)
    pdf_d1 = norm.pdf(d1)

    gamma = div_discount * pdf_d1 / (S * sigma * sqrt_t)
    vega = S * div_discount * pdf_d1 * sqrt_t / 100
    time_decay = -(S * pdf_d1 * sigma * div_discount) / (2 * sqrt_t)

    if contract_type is ContractType.CALL:
        delta = div_discount * norm.cdf(d1)
        theta = (
            time_decay
            - r * K * rate_discount * norm.cdf(d2)
            + q * S * div_discount * norm.cdf(d1)
        ) / DAYS_PER_YEAR
        rho = K * T * rate_discount * norm.cdf(d2) / 100
    else:
        delta = -div_discount * norm.cdf(-d1)
        theta = (
            time_decay
            + r * K * rate_discount * norm.cdf(-d2)
            - q * S * div_discount * norm.cdf(-d1)
        ) / DAYS_PER_YEAR
        rho = -K * T * rate_discount * norm.cdf(-d2) / 100

    return GreeksCalculation(
        delta=float(delta),
        gamma=float(gamma),
        theta=float(theta),
        vega=float(vega),
        rho=float(rho),
    )


def calculate_option_price(
    contract: OptionContract,
    underlying_price: float,
    volatility: float,
    risk_free_rate: float,
    dividend_yield: float = 0.0,
    as_of: datetime | None = None,
) -> float:
    """Black-Scholes price per share of ``contract``."""
    T = time_to_expiration(contract.expiration, as_of)
    return float(
        black_scholes_price(
            underlying_price, contract.strike, T, volatility,
            risk_free_rate, dividend_yield, contract.contract_type,
        )
    )


def calculate_option_greeks(
    contract: OptionContract,
    underlying_price: float,
    volatility: float,
    risk_free_rate: float,
    dividend_yield: float = 0.0,
    as_of: datetime | None = None,
) -> GreeksCalculation:
    """Greeks of one ``contract`` (per share, unsigned)."""
    T = time_to_expiration(contract.expiration, as_of)
    return black_scholes_greeks(
        underlying_price, contract.strike, T, volatility,
        risk_free_rate, dividend_yield, contract.contract_type,
    )


def calculate_implied_volatility(
    contract: OptionContract,
    underlying_price: float,
    market_price: float,
    risk_free_rate: float,
    dividend_yield: float = 0.0,
    as_of: datetime | None = None,
    max_iterations: int = 100,
    tolerance: float = 1e-4,
) -> float:
    """
    Invert Black-Scholes for volatility with Newton-Raphson.

    Starts at 20% and steps by price difference / vega. Stops early once the
    model price is within ``tolerance`` of ``market_price`` or vega vanishes,
    in which case the current estimate is returned. Volatility stays inside
    [0.1%, 500%]; a Newton step leaving the bracket of volatilities already
    priced above and below the market is replaced by a bisection step.

    Args:
        contract: Option contract
        underlying_price: Underlying price
        market_price: Observed option price per share
        risk_free_rate: Risk-free rate
        dividend_yield: Continuous dividend yield
        as_of: Valuation time (default: now)
        max_iterations: Newton iteration cap
        tolerance: Absolute price tolerance

    Returns:
        Implied volatility (0.0 for an expired contract)
    """
    T = time_to_expiration(contract.expiration, as_of)
    if T <= 0:
        return 0.0

    S, K = underlying_price, contract.strike
    volatility = IV_INITIAL_GUESS
    # Price is increasing in volatility, so [low, high] keeps bracketing the root
    low, high = IV_FLOOR, IV_CAP

    for iteration in range(max_iterations):
        price = black_scholes_price(S, K, T, volatility, risk_free_rate, dividend_yield, contract.contract_type)
        price_diff = price - market_price

        if abs(price_diff) < tolerance:
            logger.debug(
                f"IV converged for {contract.option_symbol}: {volatility:.4f} "
                f"after {iteration} iterations"
            )
            return volatility

        if price_diff > 0:
            high = volatility
        else:
            low = volatility

        vega = black_scholes_greeks(
            S, K, T, volatility, risk_free_rate, dividend_yield, contract.contract_type
        ).vega * 100
        if vega < VEGA_EPSILON:
            logger.debug(f"IV solver hit zero vega for {contract.option_symbol}, returning {volatility:.4f}")
            break

        candidate = volatility - price_diff / vega
        if not low < candidate < high:
            # Newton step left the bracket (typical far from the money)
            candidate = (low + high) / 2
        volatility = candidate

    return volatility


def shift_expiration(contract: OptionContract, days: int) -> OptionContract:
    """Copy of ``contract`` expiring ``days`` later (negative = earlier)."""
    return contract.with_expiration(contract.expiration + timedelta(days=days))
