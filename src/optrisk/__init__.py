"""
optrisk: options analytics and portfolio risk engine.

Sub-packages:
- models: contract, leg, market and broker boundary types
- strategies: strategy builder, payoff, P&L profile and validation
- pricing: Black-Scholes pricing, Greeks, implied volatility, risk metrics
- alerts: risk alerts with deduplication and subscribers
- risk_manager: portfolio risk assessor and monitoring loop
- config: configuration and logging setup
"""

__version__ = "0.1.0"
