"""Test fixtures for the options risk engine.

This package provides reusable test fixtures for:
- Option contracts, legs and strategies on a fixed valuation date
- Account snapshots and open positions
- Fake account / market data providers and a manual clock

Fixtures are auto-discovered by pytest through conftest.py.
"""
