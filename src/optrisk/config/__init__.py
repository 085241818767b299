"""
Configuration Module

Engine configuration dataclasses, YAML / environment loader and logging setup.

Example:
    >>> from optrisk.config import load_and_validate_config, configure_logging
    >>> config = load_and_validate_config("config/optrisk.yaml")
    >>> configure_logging(config.logging)
"""

from optrisk.config.engine_config import (
    EngineConfig,
    LoggingConfig,
    MarginConfig,
    MarketDefaults,
    MonitoringConfig,
    RiskLimitsConfig,
    StressTestConfig,
)
from optrisk.config.loader import load_and_validate_config, load_config, merge_config_with_env
from optrisk.config.logging import configure_logging

__all__ = [
    "EngineConfig",
    "LoggingConfig",
    "MarginConfig",
    "MarketDefaults",
    "MonitoringConfig",
    "RiskLimitsConfig",
    "StressTestConfig",
    "configure_logging",
    "load_and_validate_config",
    "load_config",
    "merge_config_with_env",
]
