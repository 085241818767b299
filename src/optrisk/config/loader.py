"""
Configuration Loader Module

Loads engine configuration from a YAML file and merges environment variable
overrides (env vars take precedence).
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from optrisk.config.engine_config import EngineConfig

DEFAULT_CONFIG_PATH = Path("config/optrisk.yaml")

# env var -> (section, key, type)
ENV_MAPPING = {
    "OPTRISK_MAX_SINGLE_POSITION_RISK": ("risk_limits", "max_single_position_risk", float),
    "OPTRISK_MAX_CONCENTRATION": ("risk_limits", "max_concentration", float),
    "OPTRISK_CONCENTRATION_WARNING": ("risk_limits", "concentration_warning", float),
    "OPTRISK_MAX_PORTFOLIO_DELTA": ("risk_limits", "max_portfolio_delta", float),
    "OPTRISK_MAX_MARGIN_UTILIZATION": ("risk_limits", "max_margin_utilization", float),
    "OPTRISK_MAX_VAR_PCT": ("risk_limits", "max_var_pct", float),
    "OPTRISK_MAX_LEVERAGE": ("risk_limits", "max_leverage", float),
    "OPTRISK_MONITOR_INTERVAL_MINUTES": ("monitoring", "interval_minutes", float),
    "OPTRISK_CACHE_TTL_SECONDS": ("monitoring", "cache_ttl_seconds", float),
    "OPTRISK_ALERT_DEDUP_WINDOW_SECONDS": ("monitoring", "alert_dedup_window_seconds", float),
    "OPTRISK_DEFAULT_IV": ("market_defaults", "implied_volatility", float),
    "OPTRISK_RISK_FREE_RATE": ("market_defaults", "risk_free_rate", float),
    "OPTRISK_NAKED_CALL_RATE": ("margin", "naked_call_rate", float),
    "OPTRISK_LOG_LEVEL": ("logging", "level", str),
    "OPTRISK_LOG_FILE": ("logging", "file", str),
}


def merge_config_with_env(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge configuration with environment variables.

    Examples:
        OPTRISK_MAX_PORTFOLIO_DELTA=40
        OPTRISK_LOG_LEVEL=DEBUG

    Args:
        config_data: Configuration data from file

    Returns:
        Merged configuration with env vars applied
    """
    for env_var, (section, key, cast) in ENV_MAPPING.items():
        env_value = os.environ.get(env_var)
        if env_value is None:
            continue

        section_data = config_data.setdefault(section, {}) or {}
        config_data[section] = section_data
        section_data[key] = cast(env_value)
        logger.debug(f"Overriding {section}.{key} from env: {env_var}")

    return config_data


def load_config(config_path: Optional[str | Path] = None) -> EngineConfig:
    """
    Load engine configuration.

    Args:
        config_path: Path to YAML file (default: config/optrisk.yaml)

    Returns:
        EngineConfig with file values and env overrides applied
    """
    config_file = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}, using defaults")
        config_data: Dict[str, Any] = {}
    else:
        with open(config_file, "r") as f:
            config_data = yaml.safe_load(f) or {}
        logger.info(f"Loaded config from {config_file}")

    config_data = merge_config_with_env(config_data)
    return EngineConfig.from_dict(config_data)


def load_and_validate_config(config_path: Optional[str | Path] = None) -> EngineConfig:
    """
    Load configuration and fail fast on invalid values.

    Raises:
        ValueError: If configuration is invalid
    """
    config = load_config(config_path)

    errors = config.validate()
    if errors:
        error_msg = "Configuration validation errors:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)

    logger.info("✓ Engine configuration validated")
    return config
