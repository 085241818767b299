"""
Logging setup for the risk engine.

Replaces loguru's default sink with a stderr sink and an optional rotating
file sink. Components log through ``logger.bind(component=...)``; unbound
records fall back to the ``optrisk`` component name.
"""

import sys
from pathlib import Path

from loguru import logger

from optrisk.config.engine_config import LoggingConfig


def configure_logging(config: LoggingConfig | None = None) -> None:
    """
    Install loguru sinks according to ``config``.

    Args:
        config: Logging settings (defaults to LoggingConfig())
    """
    config = config or LoggingConfig()

    logger.remove()
    logger.configure(extra={"component": "optrisk"})
    logger.add(sys.stderr, level=config.level, format=config.format)

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            rotation=config.rotation,
            retention=config.retention,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]} | {message}",
        )

    logger.debug(f"Logging configured (level={config.level}, file={config.file})")
