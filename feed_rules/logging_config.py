"""Logging setup for feed_rules.

All package loggers live under the "feed_rules" namespace so a host
application can route or silence them as one unit.
"""

import logging
import sys
from typing import Optional

from feed_rules.config import EngineConfig, get_config

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
HANDLER_NAME = "feed_rules.stderr"

logger = logging.getLogger("feed_rules")


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the feed_rules namespace.

    Args:
        name: Usually __name__ of the calling module

    Returns:
        Configured Logger instance
    """
    if name == "feed_rules" or name.startswith("feed_rules."):
        return logging.getLogger(name)
    return logging.getLogger(f"feed_rules.{name}")


def setup_logging(config: Optional[EngineConfig] = None) -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Safe to call more than once; the handler is only added the first time.

    Args:
        config: Optional configuration (uses get_config() if not provided)

    Returns:
        The package root logger
    """
    if config is None:
        config = get_config()

    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logger.setLevel(level)

    if not any(h.get_name() == HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
