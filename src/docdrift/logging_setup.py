"""Logging configuration."""
from __future__ import annotations

import logging
import sys

from docdrift.config.engine import LoggingConfig

NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure root logging to stderr.

    Args:
        config: Logging section of the engine config (defaults if omitted)
    """
    config = config or LoggingConfig()
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ],
        force=True,
    )
    if config.quiet_http:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
