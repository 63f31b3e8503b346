from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger with a sensible default configuration."""
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format=_FORMAT)
    return logger


def configure_logging(level: str = "INFO") -> None:
    """Set the level of the package loggers (used by the CLI)."""
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=_FORMAT)
    logging.getLogger("molparse").setLevel(level)
