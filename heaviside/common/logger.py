from __future__ import annotations

import logging
import sys

LOGGER_NAME = "heaviside"

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s: %(message)s"


def setup_logger(name: str = LOGGER_NAME, level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger  # avoid duplicate handlers

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    return logger


def get_logger(suffix: str) -> logging.Logger:
    """Child logger under the package logger, e.g. ``heaviside.receiver``."""
    return logging.getLogger(f"{LOGGER_NAME}.{suffix}")
