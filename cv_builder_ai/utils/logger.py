"""Logging configuration for the CV builder."""

import logging
import sys
from typing import Optional

from cv_builder_ai.config import LOG_LEVEL


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Get a logger writing to stdout; level defaults to LOG_LEVEL from the environment."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
        logger.setLevel(logging.getLevelName(LOG_LEVEL.upper()) if level is None else level)
    elif level is not None:
        logger.setLevel(level)
    return logger
