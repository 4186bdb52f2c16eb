"""
Logging for kimage.

Both commands log to stderr so the upload client keeps stdout clean. Level
names are colored when stderr is a terminal.
"""

import logging
import os
import sys
from typing import Optional


LOG_LEVEL_ENV = 'KIMAGE_LOG_LEVEL'
LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

RESET = '\033[0m'
LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',
    logging.INFO: '\033[32m',
    logging.WARNING: '\033[33m',
    logging.ERROR: '\033[31m',
}


class LevelColorFormatter(logging.Formatter):
    """Colors the level name without touching the shared log record."""

    def __init__(self, use_color: bool):
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        self.use_color = use_color

    def formatMessage(self, record):
        color = LEVEL_COLORS.get(record.levelno)
        if not (self.use_color and color):
            return super().formatMessage(record)
        values = dict(record.__dict__, levelname=f"{color}{record.levelname}{RESET}")
        return self._style._fmt % values


def _resolve_level(level: Optional[str]) -> int:
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, 'INFO')
    return getattr(logging, level.upper(), logging.INFO)


def create_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Return the named logger writing to stderr.

    Args:
        name: Logger name, e.g. "Kimage.Server"
        level: DEBUG, INFO, WARNING or ERROR (case-insensitive). Falls back
            to KIMAGE_LOG_LEVEL, then INFO.

    Calling it again for the same name only changes the level.
    """
    numeric_level = _resolve_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        use_color = hasattr(sys.stderr, 'isatty') and sys.stderr.isatty()
        handler.setFormatter(LevelColorFormatter(use_color))
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(numeric_level)

    # Prevent propagation to root logger to avoid duplicate logs
    logger.propagate = False

    return logger
