from __future__ import annotations

import logging
import sys

from smartstock.config import settings

LOGGER_NAME = 'smartstock'


def _has_stream_handler(logger: logging.Logger) -> bool:
    return any(isinstance(handler, logging.StreamHandler) for handler in logger.handlers)


def configure_logging(level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    resolved = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logger.setLevel(resolved)

    if not _has_stream_handler(logger):
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(resolved)
        handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    return logger
