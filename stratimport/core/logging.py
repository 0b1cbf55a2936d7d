"""Per-module loggers writing to stdout in one shared format."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level_from_settings() -> int:
    from stratimport.core.config import get_config_value

    name = str(get_config_value("logging", "level", default="INFO")).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Logger for ``name`` (e.g. ``stratimport.imports.validation``).

    The level defaults to ``logging.level`` in config.yaml. A stdout handler
    is attached the first time a name is requested.
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    elif logger.level == logging.NOTSET:
        logger.setLevel(_level_from_settings())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    return logger
