from __future__ import annotations

import logging
import os
from typing import Optional


def _parse_level(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    value = str(text).strip().upper()
    if not value:
        return None
    mapping = {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
    }
    return mapping.get(value)


def setup_logging(config_level: Optional[str] = None, *, verbose: bool = False, name: str = "floorbeat") -> None:
    """Configure python logging once.

    Priority (highest first):
    - env FLOORBEAT_LOG_LEVEL
    - verbose flag (DEBUG)
    - config_level (logging.level from config.py)
    - default: INFO
    """

    root = logging.getLogger()
    if root.handlers:
        return

    level = _parse_level(config_level) or logging.INFO
    if verbose:
        level = logging.DEBUG
    env_level = _parse_level(os.environ.get("FLOORBEAT_LOG_LEVEL"))
    if env_level is not None:
        level = env_level

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    logging.getLogger(name).debug("logging initialized (level=%s)", logging.getLevelName(level))
