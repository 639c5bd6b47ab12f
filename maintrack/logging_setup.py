"""Logging configuration for maintrack."""

import logging
import os
import sys
from typing import Optional, Union

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: Optional[Union[str, int]] = None) -> int:
    level = level or LOG_LEVEL
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: Optional[Union[str, int]] = None, *, force: bool = False) -> bool:
    """Configure the root logger with a single stderr handler.

    Leaves an already-configured root logger alone unless `force` is set.

    Returns:
        True if handlers were installed
    """
    root = logging.getLogger()
    if root.handlers and not force:
        return False

    root.setLevel(resolve_level(level))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)

    logging.captureWarnings(True)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return True
