"""JSON line logging shared by every ``sniff_loader`` module."""

import logging
import sys
import json
from typing import Optional

_FORMAT = json.dumps(
    {
        "ts": "%(asctime)s",
        "lvl": "%(levelname)s",
        "mod": "%(name)s",
        "fn": "%(funcName)s",
        "msg": "%(message)s",
    }
)


def get_logger(name: str = __name__, level: Optional[str] = None) -> logging.Logger:
    """Return a JSON-configured logger.

    Reuses existing handlers to avoid duplicates when called multiple times.
    ``level`` falls back to the configured ``log_level``.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    from .core.config import get_settings

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.setLevel((level or get_settings().log_level).upper())
    return logger
