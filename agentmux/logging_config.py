"""Logging configuration.

Both processes log to files under the state directory: the watch daemon runs
detached (``run-shell -b``) and the viewer owns the terminal, so neither has a
usable stderr.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)s %(name)s[%(process)d]: %(message)s"


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """Configure the ``agentmux`` logger.

    Args:
        level: Level name; defaults to the configured ``[logging] level``.
        log_file: Destination file. Without one, logs go to stderr.
    """
    from .settings import SETTINGS

    logger = logging.getLogger("agentmux")
    logger.setLevel((level or SETTINGS.log_level).upper())
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file, maxBytes=1_000_000, backupCount=2, encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
