# === FILE: site_lens/logger.py ===
"""Logging setup shared by every SiteLens module.

All modules log through one logger named ``SiteLens``::

    from site_lens.logger import logger
    logger.info("Crawl started: %s", seed)

Records go to stderr (stdout carries the CLI's JSON report) and, when a log
file is given, also to a size-rotated file. :func:`init_logging` swaps the
handlers in place, so it can be called again at any time.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "SiteLens"

LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
LOG_FILE_BACKUPS: Final[int] = 3


def _handlers(log_file: Optional[Union[str, Path]], fmt: str) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(
            RotatingFileHandler(
                str(log_file),
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )
    formatter = logging.Formatter(fmt)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def init_logging(
    level: Union[int, str] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Set the level and replace the handlers of the SiteLens logger.

    Called by the CLI from ``--log-level``, ``--log-file`` and ``--log-format``.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)
    for old in list(lg.handlers):
        lg.removeHandler(old)
        old.close()
    for handler in _handlers(log_file, log_format):
        lg.addHandler(handler)
    lg.propagate = False
    return lg


logger: logging.Logger = init_logging(level="WARNING")

__all__ = ["logger", "init_logging", "LOGGER_NAME", "DEFAULT_FORMAT"]
