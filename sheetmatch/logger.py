"""
Unified logging module.
=======================

Single configuration point for every ``sheetmatch`` logger.

Usage:
    from sheetmatch.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Parsed %d sheets from %s", len(sheets), filename)
"""

import logging
import sys
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = logging.INFO

ROOT_LOGGER_NAME = "sheetmatch"

# Global flag to track if the project root logger has been configured
_root_configured = False


def _configure_root_logger() -> None:
    """
    Attach a stdout handler to the project root logger.

    Runs once; later calls are no-ops.
    """
    global _root_configured
    if _root_configured:
        return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(DEFAULT_LEVEL)
    root_logger.addHandler(console_handler)
    root_logger.propagate = False

    _root_configured = True


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Return the logger for *name*, configuring the project root on first use.

    Args:
        name: usually the calling module's ``__name__``
        level: optional level for this logger only
    """
    _configure_root_logger()
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def set_level(level: Union[int, str], logger_name: Optional[str] = None) -> None:
    """
    Set the level of *logger_name*, or of the project root logger when omitted.

    Example:
        set_level(logging.DEBUG)                          # every sheetmatch module
        set_level("DEBUG", "sheetmatch.sheets.reader")    # reader only
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = DEFAULT_LEVEL
    logging.getLogger(logger_name or ROOT_LOGGER_NAME).setLevel(level)
