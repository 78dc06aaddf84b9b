"""Logging for second-check runs.

Every calculation is written to the package logger so a run can be kept
as a record next to the plan. Console output is short; the optional log
file is appended to and keeps the full calculation trail.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = 'rt_second_check'

CONSOLE_FORMAT = '%(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _close_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logger(
    name: str = LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG
) -> logging.Logger:
    """Configure the second-check logger.

    Calling this again replaces the handlers of an earlier call, so each
    checker instance writes to the log file it was configured with.

    Args:
        name: Logger name
        level: Overall logging level
        log_file: Optional path of a log file, appended to across runs
        console_level: Logging level for console output
        file_level: Logging level for file output

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(min(level, file_level) if log_file else level)
    _close_handlers(logger)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(max(level, console_level))
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get the package logger (or a named logger)."""
    return logging.getLogger(name)


def log_block(logger: logging.Logger, text: str, level: int = logging.INFO) -> None:
    """Log multi-line text one line per record.

    Keeps each line of a calculation summary timestamped in the log file.
    """
    if not logger.isEnabledFor(level):
        return
    for line in text.splitlines():
        logger.log(level, line)
