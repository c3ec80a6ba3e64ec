"""
Logging utilities.

Every module in the package logs through ``logging.getLogger(__name__)``,
so all records land under the ``sonopy`` logger. The package itself only
installs a NullHandler; applications and scripts call setup_logging to
actually see filter-bank construction and grid-correction messages.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


ROOT_LOGGER = 'sonopy'
DEFAULT_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


def setup_logging(
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    format_string: str = None,
    name: str = ROOT_LOGGER,
    console_level: int = logging.WARNING
) -> logging.Logger:
    """
    Attach console (and optionally file) handlers to a package logger.

    Args:
        log_file: Path to log file (if None, only console output)
        level: Logging level of the logger and the file handler
        format_string: Custom format string
        name: Logger name, the package root by default
        console_level: Level of the console handler

    Returns:
        Configured logger
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    logger = get_logger(name)
    logger.setLevel(level)

    # Remove existing handlers (including the package NullHandler) to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(format_string, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger inside the package namespace.

    ``get_logger()`` is the ``sonopy`` logger, ``get_logger('bench')`` is
    ``sonopy.bench``; names already under ``sonopy`` are used as given.
    """
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f'{ROOT_LOGGER}.{name}')
