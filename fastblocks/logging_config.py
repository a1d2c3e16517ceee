"""
Logging Configuration
Sets up the logger for the 'fastblocks' namespace.
"""
import logging
import sys
from typing import Optional, Union

from . import config


def setup_logging(level: Optional[Union[int, str]] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the 'fastblocks' logger.

    Args:
        level: Logging level (e.g. logging.DEBUG). Defaults to FASTBLOCKS_LOGLEVEL.
        log_file: Optional path to save logs to a file.
    """
    if level is None:
        level = config.loglevel()
    logger = logging.getLogger("fastblocks")
    logger.setLevel(level)

    # avoid duplicate handlers when called more than once
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")
    return logger
