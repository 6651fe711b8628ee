"""Logging utilities."""

import os
import logging
from typing import Optional


def get_logger(name: str, log_file: Optional[str] = None, level=logging.INFO) -> logging.Logger:
    """Get a logger with the specified name and file.

    Handlers are attached once per logger name, so components that call this
    on construction do not duplicate console output.

    Args:
        name: Name of the logger
        log_file: Optional path to log file
        level: Logging level

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Create formatters
    file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    console_formatter = logging.Formatter('%(levelname)s - %(message)s')

    # Add file handler if log_file is specified and not attached yet
    if log_file:
        log_file = os.path.abspath(log_file)
        attached = [h for h in logger.handlers
                    if isinstance(h, logging.FileHandler) and h.baseFilename == log_file]
        if not attached:
            os.makedirs(os.path.dirname(log_file), exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.setFormatter(file_formatter)
            logger.addHandler(file_handler)

    # Add console handler
    has_console = any(type(h) is logging.StreamHandler for h in logger.handlers)
    if not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    return logger
