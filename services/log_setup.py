"""
log_setup.py: Centralized logging configuration for the service.
"""

import logging
import os
from typing import Optional

LOGGER_NAMES = ("arbiter", "services", "server")


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.setLevel(level.upper())

        # Prevent duplicate handlers
        if logger.hasHandlers():
            logger.handlers.clear()
        logger.propagate = False

        # Console Handler
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter('%(name)s - %(levelname)s - %(message)s'))
        logger.addHandler(console_handler)

        # File Handler
        if log_file:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode='a')
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(file_handler)
