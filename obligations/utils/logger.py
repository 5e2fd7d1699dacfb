"""
Centralized logging module for the reconciliation service.

Provides a configurable logger that writes to both a rotating log file and
the console. Includes a convenience function to log messages at different
levels.
"""

import logging
import sys
import os
from logging.handlers import RotatingFileHandler

# ---------------------------------------------------------
# Configuration
# ---------------------------------------------------------
LOG_FILE = os.getenv("LOG_FILE", "obligations.log")
LOGGER_NAME = "obligations_logger"
MAX_LOG_FILE_SIZE = 5 * 1024 * 1024  # 5 MB per file
BACKUP_COUNT = 5                      # Keep last 5 log files

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def setup_logger() -> logging.Logger:
    """
    Sets up the application logger.

    Creates a logger that logs messages to a rotating file and the console.

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    # Avoid adding multiple handlers if setup_logger is called multiple times
    if not logger.handlers:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        try:
            log_dir = os.path.dirname(LOG_FILE) or "."
            os.makedirs(log_dir, exist_ok=True)

            file_handler = RotatingFileHandler(
                LOG_FILE, maxBytes=MAX_LOG_FILE_SIZE, backupCount=BACKUP_COUNT
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            logger.info("Logger initialized. Logging to file '%s' and console.", LOG_FILE)
        except OSError as e:
            # Read-only filesystems still get console output
            logger.warning("File logging disabled: %s. Logging to console only.", e)

    return logger


# Initialize logger
logger = setup_logger()


def log_message(level: str, message: str):
    """
    Logs a message at the specified level.

    Args:
        level (str): Logging level ('info', 'warning', 'error', 'critical', 'debug').
            Unknown levels fall back to 'info'.
        message (str): The message to log.
    """
    logger.log(_LEVELS.get(level.lower(), logging.INFO), message)
