"""
Centralized Logging Configuration for Shadow Scan

This module provides a unified logging setup for the whole scanner.
Every module logs under the "shadow_scan" hierarchy so a single call
configures console and file output for the pipeline, the stores and
the audio layer alike.

Usage:
    from logging_config import setup_logging
    setup_logging()

    # Then in any module:
    import logging
    logger = logging.getLogger("shadow_scan.pipeline.executor")
    logger.info("Your message here")
"""

import logging
import os
from logging.handlers import RotatingFileHandler

ROOT_LOGGER_NAME = "shadow_scan"


def setup_logging(log_file="logs/shadow_scan.log", console_level=logging.INFO, file_level=logging.DEBUG):
    """
    Configure logging for the entire scanner.

    Args:
        log_file: Path to the log file (default: logs/shadow_scan.log)
        console_level: Log level for console output (default: INFO)
        file_level: Log level for file output (default: DEBUG)

    Returns:
        logging.Logger: The root "shadow_scan" logger instance
    """
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers to avoid duplicates
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()

    log_format = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # File Handler: rotates at 10MB, keeps 5 backups
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(log_format)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    root_logger.debug("Shadow Scan logging initialized (file=%s, console=%s, file_level=%s)",
                      os.path.abspath(log_file),
                      logging.getLevelName(console_level),
                      logging.getLevelName(file_level))

    return root_logger


def get_logger(name):
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name (typically __name__)

    Returns:
        logging.Logger: Logger instance under the shadow_scan hierarchy
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
