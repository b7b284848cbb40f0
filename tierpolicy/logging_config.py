"""
Logging configuration.

stdout carries the MCP protocol stream, so console logging goes to stderr.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler

from . import settings


def setup_logging():
    """Configure application logging."""
    log_level = getattr(logging, settings.get_log_level(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    logger.addHandler(console_handler)

    # File handler, only when a log file is configured
    log_file = settings.get_log_file()
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        ))
        logger.addHandler(file_handler)
