"""Logging Utilities for the Kondate Shopping List Builder
=========================================================

Centralized logging configuration and utilities.

Usage:
    from tools.logging_utils import get_logger

    logger = get_logger(__name__)
    logger.info("Operation completed successfully")
    logger.error("Operation failed")

Standards:
    - Backend/operational code: MUST use logger
    - User-facing output: Use print()/rich for CLI only
    - Log levels: CRITICAL, ERROR, WARNING, INFO, DEBUG
    - Configuration: config.LOGGING_CONFIG
    - Location: data/logs/kondate.log (10MB rotation, 5 backups)
"""

import os
import logging
import logging.config
import threading

from config import DATA_DIR, LOGGING_CONFIG

_setup_lock = threading.Lock()
_configured = False


def setup_logging():
    """
    Initialize logging configuration once.

    Thread-safe and idempotent - safe to call multiple times.
    """
    global _configured
    if _configured:
        return
    with _setup_lock:
        if _configured:
            return
        try:
            os.makedirs(str(DATA_DIR / "logs"), exist_ok=True)
            logging.config.dictConfig(LOGGING_CONFIG)
        except (OSError, ValueError) as e:
            print(f"Warning: Logging setup failed: {e}")
        _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get logger for module.

    Args:
        name: Module name (use __name__)

    Returns:
        Configured logger instance
    """
    setup_logging()
    return logging.getLogger(name)
