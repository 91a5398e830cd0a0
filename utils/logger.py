"""
============================================================================
PING MONITOR - LOGGING UTILITY
============================================================================
Diagnostic logging for the application, built on loguru: console output,
a size-rotated application log and a separate errors file.

This is NOT the probe log. Probe outcomes are written by
monitoring.log_writer as newline-delimited JSON.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import sys
from typing import Optional

from loguru import logger

from config.settings import Settings, get_settings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[name]}:{function}:{line} - {message}"
)

# Loggers obtained without a name still satisfy {extra[name]}
logger.configure(extra={"name": "ping_monitor"})


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure logging system with multiple handlers.
    Sets up both file and console logging.

    Args:
        settings: Application settings (cached settings when omitted)
    """
    settings = settings or get_settings()
    log_settings = settings.logging

    # Remove default loguru handler
    logger.remove()

    log_level = log_settings.level.value

    # Console Handler
    if log_settings.console_enabled:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=log_settings.colorize,
            backtrace=True,
            diagnose=not settings.is_production,
        )

    # File Handler
    if log_settings.file_enabled:
        log_settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_settings.file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=log_settings.file_rotation,
            retention=log_settings.file_retention,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

        # Error log file (separate file for errors)
        if log_settings.error_file_enabled:
            logger.add(
                log_settings.file_path.parent / "errors.log",
                format=FILE_FORMAT,
                level="ERROR",
                rotation="1 day",
                retention=log_settings.file_retention,
                enqueue=True,
                backtrace=True,
                diagnose=False,
            )

    logger.info("Logging system initialized")
    logger.info(f"Log level: {log_level}")
    logger.info(f"Console logging: {log_settings.console_enabled}")
    logger.info(f"File logging: {log_settings.file_enabled}")


def get_logger(name: Optional[str] = None):
    """
    Get logger instance with optional name.

    Args:
        name: Logger name (usually the component name)

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger
