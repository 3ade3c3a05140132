"""Logging configuration for the control client.

This module provides centralized logging configuration using Loguru.
It sets up logging to both file and console with proper formatting
and log rotation.
"""

import sys
from pathlib import Path

from loguru import logger

# Create logs directory in user's home directory
LOG_DIR = Path.home() / ".tor-control" / "logs"
LOG_DIR.mkdir(parents=True, exist_ok=True)

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(level: str = "INFO") -> None:
    """Install the console and rotating file handlers.

    Args:
        level: Minimum level for the console handler; the file always gets DEBUG
    """
    logger.remove()  # Remove default handler
    logger.enable("tor_control")

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        backtrace=True,
        diagnose=False,
    )

    logger.add(
        LOG_DIR / "control.log",
        rotation="10 MB",
        retention="1 week",
        compression="zip",
        format=FILE_FORMAT,
        level="DEBUG",
        backtrace=True,
        diagnose=False,
    )


configure_logging()

__all__ = ["LOG_DIR", "configure_logging", "logger"]
