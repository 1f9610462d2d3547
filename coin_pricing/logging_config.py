"""
Logging setup for applications embedding the pricing engine.

Library modules only create named loggers; nothing is configured on import.
Call configure_logging() once from the host application.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Attach stdout (and optionally file) handlers to the coin_pricing logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
        log_file: Optional path; parent directories are created

    Returns:
        The configured package logger
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    package_logger = logging.getLogger("coin_pricing")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.setLevel(log_level)
    return package_logger
