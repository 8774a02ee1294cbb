"""
Logging configuration for the visited-link highlighter.
"""

import os
import sys
from loguru import logger

_configured = False


def setup_logger(name: str):
    """Configure loguru sinks once and return a logger bound to ``name``.

    Args:
        name: Component name shown in every record

    Returns:
        Bound logger instance
    """
    global _configured

    if not _configured:
        logger.remove()

        log_level = os.getenv("LOG_LEVEL", "INFO")
        log_file = os.getenv("LOG_FILE", "server.log")

        base_format = "<level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
        file_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | " + base_format

        if log_file:
            logger.add(
                log_file,
                rotation="100 MB",
                retention="5 days",
                compression="zip",
                level=log_level,
                enqueue=True,  # Thread-safe logging
                format=file_format,
            )

        logger.add(sys.stderr, level=log_level, format=base_format)
        logger.configure(extra={"name": "visited_links"})
        _configured = True

    return logger.bind(name=name)
