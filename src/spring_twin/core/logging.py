"""
Logging configuration module
"""

import sys

from loguru import logger

from spring_twin.config.settings import Settings, settings as default_settings


def setup_logging(settings: Settings = default_settings, *, stream=sys.stderr) -> None:
    """configure logging system"""

    # remove default log handler
    logger.remove()

    logger.add(
        stream,
        level="DEBUG" if settings.debug else "INFO",
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="1 day",
            retention="30 days",
            compression="zip",
        )
