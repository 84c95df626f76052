"""Loguru sink configuration."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from config import Settings, get_settings

CONSOLE_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {name} | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def configure_logging(settings: Settings | None = None, *, console_level: str | None = None) -> None:
    """
    Replace loguru's default sink with the engine's sinks.

    Args:
        settings: Settings to read log level and file from (default: cached settings)
        console_level: Override for the stderr sink level (CLI uses WARNING)
    """
    settings = settings or get_settings()

    logger.remove()
    logger.add(
        sys.stderr,
        level=console_level or settings.log_level,
        format=CONSOLE_FORMAT,
    )

    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.log_file,
            level=settings.log_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
