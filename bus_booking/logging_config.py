"""Centralized logging configuration."""

import sys

from loguru import logger

from bus_booking.config import settings


log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{file}::{function}:{line}</>",
        "{message}",
    )
)


def configure_logging(level: str = None, log_dir: str = None) -> None:
    logger.remove()  # Drop the default handler so records are not duplicated
    logger.add(sys.stdout, format=log_format, level=level or settings.LOG_LEVEL)

    log_dir = log_dir or settings.LOG_DIR
    if log_dir:
        # Daily rotation with compression
        logger.add(
            f"{log_dir}/{{time:YYYY-MM-DD}}.log",
            format=log_format,
            level=level or settings.LOG_LEVEL,
            rotation="1 day",
            retention="30 days",
            compression="zip",
            enqueue=True,
        )
