"""
Loguru sinks for pipeline runs.

Every run logs to stderr. When ``LOG_FILE`` (or ``--log-file``) is set the
same messages also go to a rotating, gzip-compressed file so long cleaning
runs leave an audit trail of rejected rows and stage counts.
"""

import os
import sys
from pathlib import Path

from loguru import logger

from admissions.config import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def _add_file_sink(log_file: Path, level: str) -> int:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    return logger.add(
        log_file,
        level=level,
        format=FILE_FORMAT,
        rotation=settings.pipeline.log_rotation,
        retention=settings.pipeline.log_retention,
        compression="gz",
    )


def setup_logging(level: str | None = None, log_file: Path | None = None) -> None:
    """
    Replace all loguru sinks with the pipeline's.

    Args:
        level: Minimum level; defaults to ``settings.pipeline.log_level``
        log_file: Also write to this file; defaults to ``settings.pipeline.log_file``
    """
    level = (level or settings.pipeline.log_level).upper()
    log_file = log_file or settings.pipeline.log_file

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        _add_file_sink(Path(log_file), level)
        logger.debug(f"Logging to {log_file} at {level}")


if os.environ.get("DISABLE_LOGGING") != "1":
    setup_logging()
