"""
Log sinks for sparebook, built on loguru.

Engine modules only emit records through ``loguru.logger``. Applications pick
the destinations once at startup, either with :func:`setup_logging` or from the
``logging`` section of a :class:`~sparebook.core.config.Config`.
"""

import sys

from loguru import logger

CONSOLE_FORMAT = "<level>{level: <8}</level> <cyan>{name}</cyan> {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = CONSOLE_FORMAT,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> list[int]:
    """
    Replace every loguru sink with a stderr sink and, optionally, a rotating file.

    Args:
        level: Minimum level name, case-insensitive.
        log_file: File to append to as well as stderr.
        fmt: Console format string.
        rotation: When the log file rolls over.
        retention: How long rolled files are kept.

    Returns:
        The loguru handler ids that were added.
    """
    level = level.upper()
    logger.remove()
    handlers = [logger.add(sys.stderr, level=level, format=fmt)]
    if log_file:
        handlers.append(logger.add(log_file, level=level, format=FILE_FORMAT, rotation=rotation, retention=retention))
    return handlers


def setup_logging_from_config(config) -> list[int]:
    """Apply ``logging.level`` and ``logging.file`` from a Config."""
    return setup_logging(
        level=str(config.get("logging.level") or "WARNING"),
        log_file=config.get("logging.file") or None,
    )
