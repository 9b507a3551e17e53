"""Centralized logging configuration for the pulsadash application.

Sets up standard Python logging from the ``logging.*`` configuration keys:
a stdout handler, an optional file handler, and httpx's per-request INFO
lines kept out of the output unless the level is WARNING or stricter anyway.
"""

import logging
import sys
from typing import Optional

from pulsadash.infrastructure.config.settings import get_config

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries that log each request or connection at INFO/DEBUG.
NOISY_LOGGERS = ("httpx", "httpcore")


def resolve_log_level(value: object, default: int = DEFAULT_LOG_LEVEL) -> int:
    """Turns a configured level ('debug', 'WARNING', 10) into a logging level."""
    if isinstance(value, int):
        return value
    if value is None:
        return default
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else default


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None
) -> None:
    """Installs the pulsadash handlers on the root logger.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}")
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}")


def configure_logging_from_settings() -> None:
    """Applies ``logging.level``, ``logging.format`` and ``logging.file``.

    Each key can also come from PULSADASH_LOGGING_LEVEL and friends.
    """
    setup_logging(
        log_level=resolve_log_level(get_config('logging.level')),
        log_format=get_config('logging.format') or DEFAULT_LOG_FORMAT,
        log_file=get_config('logging.file'),
    )
