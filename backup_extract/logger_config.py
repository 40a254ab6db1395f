"""
Logging configuration for backup extraction.

Uses dictConfig so the CLI can reconfigure logging between runs (for example
to add a log file next to the extracted output).

Environment Variables:
    BACKUP_EXTRACT_LOG_LEVEL: Log level for this tool. Takes precedence.
    LOG_LEVEL: Generic fallback. Defaults to INFO if neither is set or valid.

Usage:
    from backup_extract.logger_config import setup_logging
    setup_logging()
    setup_logging(level=logging.DEBUG, log_file="files/extract.log")
"""

import logging
import logging.config
import os
from typing import Any, Dict, Optional

LOG_LEVEL_ENV_VARS = ("BACKUP_EXTRACT_LOG_LEVEL", "LOG_LEVEL")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_FILE_MAX_BYTES = 10_485_760  # 10 MB
LOG_FILE_BACKUP_COUNT = 5


def get_log_level() -> int:
    """
    Resolve the log level from the environment.

    The first variable in LOG_LEVEL_ENV_VARS that is set wins, even if its
    value is invalid (which falls back to INFO).

    Returns:
        Logging level constant (e.g., logging.INFO).
    """
    for env_var in LOG_LEVEL_ENV_VARS:
        value = os.getenv(env_var)
        if value is None:
            continue
        level = getattr(logging, value.strip().upper(), None)
        return level if isinstance(level, int) else logging.INFO
    return logging.INFO


def build_logging_config(
    level: int,
    format_string: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the dictConfig mapping for a console handler plus optional file."""
    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": format_string,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
    }

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUP_COUNT,
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")

    return config


def setup_logging(
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for the application. Safe to call more than once.

    Args:
        level: Logging level. If None, resolved from the environment.
        format_string: Optional custom format string.
        log_file: Optional file path to also write logs to (with rotation).
    """
    if level is None:
        level = get_log_level()

    logging.config.dictConfig(
        build_logging_config(level, format_string or DEFAULT_FORMAT, log_file)
    )
