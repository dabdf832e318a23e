"""Logging setup: stdlib handlers for files/console, structlog for the relay."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

import structlog

from .config import LoggingSettings

# Chatty third-party loggers that would otherwise log every outbound request.
_QUIET_LOGGERS = ("urllib3", "minio", "multipart")


def _handler_config(settings: LoggingSettings, log_file: Path) -> Dict[str, Any]:
    level = settings.level.upper()
    return {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
            "level": level,
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_file),
            "formatter": "plain",
            "maxBytes": settings.max_log_file_size_mb * 1024 * 1024,
            "backupCount": settings.backup_count,
            "encoding": "utf-8",
            "level": level,
        },
    }


def configure_logging(settings: LoggingSettings) -> Path:
    """Route stdlib and structlog output to the console and a rotating file.

    Returns the path of the active log file.
    """

    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "service.log"
    level_value = getattr(logging, settings.level.upper(), logging.INFO)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
            },
            "handlers": _handler_config(settings, log_file),
            "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
            "root": {"handlers": ["console", "file"], "level": settings.level.upper()},
        }
    )

    # structlog renders the event, then hands it to stdlib so it reaches the same handlers.
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "logger", "event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        cache_logger_on_first_use=True,
    )
    return log_file
