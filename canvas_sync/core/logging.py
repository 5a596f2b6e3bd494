"""
Logging configuration for the sync engine.
"""

import json
import logging
import logging.config
from typing import Any, Dict, Optional

from canvas_sync.core.config import Settings, get_settings

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
    "message",
}


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Build the ``dictConfig`` mapping for the given settings."""
    log_settings = settings.logging
    if log_settings.json_logs:
        formatter: Dict[str, Any] = {
            "()": f"{JSONFormatter.__module__}.{JSONFormatter.__name__}",
        }
    else:
        formatter = {"format": log_settings.format}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "level": log_settings.level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "error": {
                "class": "logging.StreamHandler",
                "level": "ERROR",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "canvas_sync": {
                "level": log_settings.level,
                "handlers": ["default", "error"],
                "propagate": False,
            },
            "apscheduler": {
                "level": "WARNING",
                "handlers": ["default"],
                "propagate": False,
            },
        },
        "root": {
            "level": log_settings.level,
            "handlers": ["default"],
        },
    }


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure engine logging."""
    settings = settings or get_settings()
    logging.config.dictConfig(build_logging_config(settings))

    logger = logging.getLogger(__name__)
    logger.info(
        f"Logging configured - Level: {settings.logging.level}, "
        f"JSON: {settings.logging.json_logs}"
    )
