"""JSON logging configuration for the tenant controller."""

import logging
import os

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with a focused field set.

    Keeps timestamp, level, message, exc_info, funcName and lineno, plus the
    reconcile-scoped `tenant` and `phase` fields when passed via `extra=`.
    """

    allowed_fields = frozenset(
        {
            "timestamp",
            "level",
            "message",
            "exc_info",
            "funcName",
            "lineno",
            "tenant",
            "phase",
        }
    )

    def add_fields(self, log_record, record, message_dict):
        """Override to include only allowed fields.

        Args:
            log_record: Dict to be logged as JSON
            record: LogRecord object from logging framework
            message_dict: Dict containing message and args
        """
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        for key in [key for key in log_record if key not in self.allowed_fields]:
            log_record.pop(key)


def _resolve_level(name: str | None) -> int:
    """Map a level name to its number, falling back to INFO."""
    level = logging.getLevelName((name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _setup_logger() -> logging.Logger:
    """Initialize and configure singleton logger.

    Level comes from LOG_LEVEL; unset or unknown names mean INFO.

    Returns:
        Configured logger with CustomJsonFormatter
    """
    logger = logging.getLogger("tenant_operations")

    # Prevent duplicate handlers if module reloaded
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)

    logger.setLevel(_resolve_level(os.environ.get("LOG_LEVEL")))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


# Singleton logger instance - import this in other modules
LOGGER = _setup_logger()
