"""Structured logfmt logging on top of the standard library.

Log records are rendered as ``key=value`` pairs:

    level=info msg="user subscribed" username=elliot user_id=123

Structured fields travel on the record through ``extra``. Use :func:`fields`
to build that mapping so the field order is preserved:

    logger.info("user subscribed", extra=fields(username="elliot", user_id=123))
"""

from __future__ import annotations

import logging
import logging.config
from datetime import UTC, datetime
from typing import Any

# Level names as they appear in the ``level`` key
LEVEL_NAMES = {
    "DEBUG": "debug",
    "INFO": "info",
    "WARNING": "warn",
    "ERROR": "error",
    "CRITICAL": "error",
}

# Attribute on the LogRecord that carries the structured fields
FIELDS_ATTR = "fields"


def fields(**kwargs: Any) -> dict[str, dict[str, Any]]:
    """Build the ``extra`` mapping for a structured log call."""
    return {FIELDS_ATTR: kwargs}


def _needs_quoting(value: str) -> bool:
    return any(ch <= " " or ch in '="\\' or ch == "\x7f" for ch in value)


def format_value(value: Any) -> str:
    """Render a single logfmt value, quoting it when required."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, BaseException):
        text = str(value) or type(value).__name__
    else:
        text = str(value)

    if not _needs_quoting(text):
        return text

    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


class LogfmtFormatter(logging.Formatter):
    """Render log records as a single logfmt line.

    The line always starts with ``level`` and ``msg``, followed by the
    record's structured fields in the order they were given.
    """

    def __init__(self, *, timestamps: bool = False) -> None:
        super().__init__()
        self.timestamps = timestamps

    def format(self, record: logging.LogRecord) -> str:
        pairs: list[tuple[str, Any]] = []
        if self.timestamps:
            created = datetime.fromtimestamp(record.created, tz=UTC)
            pairs.append(("ts", created.isoformat(timespec="milliseconds")))
        pairs.append(("level", LEVEL_NAMES.get(record.levelname, record.levelname.lower())))
        pairs.append(("msg", record.getMessage()))

        extra = getattr(record, FIELDS_ATTR, None)
        if extra:
            pairs.extend(extra.items())

        if record.exc_info:
            pairs.append(("exc", self.formatException(record.exc_info)))

        return " ".join(f"{key}={format_value(value)}" for key, value in pairs)


def configure_logging(level: str) -> None:
    """Configure logfmt logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "logfmt": {
                "()": LogfmtFormatter,
                "timestamps": True,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "logfmt",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        # Quieter logging for noisy libraries
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
            "aiohttp.access": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)
