"""Logging configuration for the MCS balance exporter."""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Protocol

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class Redactor(Protocol):
    def redact(self, message: str) -> str: ...


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            log_data["exception"] = record.exc_text

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class SanitizingFormatter(logging.Formatter):
    """Formatter that masks ``key=value`` style secrets in log messages."""

    SENSITIVE_PATTERNS = [
        "password",
        "secret",
        "token",
        "authorization",
        "cookie",
        "sid",
    ]

    def format(self, record: logging.LogRecord) -> str:
        record_copy = logging.makeLogRecord(record.__dict__)

        message = record_copy.getMessage()
        for pattern in self.SENSITIVE_PATTERNS:
            if pattern in message.lower():
                message = re.sub(
                    rf"\b{pattern}['\"]?\s*[:=]\s*['\"]?[^\s'\",;]+",
                    f"{pattern}=[REDACTED]",
                    message,
                    flags=re.IGNORECASE,
                )
        record_copy.msg = message
        record_copy.args = ()

        return super().format(record_copy)


class RedactingFilter(logging.Filter):
    """Replaces credential values in every record passing through a handler."""

    def __init__(self, redactor: Redactor) -> None:
        super().__init__()
        self._redactor = redactor

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._redactor.redact(record.getMessage())
        record.args = ()
        if record.exc_info:
            formatter = logging.Formatter()
            record.exc_text = self._redactor.redact(
                formatter.formatException(record.exc_info)
            )
            record.exc_info = None
        return True


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers held at WARNING.
QUIET_LOGGERS = ("aiohttp", "aiohttp.access", "urllib3")


def build_formatter(*, structured: bool, sanitize: bool) -> logging.Formatter:
    if structured:
        return StructuredFormatter()
    if sanitize:
        return SanitizingFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(
    level: str = "INFO",
    *,
    structured: bool = False,
    sanitize: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Configure root logging for the exporter.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        structured: Emit one JSON object per line
        sanitize: Mask key=value secrets in log messages
        log_file: Optional file that receives the same records as stdout
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    file_error: OSError | None = None
    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path))
        except OSError as exc:
            file_error = exc

    formatter = build_formatter(structured=structured, sanitize=sanitize)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    if file_error is not None:
        root_logger.warning(
            "Failed to set up file logging to %s: %s", log_file, file_error
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def install_redaction(redactor: Redactor) -> RedactingFilter:
    """Attach a credential filter to every handler of the root logger."""
    redacting_filter = RedactingFilter(redactor)
    for handler in logging.getLogger().handlers:
        handler.addFilter(redacting_filter)
    return redacting_filter
