"""
Rust Anthology - Logging Configuration

Console logging for the build and publish steps, JSON lines when CI log
parsing wants them, and an optional rotating file.

The publisher's push remote embeds GH_TOKEN, so every formatted record is
passed through censor_sensitive_data() before it is written anywhere.

Usage:
    from config.logging import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)

    with LogContext(step="publish"):
        logger.info("Pushing", extra={"branch": "gh-pages"})
"""

import json
import logging
import logging.handlers
import re
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from config.settings import get_settings


# =============================================================================
# Credential Censoring
# =============================================================================

SENSITIVE_PATTERNS = [
    (re.compile(r'(https?://)[^/@\s"\']+@'), r'\1[REDACTED]@'),  # https://<token>@github.com
    (re.compile(r'\b(gh[pousr]_)[A-Za-z0-9]{20,}'), r'\1[REDACTED]'),  # GitHub tokens
    (re.compile(r'((?:token|secret|password)["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.I), r'\1[REDACTED]'),
    (re.compile(r'(Bearer\s+)[A-Za-z0-9._-]+', re.I), r'\1[REDACTED]'),
]


def censor_sensitive_data(text: str) -> str:
    """
    Redact credentials from text.

    Non-string values are returned unchanged.
    """
    if not isinstance(text, str):
        return text

    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


# LogRecord attributes that are not user extras
RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the `extra=` and LogContext fields attached to a record."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in RESERVED_ATTRS and not key.startswith("_")
    }


# =============================================================================
# Formatters
# =============================================================================

class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys: timestamp, level, logger, message, extra (when present), and
    exception (type, message, traceback) for records logged with exc_info.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = record_extras(record)
        if extras:
            entry["extra"] = extras

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return censor_sensitive_data(json.dumps(entry, default=str, ensure_ascii=False))


class ConsoleFormatter(logging.Formatter):
    """
    Single-line console output.

    Format: HH:MM:SS LEVEL    logger: message [key=value, ...]
    Level names are colored when writing to a terminal.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        line = f"{timestamp} {level} {record.name}: {record.getMessage()}"

        extras = record_extras(record)
        if extras:
            line += " [" + ", ".join(f"{key}={value}" for key, value in extras.items()) + "]"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()

        return censor_sensitive_data(line)


# =============================================================================
# Log Context
# =============================================================================

class LogContext:
    """
    Adds fields to every record logged inside the block.

    Usage:
        with LogContext(step="build"):
            logger.info("Rendering")  # record.step == "build"
    """

    _context: dict[str, Any] = {}

    def __init__(self, **fields: Any):
        self.fields = fields
        self.previous: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self.previous = LogContext._context.copy()
        LogContext._context.update(self.fields)
        return self

    def __exit__(self, *args: Any) -> None:
        LogContext._context = self.previous

    @classmethod
    def get_context(cls) -> dict[str, Any]:
        return cls._context.copy()


class ContextFilter(logging.Filter):
    """Copies LogContext fields onto records; explicit extras win."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.get_context().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


# =============================================================================
# Setup
# =============================================================================

def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Configure the root logger for a pipeline entry point.

    Replaces any existing root handlers with a stdout handler and, when a
    log file is configured, a rotating JSON file handler.

    Args:
        log_level: Override settings log level
        log_file: Override settings log file path
        log_format: Override settings console format (json or text)
    """
    settings = get_settings()

    level = getattr(logging, (log_level or settings.log_level).upper())
    format_type = (log_format or settings.log_format).lower()
    file_path = settings.get_log_file_path(log_file)

    context_filter = ContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter() if format_type == "json" else ConsoleFormatter())
    handlers: list[logging.Handler] = [console_handler]

    if file_path:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    # Python-Markdown logs extension loading at DEBUG
    logging.getLogger("MARKDOWN").setLevel(logging.WARNING)

    get_logger(__name__).debug(
        "Logging initialized",
        extra={"level": logging.getLevelName(level), "file": str(file_path) if file_path else None},
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name, typically __name__."""
    return logging.getLogger(name)


__all__ = [
    "setup_logging",
    "get_logger",
    "record_extras",
    "LogContext",
    "ContextFilter",
    "JSONFormatter",
    "ConsoleFormatter",
    "censor_sensitive_data",
]
