# backend/app/utils/logging.py
"""
Logging configuration for the Stock Portfolio Tracker.

One call to setup_logging() at startup configures the root logger:
- Level from settings.log_level (DEBUG in dev, INFO in prod)
- Text or JSON output (settings.log_format)
- Correlation id and owner id stamped on every record
- Chatty HTTP client loggers raised to WARNING

Modules simply do `logger = logging.getLogger(__name__)`.

Log Levels:
    DEBUG   - Raw provider payload sizes, per-quote timings
    INFO    - Ledger mutations, valuation totals
    WARNING - Failed quotes, retries, skipped price rows
    ERROR   - Unexpected exceptions, provider errors we cannot classify

Text format:
    2024-01-15 10:30:00 | INFO     | 3f2a... | user-1 | app.services.ledger.service | Merged into position 4 ...
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from app.config import settings
from app.utils.context import get_correlation_id, get_owner_id

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TEXT_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(owner_id)s | %(name)s | %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "-"
NO_OWNER_ID = "-"

NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "urllib3",
    "asyncio",
    "multipart",
]

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# LogRecord attributes that are not user-supplied `extra` fields
_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "correlation_id", "owner_id", "message", "taskName",
})


# =============================================================================
# FILTER / FORMATTER
# =============================================================================

class RequestContextFilter(logging.Filter):
    """Copies the request's correlation id and owner id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        record.owner_id = get_owner_id() or NO_OWNER_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line, for log aggregation in production.

    {"timestamp": "...", "level": "WARNING", "logger": "app.services.market_data.aggregator",
     "correlation_id": "...", "owner_id": "user-1", "message": "Quote for XYZ failed: ...",
     "extra": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "owner_id": getattr(record, "owner_id", NO_OWNER_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            try:
                json.dumps(value)
                extra[key] = value
            except (TypeError, ValueError):
                extra[key] = str(value)

        if extra:
            entry["extra"] = extra

        return json.dumps(entry)


# =============================================================================
# SETUP
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure the root logger. Call once, before the FastAPI app is built.

    Args:
        level: Overrides settings.log_level
        log_format: "text" or "json"; overrides settings.log_format
        suppress_noisy_loggers: Raise NOISY_LOGGERS to WARNING

    Raises:
        ValueError: Unknown level name
    """
    level_name = (level or settings.log_level).upper().strip()
    if level_name not in LEVELS:
        raise ValueError(f"Invalid log level: '{level_name}'. Valid levels are: {', '.join(LEVELS)}")

    format_type = (log_format or settings.log_format or "text").lower()

    handler = logging.StreamHandler(sys.stdout)
    if format_type == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=DEFAULT_TEXT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.setLevel(LEVELS[level_name])
    root.handlers.clear()
    root.addHandler(handler)

    if suppress_noisy_loggers:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level_name}, format={format_type}",
        extra={"config": {"level": level_name, "format": format_type}},
    )
