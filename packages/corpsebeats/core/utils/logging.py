"""Logging setup shared by the CLI and the HTTP server.

Plain text goes to stdout by default. `structured=True` switches to one JSON
object per line, carrying any `extra=` fields (run_id, round, sample index)
under "context".
"""

from __future__ import annotations

from datetime import UTC, datetime
import functools
import inspect
import json
import logging
import sys
import time
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that drown out chain progress below these levels
NOISY_LOGGERS = {
    "httpx": logging.ERROR,
    "httpcore": logging.ERROR,
    "asyncio": logging.ERROR,
    "uvicorn.access": logging.WARNING,
}

_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class StructuredJSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record.

    {"level": "INFO", "message": "...", "timestamp": "<iso8601 utc>",
     "context": {"logger_name": ..., "module": ..., "function": ..., "line": ..., <extras>}}
    """

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {
            "logger_name": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        context.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            context["error_type"] = exc_type.__name__ if exc_type else None
            context["error_message"] = str(exc_value) if exc_value else None
            context["stack_trace"] = record.exc_text or self.formatException(record.exc_info)

        return json.dumps(
            {
                "level": record.levelname,
                "message": record.getMessage(),
                "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "context": context,
            },
            default=str,
        )


def configure_logging(
    level: str = "INFO",
    format_string: str | None = None,
    filename: str | None = None,
    structured: bool = False,
) -> None:
    """Install a single root handler, replacing whatever was there.

    Args:
        level: Level name, case-insensitive
        format_string: Text format; ignored when structured
        filename: Log file path; stdout when None
        structured: Emit JSON lines instead of text

    Examples:
        >>> configure_logging(level="INFO")
        >>> configure_logging(level="DEBUG", structured=True, filename="corpse.jsonl")
    """
    handler: logging.Handler = (
        logging.FileHandler(filename) if filename else logging.StreamHandler(sys.stdout)
    )
    handler.setFormatter(
        StructuredJSONFormatter()
        if structured
        else logging.Formatter(format_string or DEFAULT_FORMAT)
    )
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)


def get_logger(name: str, **context: Any) -> logging.Logger | logging.LoggerAdapter:
    """Return the named logger, bound to `context` when any is given."""
    base = logging.getLogger(name)
    return logging.LoggerAdapter(base, context) if context else base


def log_performance(func):
    """Log the wall time of a sync or async callable at DEBUG."""
    timing_logger = logging.getLogger(func.__module__)

    def _report(start: float) -> None:
        timing_logger.debug("%s took %.3fs", func.__qualname__, time.perf_counter() - start)

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _report(start)

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            _report(start)

    return wrapper
