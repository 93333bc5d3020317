"""GitHub Reporting - weekly issue and pull request reports per assignee.

Records logged while a reporting cycle runs carry that cycle's id, so one
week's collection can be followed across both collectors in the output.
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | cycle=%(cycle_id)s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Set by ReportingService.run_cycle, "-" outside a cycle
current_cycle_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "ghreporting_cycle_id", default="-"
)


class CycleContextFilter(logging.Filter):
    """Stamps each record with the id of the reporting cycle in progress."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.cycle_id = current_cycle_id.get()
        return True


class JsonLineFormatter(logging.Formatter):
    """Renders a record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "cycle_id": getattr(record, "cycle_id", "-"),
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonLineFormatter()
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)


def setup_logging(
    level: Optional[str] = None,
    log_format: str = "text",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Attach the single ``ghreporting`` handler.

    Reports are printed on stdout, so logs default to stderr. Calling this
    again replaces the handler instead of stacking another one.

    Args:
        level: Level name, INFO when omitted or unknown.
        log_format: 'text' or 'json'.
        stream: Destination, stderr when omitted.

    Returns:
        The ``ghreporting`` logger.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_make_formatter(log_format))
    handler.addFilter(CycleContextFilter())

    logger = logging.getLogger("ghreporting")
    logger.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False

    return logger


__version__ = "0.1.0"
__all__ = [
    "setup_logging",
    "current_cycle_id",
    "CycleContextFilter",
    "JsonLineFormatter",
    "__version__",
]
