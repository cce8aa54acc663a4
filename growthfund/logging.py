"""
Logging setup shared by the API process and the growthfund-jobs CLI.

Modules log through logging.getLogger(__name__); this module only decides
where those records go and how they look. Two output formats:

  standard  — "time | LEVEL | logger | message", for terminals
  json      — one JSON object per line, for log shippers

Fields passed with `extra=` (e.g. logger.info("...", extra={"account_id": id}))
appear as top-level keys in the JSON output.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "stripe")


class JsonFormatter(logging.Formatter):
    """Render each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """
    Route all log records to stdout with the chosen format.

    Safe to call more than once: existing root handlers are replaced, so the
    lifespan and the CLI never double-log.

    Args:
        level: Level name (DEBUG, INFO, ...). Unknown names fall back to INFO.
        format_type: "json" for structured output, anything else for the
                     human-readable format.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    # Client libraries log every request at INFO
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
