"""Admissions Analytics — Structured JSON Logging.

Every module logs through ``get_logger(name)``. Anything passed as
``extra={...}`` lands as a top-level key of the JSON line, so dashboards can
filter on ``metric_type``, ``campus``, ``row_count`` and friends.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

from admissions.config import settings

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_") and value is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Named ``admissions.<name>`` logger writing JSON to stdout."""
    logger = logging.getLogger(f"admissions.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger


@contextmanager
def timed(logger: logging.Logger, message: str, **extra: Any) -> Iterator[Dict[str, Any]]:
    """Log ``message`` with ``duration_ms`` once the block finishes.

    The yielded dict is merged into ``extra``, so the block can attach
    results such as ``row_count``. Nothing is logged if the block raises.
    """
    fields: Dict[str, Any] = dict(extra)
    started = time.perf_counter()
    yield fields
    fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
    logger.info(message, extra=fields)
