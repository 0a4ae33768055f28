"""Structured JSON logging configuration.

Every line logged while a query runs carries its `table` and `query_id`,
including lines from the REST client and from enrichment worker threads,
so one query's API calls can be picked out of a shared log stream.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Iterator, Optional

_EXTRA_KEYS = ("table", "query_id", "endpoint", "method", "status", "rows", "duration_s")

_query_fields: contextvars.ContextVar[Optional[dict]] = contextvars.ContextVar(
    "okta_tables_query_fields", default=None
)


@contextlib.contextmanager
def query_scope(table: str, query_id: str) -> Iterator[None]:
    """Tag log lines emitted in this context with the running query."""
    token = _query_fields.set({"table": table, "query_id": query_id})
    try:
        yield
    finally:
        _query_fields.reset(token)


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.threadName.startswith("hydrate-"):
            log_entry["thread"] = record.threadName
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        log_entry.update(_query_fields.get() or {})
        for key in _EXTRA_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "INFO") -> None:
    """Set up the okta_tables logger with the JSON formatter on stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger("okta_tables")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False
