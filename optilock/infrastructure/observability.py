"""Structured Logging — JSON formatter and setup for lock-protocol observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (entity_type, entity_id, expected_version, affected_rows,
      outcome, error_code) surfaced when present
    - JSON format in production, human-readable in development

Design Decisions:
    - Lock-protocol fields ride on the record via `extra=`; EXTRA_FIELDS is the
      single list of what a write attempt reports (ids, versions, row count, outcome)
    - Values serialised with default=str so entity ids of any type stay loggable
    - setup_logging called once by the host application on startup
"""

import logging
import json
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "entity_type", "entity_id", "expected_version", "affected_rows",
    "outcome", "error_code", "path",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s — %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
