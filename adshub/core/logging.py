"""Ads Hub — Structured JSON Logging.

One JSON object per line on stdout. Pass context through ``extra``::

    logger.info("Stored snapshot", extra={"provider_id": "meta"})
"""

import logging
import json
import sys
from datetime import datetime, timezone
from adshub.config import settings

# Context keys copied from ``extra`` into the log line
CONTEXT_FIELDS = ("workspace_id", "formula_id", "provider_id", "record_count")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        entry = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Logger ``adshub.<name>`` writing JSON lines at ``settings.log_level``."""
    logger = logging.getLogger(f"adshub.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger
