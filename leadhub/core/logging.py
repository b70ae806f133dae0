"""LeadHub — Structured JSON Logging.

Every `leadhub.*` logger writes through one stdout handler attached to the
package root logger. Run context (account, form, run type, timing) is passed
with `extra=` and lands as top-level JSON keys.
"""

import logging
import json
import sys
import time
from datetime import datetime, timezone
from typing import Sequence

from leadhub.config import settings

ROOT_LOGGER = "leadhub"
RUN_CONTEXT_FIELDS = ("account_id", "form_id", "run_type", "duration_ms", "status_code")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's own time."""

    def __init__(self, context_fields: Sequence[str] = RUN_CONTEXT_FIELDS):
        super().__init__()
        self.context_fields = tuple(context_fields)

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {key: getattr(record, key) for key in self.context_fields if hasattr(record, key)}
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
        root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return root


def get_logger(name: str) -> logging.Logger:
    """Child of the `leadhub` logger, e.g. `leadhub.sync.leads`."""
    _root()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def elapsed_ms(started: float) -> int:
    """Milliseconds since a `time.monotonic()` reading, for `duration_ms`."""
    return int((time.monotonic() - started) * 1000)
