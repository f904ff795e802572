"""JSON log lines for migration, backup and org-id runs.

Per-record progress and failures are logged with the source user id and
audit category attached, so a run can be followed (or grepped) without
opening the audit log.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Optional

LOGGER_NAMESPACE = "migration"

# Attributes passed through ``extra=`` that are copied into the JSON line
CONTEXT_FIELDS = (
    "user_id",
    "category",
    "entity_type",
    "records",
    "offset",
    "attempt",
    "delay_s",
    "duration_s",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                line[key] = value
        if record.exc_info and record.exc_info[1]:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def configure_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> logging.Handler:
    """Route the "migration" logger tree to *stream* (stderr by default).

    Stdout is left to the CLI's summary lines. Calling this again replaces
    the previous handler.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())
    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False
    return handler
