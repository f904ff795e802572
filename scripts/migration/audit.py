"""Append-only per-run failure log.

Each entry is a pretty-printed JSON object preceded by a newline, so the
file is a sequence of JSON values rather than one JSON document.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

logger = logging.getLogger("migration.audit")


def run_timestamp(now: Optional[datetime] = None) -> str:
    """YYYY-MM-DDTHH:MM:SS, used to name per-run files."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S")


class AuditLog:
    def __init__(self, path: str) -> None:
        self.path = path
        self.entries_written = 0

    @classmethod
    def for_run(cls, output_dir: str = ".", timestamp: Optional[str] = None) -> "AuditLog":
        name = f"migration-log-{timestamp or run_timestamp()}.json"
        return cls(os.path.join(output_dir, name))

    def record(
        self,
        source_id: Optional[str],
        payload: dict[str, Any],
        category: str = "api_error",
    ) -> None:
        """Append one entry. Never raises.

        A payload that is not a mapping is stored under the "error" key.
        """
        if not isinstance(payload, Mapping):
            payload = {"error": payload}
        entry = {
            "userId": source_id,
            "category": category,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        entry.update(payload)
        try:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write("\n" + json.dumps(entry, indent=2, default=str))
        except (OSError, TypeError, ValueError):
            logger.exception(
                "Could not write audit entry to %s",
                self.path,
                extra={"user_id": source_id, "category": category},
            )
            return
        self.entries_written += 1


def read_audit_log(path: str) -> list[dict[str, Any]]:
    """Parse an audit log back into its entries."""
    with open(path, encoding="utf-8") as fh:
        text = fh.read()
    decoder = json.JSONDecoder()
    entries = []
    pos = 0
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if pos >= len(text):
            return entries
        entry, pos = decoder.raw_decode(text, pos)
        entries.append(entry)
