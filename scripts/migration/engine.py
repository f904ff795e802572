"""Sequential migration of an input file of legacy users into Clerk."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional, Sequence

from scripts.migration.audit import AuditLog
from scripts.migration.errors import ConfigurationError, MigrationError, RecordValidationError
from scripts.migration.governor import RateLimitGovernor
from scripts.migration.models import MigrationOutcome, RecordOutcome
from scripts.migration.reconciler import Reconciler
from scripts.migration import transformer

logger = logging.getLogger("migration.engine")

PROGRESS_EVERY = 100
UNEXPECTED_ERROR = "unexpected_error"


def load_source_records(path: str) -> list[Any]:
    """Read the input file: a JSON array of user objects."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        raise ConfigurationError(f"Input file not found: {path}")
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Input file {path} is not valid JSON: {exc}")
    if not isinstance(data, list):
        raise ConfigurationError(f"Input file {path} must contain a JSON array")
    return data


class MigrationEngine:
    """Process records one at a time: pace, validate, reconcile, audit failures.

    Only configuration errors escape run(). Any other failure raised for a
    single record becomes an audit entry and the loop moves on to the next
    record; exceptions outside the MigrationError hierarchy are audited under
    the unexpected_error category.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        governor: RateLimitGovernor,
        audit: AuditLog,
        offset: int = 0,
    ) -> None:
        if offset < 0:
            raise ConfigurationError("offset must be >= 0")
        self.reconciler = reconciler
        self.governor = governor
        self.audit = audit
        self.offset = offset

    def run(self, raw_records: Sequence[Any]) -> MigrationOutcome:
        records = list(raw_records[self.offset:])
        outcome = MigrationOutcome(total=len(records), audit_log=self.audit.path)
        started = time.monotonic()
        logger.info(
            "Migrating %d users with an offset of %d",
            len(records),
            self.offset,
            extra={"records": len(records), "offset": self.offset},
        )

        for index, raw in enumerate(records, start=1):
            self.governor.pace()
            result = self.process(raw)
            outcome.record(result, _source_id(raw))
            if index % PROGRESS_EVERY == 0:
                logger.info(
                    "Migrated %d/%d users",
                    index,
                    len(records),
                    extra={"records": index, "offset": self.offset + index},
                )

        logger.info(
            "Migration complete: %s",
            outcome.to_dict(),
            extra={"records": outcome.processed, "duration_s": round(time.monotonic() - started, 2)},
        )
        return outcome

    def process(self, raw: Any) -> RecordOutcome:
        source_id = _source_id(raw)
        try:
            record = transformer.validate(raw)
        except RecordValidationError as exc:
            self._audit(source_id, exc)
            return RecordOutcome.INVALID

        try:
            return self.governor.call(
                lambda: self.reconciler.reconcile(record), user_id=record.user_id
            )
        except ConfigurationError:
            raise
        except MigrationError as exc:
            self._audit(source_id, exc)
            return RecordOutcome.FAILED
        except Exception as exc:
            logger.exception(
                "Unexpected failure for user",
                extra={"user_id": source_id, "category": UNEXPECTED_ERROR},
            )
            self.audit.record(
                source_id,
                {"error": type(exc).__name__, "message": str(exc)},
                category=UNEXPECTED_ERROR,
            )
            return RecordOutcome.FAILED

    def _audit(self, source_id: Optional[str], exc: MigrationError) -> None:
        logger.warning(
            "User failed: %s",
            exc,
            extra={"user_id": source_id, "category": exc.category},
        )
        self.audit.record(source_id, exc.to_dict(), category=exc.category)


def _source_id(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        value = raw.get("userId")
        return value if isinstance(value, str) else None
    return None
