"""Create-or-update reconciliation of one source user against Clerk."""

from __future__ import annotations

import logging

from scripts.migration.client import ClerkClient
from scripts.migration.errors import ClerkAPIError, UnresolvedConflictError
from scripts.migration.models import RecordOutcome, SourceUser
from scripts.migration import transformer

logger = logging.getLogger("migration.reconciler")


class Reconciler:
    """Try to create the user first; on a conflict, diff and update the existing one.

    Creating first saves a lookup for every new user. Re-running the same
    input file lands on the conflict path and only writes real changes.
    """

    def __init__(self, client: ClerkClient) -> None:
        self.client = client

    def reconcile(self, record: SourceUser) -> RecordOutcome:
        try:
            self.client.create_user(transformer.to_create_payload(record))
        except ClerkAPIError as exc:
            if not exc.is_conflict:
                raise
            return self._update_existing(record)
        logger.debug("Created user", extra={"user_id": record.user_id})
        return RecordOutcome.CREATED

    def _update_existing(self, record: SourceUser) -> RecordOutcome:
        matches = self.client.get_users_by_email(record.email)
        if not matches:
            raise UnresolvedConflictError(
                f"Create for {record.user_id} conflicted but no user has email {record.email}"
            )
        if len(matches) > 1:
            logger.warning(
                "%d users share email %s, updating the first",
                len(matches),
                record.email,
                extra={"user_id": record.user_id},
            )
        existing = matches[0]
        if not isinstance(existing, dict) or not existing.get("id"):
            raise UnresolvedConflictError(
                f"Lookup for {record.email} returned a user without an id"
            )

        update = transformer.to_update_payload(existing, record)
        if update is None:
            return RecordOutcome.UNCHANGED

        self.client.update_user(existing["id"], update)
        logger.debug(
            "Updated user %s", existing["id"], extra={"user_id": record.user_id}
        )
        return RecordOutcome.UPDATED
