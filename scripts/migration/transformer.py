"""Validate legacy user records and map them onto Clerk user payloads."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import ValidationError

from scripts.migration.errors import RecordValidationError
from scripts.migration.models import SourceUser, UserPayload

# The legacy export writes a lone double quote for empty text columns
_EMPTY_MARKER = '"'


def validate(raw: Any) -> SourceUser:
    """Schema-check one raw input object. Raises RecordValidationError."""
    if not isinstance(raw, dict):
        raise RecordValidationError(
            f"Expected a JSON object, got {type(raw).__name__}",
            errors=[{"type": "object_type", "loc": [], "msg": "not an object"}],
        )
    try:
        return SourceUser.model_validate(raw)
    except ValidationError as exc:
        raise RecordValidationError(
            f"{exc.error_count()} validation error(s)",
            errors=json.loads(exc.json(include_url=False, include_input=False)),
        ) from exc


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None or value == _EMPTY_MARKER:
        return None
    return value


def split_name(name: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Split a full name into (first, last).

    Exactly two space-separated words become first and last name. Anything
    else goes into first name untouched so it can be fixed by hand in Clerk.
    """
    name = _clean(name)
    if name is None:
        return None, None
    trimmed = name.strip()
    if not trimmed:
        return None, None
    parts = trimmed.split(" ")
    if len(parts) == 2:
        return parts[0], parts[1]
    return trimmed, None


def normalize_org(location: Optional[str]) -> Optional[str]:
    return _clean(location)


def to_payload(record: SourceUser) -> UserPayload:
    first_name, last_name = split_name(record.name)
    return UserPayload(
        external_id=record.user_id,
        email=record.email,
        first_name=first_name,
        last_name=last_name,
        agreed_terms=record.agreed_terms,
        org=normalize_org(record.location),
    )


def to_create_payload(record: SourceUser) -> dict[str, Any]:
    return to_payload(record).create_params()


def changed_fields(existing: dict[str, Any], payload: UserPayload) -> list[str]:
    """Names of the fields where the Clerk user differs from the desired state."""
    metadata = existing.get("public_metadata") or {}
    diffs = []
    if existing.get("external_id") != payload.external_id:
        diffs.append("external_id")
    if existing.get("first_name") != payload.first_name:
        diffs.append("first_name")
    if existing.get("last_name") != payload.last_name:
        diffs.append("last_name")
    if metadata.get("agreedTerms") != payload.agreed_terms:
        diffs.append("agreedTerms")
    if metadata.get("org") != payload.org:
        diffs.append("org")
    if existing.get("create_organization_enabled"):
        diffs.append("create_organization_enabled")
    return diffs


def to_update_payload(existing: dict[str, Any], record: SourceUser) -> Optional[dict[str, Any]]:
    """Update params for an existing user, or None when nothing differs."""
    payload = to_payload(record)
    if not changed_fields(existing, payload):
        return None
    return payload.update_params()
