"""Data models: validated source users, pages, cursors and run outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool, StrictStr


class SourceUser(BaseModel):
    """One legacy user record as it appears in the input file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    user_id: StrictStr = Field(alias="userId", min_length=1)
    email: EmailStr
    name: Optional[StrictStr] = None
    location: Optional[StrictStr] = None
    agreed_terms: StrictBool = Field(alias="agreedTerms")


@dataclass(frozen=True)
class UserPayload:
    """Fields the migration writes to a Clerk user."""

    external_id: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    agreed_terms: bool
    org: Optional[str]

    @property
    def public_metadata(self) -> dict[str, Any]:
        return {
            "agreedTerms": self.agreed_terms,
            # Email consent is not stored in the legacy DB
            "emailConsent": False,
            "org": self.org,
        }

    def create_params(self) -> dict[str, Any]:
        return {
            "external_id": self.external_id,
            "email_address": [self.email],
            "first_name": self.first_name,
            "last_name": self.last_name,
            "skip_password_requirement": True,
            "public_metadata": self.public_metadata,
        }

    def update_params(self) -> dict[str, Any]:
        return {
            "external_id": self.external_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "public_metadata": self.public_metadata,
            "create_organization_enabled": False,
            "delete_self_enabled": False,
        }


@dataclass
class Page:
    """One page of a remote collection. total_count may be None after the first page."""

    items: list[dict[str, Any]]
    total_count: Optional[int] = None


@dataclass
class PaginationCursor:
    page_size: int
    offset: int = 0
    fetched: int = 0
    total_count: Optional[int] = None

    @property
    def exhausted(self) -> bool:
        return self.total_count is not None and self.fetched >= self.total_count

    def advance(self, received: int) -> None:
        self.fetched += received
        self.offset += self.page_size


class RecordOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    INVALID = "invalid"


@dataclass
class MigrationOutcome:
    """Counters for one invocation. Only the engine's loop writes to it."""

    total: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    invalid: int = 0
    audit_log: Optional[str] = None
    by_user: dict[str, RecordOutcome] = field(default_factory=dict, repr=False)

    def record(self, outcome: RecordOutcome, user_id: Optional[str] = None) -> None:
        attr = outcome.value
        setattr(self, attr, getattr(self, attr) + 1)
        if user_id is not None:
            self.by_user[user_id] = outcome

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.unchanged + self.failed + self.invalid

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "failed": self.failed,
            "invalid": self.invalid,
            "audit_log": self.audit_log,
        }
