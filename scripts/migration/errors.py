"""Error taxonomy shared by the client, the engine and the CLI."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import requests


class ErrorKind(str, Enum):
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    OTHER = "other"


CONFLICT_STATUS = 422
RATE_LIMIT_STATUS = 429


class MigrationError(Exception):
    """Base class for everything the migration tooling raises on purpose."""

    category = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class ConfigurationError(MigrationError, ValueError):
    """Missing or invalid configuration. Always fatal, raised before any work."""

    category = "configuration"


class RecordValidationError(MigrationError):
    """A source record failed schema validation."""

    category = "validation"

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class TransportError(MigrationError):
    """The request never produced a usable response."""

    category = "transport_error"


class ClerkAPIError(MigrationError):
    """Non-2xx response from the Clerk Backend API, tagged with an ErrorKind."""

    category = "api_error"

    def __init__(
        self,
        status: int,
        kind: ErrorKind,
        errors: Optional[list[dict[str, Any]]] = None,
        trace_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(message or f"Clerk API returned {status} ({kind.value})")
        self.status = status
        self.kind = kind
        self.errors = errors or []
        self.trace_id = trace_id

    @staticmethod
    def kind_for_status(status: int) -> ErrorKind:
        if status == CONFLICT_STATUS:
            return ErrorKind.CONFLICT
        if status == RATE_LIMIT_STATUS:
            return ErrorKind.RATE_LIMITED
        return ErrorKind.OTHER

    @classmethod
    def from_response(cls, resp: requests.Response) -> "ClerkAPIError":
        errors: list[dict[str, Any]] = []
        trace_id = None
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            errors = body.get("errors") or []
            trace_id = body.get("clerk_trace_id")
        elif resp.text:
            errors = [{"message": resp.text[:1000]}]
        return cls(
            status=resp.status_code,
            kind=cls.kind_for_status(resp.status_code),
            errors=errors,
            trace_id=trace_id,
        )

    @property
    def is_conflict(self) -> bool:
        return self.kind is ErrorKind.CONFLICT

    @property
    def is_rate_limited(self) -> bool:
        return self.kind is ErrorKind.RATE_LIMITED

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "status": self.status,
            "kind": self.kind.value,
            "errors": self.errors,
            "clerk_trace_id": self.trace_id,
        }


class RateLimitExhaustedError(MigrationError):
    """Rate-limit retries for one record exceeded the configured budget."""

    category = "rate_limit_exhausted"

    def __init__(self, attempts: int, last_error: ClerkAPIError) -> None:
        super().__init__(f"Still rate limited after {attempts} cooldowns")
        self.attempts = attempts
        self.last_error = last_error

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["attempts"] = self.attempts
        data["last_error"] = self.last_error.to_dict()
        return data


class UnresolvedConflictError(MigrationError):
    """Create reported a conflict but no existing user has the record's email."""

    category = "unresolved_conflict"
