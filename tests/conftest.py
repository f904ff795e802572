"""
Shared pytest fixtures for the migration tests.

Provides:
- FakeClerk: in-memory stand-in for ClerkClient with scriptable failures
- RecordingSleep: sleep replacement that records requested durations
- api_error(): builds tagged ClerkAPIError instances
"""

from __future__ import annotations

import copy
import itertools
from typing import Any, Optional

import pytest

from scripts.migration.errors import ClerkAPIError
from scripts.migration.models import Page


def api_error(status: int, message: str = "") -> ClerkAPIError:
    return ClerkAPIError(
        status=status,
        kind=ClerkAPIError.kind_for_status(status),
        errors=[{"code": f"status_{status}", "message": message or f"HTTP {status}"}],
        trace_id="trace_test",
    )


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    def count(self, seconds: float) -> int:
        return sum(1 for s in self.calls if s == seconds)


class FakeClerk:
    """In-memory Clerk instance.

    create_failures / update_failures are queues of exceptions raised (and
    consumed) before the next create/update does any work.
    """

    def __init__(self) -> None:
        self.users: list[dict[str, Any]] = []
        self.organizations: list[dict[str, Any]] = []
        self.memberships: dict[str, list[dict[str, Any]]] = {}
        self.domains: dict[str, list[dict[str, Any]]] = {}
        self.create_failures: list[Exception] = []
        self.update_failures: list[Exception] = []
        self.lookup_failures: list[Exception] = []
        self.calls: list[tuple[str, Any]] = []
        self.closed = False
        self._ids = itertools.count(1)

    # -- helpers ---------------------------------------------------------

    def add_user(
        self,
        email: str,
        external_id: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        public_metadata: Optional[dict[str, Any]] = None,
        create_organization_enabled: bool = False,
        **extra: Any,
    ) -> dict[str, Any]:
        n = next(self._ids)
        user = {
            "id": f"user_{n}",
            "external_id": external_id,
            "first_name": first_name,
            "last_name": last_name,
            "public_metadata": public_metadata or {},
            "create_organization_enabled": create_organization_enabled,
            "delete_self_enabled": True,
            "primary_email_address_id": f"idn_{n}",
            "email_addresses": [{"id": f"idn_{n}", "email_address": email}],
            "created_at": 1700000000000 + n,
            "banned": False,
            "locked": False,
            "external_accounts": [],
        }
        user.update(extra)
        self.users.append(user)
        return user

    def _emails(self, user: dict[str, Any]) -> list[str]:
        return [e["email_address"] for e in user["email_addresses"]]

    def calls_to(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]

    # -- ClerkClient surface --------------------------------------------

    def close(self) -> None:
        self.closed = True

    def create_user(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("create_user", copy.deepcopy(payload)))
        if self.create_failures:
            raise self.create_failures.pop(0)
        email = payload["email_address"][0]
        if any(email in self._emails(u) for u in self.users):
            raise api_error(422, "That email address is taken.")
        return self.add_user(
            email,
            external_id=payload.get("external_id"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            public_metadata=copy.deepcopy(payload.get("public_metadata")),
        )

    def get_users_by_email(self, email: str) -> list[dict[str, Any]]:
        self.calls.append(("get_users_by_email", email))
        if self.lookup_failures:
            raise self.lookup_failures.pop(0)
        return [copy.deepcopy(u) for u in self.users if email in self._emails(u)]

    def update_user(self, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("update_user", (user_id, copy.deepcopy(payload))))
        if self.update_failures:
            raise self.update_failures.pop(0)
        for user in self.users:
            if user["id"] == user_id:
                user.update(copy.deepcopy(payload))
                return user
        raise api_error(404, "not found")

    def _slice(self, items: list[dict[str, Any]], offset: int, limit: int) -> Page:
        self.calls.append(("list", (offset, limit)))
        return Page(items=items[offset:offset + limit], total_count=len(items))

    def list_users(self, offset: int = 0, limit: int = 500, order_by: str = "-created_at") -> Page:
        ordered = sorted(
            self.users, key=lambda u: u["created_at"], reverse=order_by.startswith("-")
        )
        page = self._slice(ordered, offset, limit)
        if offset:
            page.total_count = None
        return page

    def list_organizations(self, offset: int = 0, limit: int = 500, order_by: str = "+created_at") -> Page:
        return self._slice(self.organizations, offset, limit)

    def list_organization_memberships(self, org_id: str, offset: int = 0, limit: int = 500) -> Page:
        return self._slice(self.memberships.get(org_id, []), offset, limit)

    def list_organization_domains(self, org_id: str, offset: int = 0, limit: int = 500) -> Page:
        return self._slice(self.domains.get(org_id, []), offset, limit)


@pytest.fixture
def fake_clerk() -> FakeClerk:
    return FakeClerk()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def jane() -> dict[str, Any]:
    return {"userId": "u1", "email": "a@x.com", "name": "Jane Doe", "agreedTerms": True}
