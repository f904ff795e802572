"""Export Clerk users, organizations and memberships to CSV files."""

from __future__ import annotations

import csv
import json
import logging
import os
from datetime import datetime, timezone
from typing import IO, Any, Optional

from scripts.migration.audit import run_timestamp
from scripts.migration.client import ClerkClient
from scripts.migration.paginator import Paginator

logger = logging.getLogger("migration.backup")

USER_HEADERS = [
    ("id", "User ID"),
    ("external_id", "Database ID"),
    ("email", "Primary Email Address"),
    ("first_name", "First Name"),
    ("last_name", "Last Name"),
    ("created_at", "Created"),
    ("public_metadata", "Public Metadata"),
    ("can_delete_self", "Delete Account Enabled"),
    ("can_create_org", "Create Org Enabled"),
    ("banned", "Banned"),
    ("locked", "Locked"),
    ("external_accounts", "External Account Data"),
]

ORG_HEADERS = [
    ("id", "Org ID"),
    ("name", "Name"),
    ("slug", "Slug"),
    ("created_at", "Created At"),
    ("max_allowed_members", "Member Limit"),
    ("creator_id", "Creator User ID"),
    ("domains_json", "Domains"),
]

ORG_MEMBERSHIP_HEADERS = [
    ("org_id", "Org ID"),
    ("user_id", "User ID"),
    ("org_name", "Org Name"),
    ("user_email", "User Email (usually)"),
]


def _timestamp(ms: Optional[int]) -> str:
    if ms is None:
        return ""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def primary_email(user: dict[str, Any]) -> str:
    primary_id = user.get("primary_email_address_id")
    for address in user.get("email_addresses") or []:
        if address.get("id") == primary_id:
            return address.get("email_address") or ""
    return ""


def user_row(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": user["id"],
        "external_id": user.get("external_id") or "",
        "email": primary_email(user),
        "first_name": user.get("first_name") or "",
        "last_name": user.get("last_name") or "",
        "created_at": _timestamp(user.get("created_at")),
        "public_metadata": json.dumps(user.get("public_metadata") or {}),
        "can_delete_self": user.get("delete_self_enabled"),
        "can_create_org": user.get("create_organization_enabled"),
        "banned": user.get("banned"),
        "locked": user.get("locked"),
        "external_accounts": json.dumps(user.get("external_accounts") or []),
    }


def org_domain(domain: dict[str, Any]) -> dict[str, Any]:
    verification = domain.get("verification") or {}
    return {
        "domain": domain.get("name"),
        "verified": verification.get("status") == "verified",
        "mode": domain.get("enrollment_mode"),
    }


def org_row(org: dict[str, Any], domains: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "id": org["id"],
        "name": org.get("name"),
        "slug": org.get("slug") or "",
        "created_at": _timestamp(org.get("created_at")),
        "max_allowed_members": org.get("max_allowed_memberships"),
        "creator_id": org.get("created_by"),
        "domains_json": json.dumps([org_domain(d) for d in domains]),
    }


def membership_row(membership: dict[str, Any]) -> Optional[dict[str, Any]]:
    """None for memberships that carry no public user data."""
    user_data = membership.get("public_user_data") or {}
    if not user_data.get("user_id"):
        return None
    org = membership.get("organization") or {}
    return {
        "org_id": org.get("id"),
        "org_name": org.get("name"),
        "user_id": user_data["user_id"],
        "user_email": user_data.get("identifier") or "",
    }


class CsvBackupWriter:
    """Writes the header on open, then one row per write() on the same handle."""

    def __init__(self, path: str, headers: list[tuple[str, str]]) -> None:
        self.path = path
        self._headers = headers
        self._fh: Optional[IO[str]] = None
        self._writer: Optional[csv.DictWriter] = None
        self.rows_written = 0

    def __enter__(self) -> "CsvBackupWriter":
        self._fh = open(self.path, "w", newline="", encoding="utf-8")
        csv.writer(self._fh).writerow([title for _, title in self._headers])
        self._writer = csv.DictWriter(self._fh, fieldnames=[key for key, _ in self._headers])
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            self._writer = None

    def write(self, row: dict[str, Any]) -> None:
        if self._writer is None:
            raise ValueError(f"{self.path} is not open")
        self._writer.writerow(row)
        self.rows_written += 1


class BackupExporter:
    def __init__(
        self,
        client: ClerkClient,
        output_dir: str = ".",
        page_size: int = 500,
        timestamp: Optional[str] = None,
    ) -> None:
        self.client = client
        self.output_dir = output_dir
        self.page_size = page_size
        self.timestamp = timestamp or run_timestamp()

    def _path(self, prefix: str) -> str:
        return os.path.join(self.output_dir, f"{prefix}-{self.timestamp}.csv")

    def run(self) -> dict[str, int]:
        results: dict[str, int] = {}
        results["users"] = self.export_users()
        orgs = Paginator(
            lambda offset, limit: self.client.list_organizations(offset, limit, "+created_at"),
            self.page_size,
            "organizations",
        ).fetch_all()
        results["organizations"] = self.export_organizations(orgs)
        results["memberships"] = self.export_memberships(orgs)
        return results

    def export_users(self) -> int:
        logger.info("Retrieving users", extra={"entity_type": "users"})
        users = Paginator(
            lambda offset, limit: self.client.list_users(offset, limit, "-created_at"),
            self.page_size,
            "users",
        ).fetch_all()

        with CsvBackupWriter(self._path("user-backup"), USER_HEADERS) as writer:
            for user in users:
                writer.write(user_row(user))
        logger.info(
            "Exported users to %s", writer.path,
            extra={"entity_type": "users", "records": writer.rows_written},
        )
        return writer.rows_written

    def export_organizations(self, orgs: list[dict[str, Any]]) -> int:
        with CsvBackupWriter(self._path("org-backup"), ORG_HEADERS) as writer:
            for org in orgs:
                org_id = org["id"]
                domains = Paginator(
                    lambda offset, limit: self.client.list_organization_domains(org_id, offset, limit),
                    self.page_size,
                    "organization_domains",
                ).fetch_all()
                writer.write(org_row(org, domains))
        logger.info(
            "Exported organizations to %s", writer.path,
            extra={"entity_type": "organizations", "records": writer.rows_written},
        )
        return writer.rows_written

    def export_memberships(self, orgs: list[dict[str, Any]]) -> int:
        with CsvBackupWriter(self._path("org-member-backup"), ORG_MEMBERSHIP_HEADERS) as writer:
            for org in orgs:
                org_id = org["id"]
                memberships = Paginator(
                    lambda offset, limit: self.client.list_organization_memberships(
                        org_id, offset, limit
                    ),
                    self.page_size,
                    "organization_memberships",
                ).fetch_all()
                for membership in memberships:
                    row = membership_row(membership)
                    if row is not None:
                        writer.write(row)
        logger.info(
            "Exported organization memberships to %s", writer.path,
            extra={"entity_type": "organization_memberships", "records": writer.rows_written},
        )
        return writer.rows_written
