"""Map legacy team ids onto Clerk organization ids by name."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from scripts.migration.client import ClerkClient
from scripts.migration.paginator import Paginator


def list_organization_ids(client: ClerkClient, page_size: int = 500) -> list[dict[str, Any]]:
    orgs = Paginator(
        lambda offset, limit: client.list_organizations(offset, limit, "+created_at"),
        page_size,
        "organizations",
    ).fetch_all()
    return [{"id": org["id"], "name": org.get("name")} for org in orgs]


@dataclass
class OrgIdComparison:
    only_in_teams: list[str] = field(default_factory=list)
    only_in_orgs: list[str] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)


def format_update_sql(team_id: str, org_id: str, table: str = "public.queries", column: str = "org_id") -> str:
    return f"UPDATE {table} SET {column} = '{org_id}' WHERE {column} = '{team_id}';"


def compare_team_org_ids(
    teams: list[dict[str, Any]],
    orgs: list[dict[str, Any]],
    table: str = "public.queries",
    column: str = "org_id",
) -> OrgIdComparison:
    """Match teams to organizations by exact name and build the remap statements."""
    team_names = {t["name"] for t in teams}
    org_names = {o["name"] for o in orgs}

    result = OrgIdComparison(
        only_in_teams=sorted(team_names - org_names),
        only_in_orgs=sorted(org_names - team_names),
    )
    for team in teams:
        for org in orgs:
            if team["name"] == org["name"]:
                result.statements.append(
                    format_update_sql(team["id"], org["id"], table, column)
                )
    return result
