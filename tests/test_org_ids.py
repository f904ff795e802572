"""Tests for team-to-organization id mapping."""

from scripts.migration.org_ids import (
    compare_team_org_ids,
    format_update_sql,
    list_organization_ids,
)


class TestCompare:
    def test_matches_by_name(self):
        teams = [{"id": "t1", "name": "Acme"}, {"id": "t2", "name": "Initech"}]
        orgs = [{"id": "org_1", "name": "Acme"}, {"id": "org_2", "name": "Globex"}]

        result = compare_team_org_ids(teams, orgs)

        assert result.only_in_teams == ["Initech"]
        assert result.only_in_orgs == ["Globex"]
        assert result.statements == [
            "UPDATE public.queries SET org_id = 'org_1' WHERE org_id = 't1';"
        ]

    def test_custom_table_and_column(self):
        sql = format_update_sql("t1", "org_1", table="app.reports", column="team_id")
        assert sql == "UPDATE app.reports SET team_id = 'org_1' WHERE team_id = 't1';"

    def test_duplicate_names_produce_every_pair(self):
        teams = [{"id": "t1", "name": "Acme"}]
        orgs = [{"id": "org_1", "name": "Acme"}, {"id": "org_2", "name": "Acme"}]
        assert len(compare_team_org_ids(teams, orgs).statements) == 2


class TestListOrganizationIds:
    def test_paginates_all_orgs(self, fake_clerk):
        fake_clerk.organizations = [
            {"id": f"org_{i}", "name": f"Org {i}", "slug": None} for i in range(3)
        ]
        assert list_organization_ids(fake_clerk, page_size=2) == [
            {"id": "org_0", "name": "Org 0"},
            {"id": "org_1", "name": "Org 1"},
            {"id": "org_2", "name": "Org 2"},
        ]
