"""End-to-end tests for the clerk-migrate command line."""

import json
import logging

import pytest

from scripts.migration import cli
from scripts.migration import config as config_module
from scripts.migration.audit import read_audit_log


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path, fake_clerk):
    for name in ("CLERK_SECRET_KEY", "IMPORT_TO_DEV_INSTANCE", "OFFSET", "PAGE_SIZE", "RATE_LIMIT_MAX_RETRIES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DELAY_MS", "0")
    monkeypatch.setenv("RETRY_DELAY_MS", "0")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path))
    monkeypatch.setattr(config_module, "load_dotenv", lambda: None)
    monkeypatch.setattr(cli, "ClerkClient", lambda clerk_config: fake_clerk)
    yield
    logging.getLogger("migration").propagate = True


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestMigrate:
    def test_migrates_and_reports_counts(self, monkeypatch, tmp_path, capsys, fake_clerk, jane):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_live_x")
        fake_clerk.add_user("b@x.com", external_id="u2", first_name="Old")
        source = write_json(tmp_path / "users.json", [
            jane,
            {"userId": "u2", "email": "b@x.com", "name": "Bob Smith", "agreedTerms": False},
            {"userId": "u3", "email": "not-an-email"},
        ])

        assert cli.main(["migrate", source]) == 0

        out = capsys.readouterr().out
        assert "1 users migrated" in out
        assert "1 users updated" in out
        assert fake_clerk.closed

        [log_file] = list(tmp_path.glob("migration-log-*.json"))
        entries = read_audit_log(str(log_file))
        assert [e["userId"] for e in entries] == ["u3"]

    def test_development_key_is_refused(self, monkeypatch, tmp_path, fake_clerk, jane):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test_x")
        source = write_json(tmp_path / "users.json", [jane])

        assert cli.main(["migrate", source]) == 1
        assert fake_clerk.calls == []

    def test_missing_key(self, tmp_path, jane):
        source = write_json(tmp_path / "users.json", [jane])
        assert cli.main(["migrate", source]) == 1

    def test_missing_input_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_live_x")
        assert cli.main(["migrate", str(tmp_path / "nope.json")]) == 1


class TestBackup:
    def test_development_key_allowed(self, monkeypatch, tmp_path, capsys, fake_clerk):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test_x")
        fake_clerk.add_user("a@x.com")

        assert cli.main(["backup"]) == 0

        out = capsys.readouterr().out
        assert "1 users backed up" in out
        assert "0 organizations backed up" in out
        assert len(list(tmp_path.glob("user-backup-*.csv"))) == 1


class TestOrgIds:
    def test_prints_json(self, monkeypatch, capsys, fake_clerk):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_live_x")
        fake_clerk.organizations = [{"id": "org_1", "name": "Acme"}]

        assert cli.main(["org-ids"]) == 0
        assert json.loads(capsys.readouterr().out) == [{"id": "org_1", "name": "Acme"}]


class TestCompareOrgs:
    def test_prints_remap_sql(self, tmp_path, capsys):
        teams = write_json(tmp_path / "teams.json", [{"id": "t1", "name": "Acme"}])
        orgs = write_json(tmp_path / "orgs.json", [{"id": "org_1", "name": "Acme"}])

        assert cli.main(["compare-orgs", teams, orgs, "--column", "team_id"]) == 0

        out = capsys.readouterr().out
        assert "total teams: 1" in out
        assert "UPDATE public.queries SET team_id = 'org_1' WHERE team_id = 't1';" in out
