"""CLI entry point: migrate, backup, org-ids, compare-orgs."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from scripts.migration.audit import AuditLog
from scripts.migration.backup import BackupExporter
from scripts.migration.client import ClerkClient
from scripts.migration.config import load_config
from scripts.migration.engine import MigrationEngine, load_source_records
from scripts.migration.errors import MigrationError
from scripts.migration.governor import RateLimitGovernor
from scripts.migration.logging_config import configure_logging
from scripts.migration.org_ids import compare_team_org_ids, list_organization_ids
from scripts.migration.reconciler import Reconciler

logger = logging.getLogger("migration.cli")


def cmd_migrate(args: argparse.Namespace) -> None:
    """Import users from a JSON file into Clerk."""
    config = load_config()
    logger.info("Fetching users from %s", args.input_file)
    records = load_source_records(args.input_file)

    client = ClerkClient(config.clerk)
    try:
        governor = RateLimitGovernor(
            delay_s=config.throttle.delay_s,
            cooldown_s=config.throttle.retry_delay_s,
            max_retries=config.throttle.max_rate_limit_retries,
        )
        engine = MigrationEngine(
            reconciler=Reconciler(client),
            governor=governor,
            audit=AuditLog.for_run(config.output_dir),
            offset=config.offset,
        )
        outcome = engine.run(records)
    finally:
        client.close()

    print(f"{outcome.created} users migrated")
    print(f"{outcome.updated} users updated")


def cmd_backup(args: argparse.Namespace) -> None:
    """Export users, organizations and memberships to CSV."""
    config = load_config(require_production_key=False)
    client = ClerkClient(config.clerk)
    try:
        results = BackupExporter(
            client, output_dir=config.output_dir, page_size=config.page_size
        ).run()
    finally:
        client.close()

    print(f"{results['users']} users backed up")
    print(f"{results['organizations']} organizations backed up")
    print(f"{results['memberships']} organization memberships backed up")


def cmd_org_ids(args: argparse.Namespace) -> None:
    """Print every organization as {id, name} JSON."""
    config = load_config()
    client = ClerkClient(config.clerk)
    try:
        orgs = list_organization_ids(client, page_size=config.page_size)
    finally:
        client.close()
    print(json.dumps(orgs))


def cmd_compare_orgs(args: argparse.Namespace) -> None:
    """Compare legacy team ids with organization ids and print remap SQL."""
    with open(args.teams, encoding="utf-8") as fh:
        teams = json.load(fh)
    with open(args.orgs, encoding="utf-8") as fh:
        orgs = json.load(fh)

    result = compare_team_org_ids(teams, orgs, table=args.table, column=args.column)
    print("total teams:", len(teams))
    print("total orgs:", len(orgs))
    print("Names only in teams:", result.only_in_teams)
    print("Names only in orgs:", result.only_in_orgs)
    for statement in result.statements:
        print(statement)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clerk-migrate",
        description="Clerk user migration and backup utility",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate_parser = subparsers.add_parser("migrate", help="Import users into Clerk")
    migrate_parser.add_argument(
        "input_file",
        nargs="?",
        default="users.json",
        help="JSON array of users (default: users.json)",
    )
    migrate_parser.set_defaults(func=cmd_migrate)

    backup_parser = subparsers.add_parser("backup", help="Export Clerk data to CSV")
    backup_parser.set_defaults(func=cmd_backup)

    org_ids_parser = subparsers.add_parser("org-ids", help="Print organization ids and names")
    org_ids_parser.set_defaults(func=cmd_org_ids)

    compare_parser = subparsers.add_parser(
        "compare-orgs", help="Match legacy team ids to organization ids by name"
    )
    compare_parser.add_argument("teams", help="JSON file of [{id, name}] teams")
    compare_parser.add_argument("orgs", help="JSON file of [{id, name}] organizations")
    compare_parser.add_argument("--table", default="public.queries")
    compare_parser.add_argument("--column", default="org_id")
    compare_parser.set_defaults(func=cmd_compare_orgs)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except MigrationError as exc:
        logger.error("%s", exc, extra={"category": exc.category})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
