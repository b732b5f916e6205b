# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Command-line interface for Voltmap server operations."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from voltmap.core.exceptions import DatabaseException
from voltmap.core.logging import configure_logging


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the API server."""
    from .app import run

    configure_logging()
    run()
    return 0


def cmd_migrate_up(args: argparse.Namespace) -> int:
    """Apply pending migrations."""
    from voltmap.core.migrations import MigrationRunner

    configure_logging()
    runner = MigrationRunner(migrations_dir=args.migrations_dir)
    try:
        applied = runner.up(dry_run=args.dry_run)
    except DatabaseException as e:
        print(f"Database error: {e}", file=sys.stderr)
        return 1

    if not applied:
        print("No pending migrations.")
        return 0

    verb = "Would apply" if args.dry_run else "Applied"
    for version in applied:
        print(f"{verb}: {version}")
    return 0


def cmd_migrate_status(args: argparse.Namespace) -> int:
    """Show applied and pending migrations."""
    from voltmap.core.migrations import MigrationRunner

    runner = MigrationRunner(migrations_dir=args.migrations_dir)
    try:
        statuses = runner.status()
    except DatabaseException as e:
        print(f"Database error: {e}", file=sys.stderr)
        return 1

    if not statuses:
        print("No migrations found.")
        return 0

    print(f"{'Version':<10} {'Description':<30} {'State':<18} {'Applied':<20}")
    print("-" * 80)
    for s in statuses:
        applied = s.applied_at.strftime("%Y-%m-%d %H:%M") if s.applied_at else ""
        print(f"{s.version:<10} {s.description:<30} {s.state:<18} {applied:<20}")

    return 1 if any(s.state == "checksum_mismatch" for s in statuses) else 0


def cmd_token_create(args: argparse.Namespace) -> int:
    """Mint a bearer token for an actor."""
    from .auth import issue_actor_token

    expires_in = args.expires_days * 24 * 60 * 60 if args.expires_days else None
    token = issue_actor_token(args.actor_id, role=args.role, expires_in=expires_in)

    # Token goes to stdout alone so it can be piped; notes go to stderr
    print(f"Token created for actor '{args.actor_id}' (role: {args.role})", file=sys.stderr)
    print(token)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Voltmap trust and verification service",
        prog="voltmap",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.set_defaults(func=cmd_serve)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Database migrations")
    migrate_parser.add_argument(
        "--migrations-dir",
        type=Path,
        default=None,
        help="Directory of NNN_description.py migrations (default: <repo>/migrations)",
    )
    migrate_sub = migrate_parser.add_subparsers(dest="migrate_command", required=True)

    up_parser = migrate_sub.add_parser("up", help="Apply pending migrations")
    up_parser.add_argument("--dry-run", action="store_true", help="List what would be applied")
    up_parser.set_defaults(func=cmd_migrate_up)

    status_parser = migrate_sub.add_parser("status", help="Show migration status")
    status_parser.set_defaults(func=cmd_migrate_status)

    # token
    token_parser = subparsers.add_parser("token", help="Bearer token management")
    token_sub = token_parser.add_subparsers(dest="token_command", required=True)

    create_parser = token_sub.add_parser("create", help="Create a token for an actor")
    create_parser.add_argument(
        "--actor-id",
        "-a",
        required=True,
        help="Actor (user) id to put in the sub claim",
    )
    create_parser.add_argument(
        "--role",
        "-r",
        choices=["user", "admin"],
        default="user",
        help="Role claim (default: user)",
    )
    create_parser.add_argument(
        "--expires-days",
        "-e",
        type=int,
        default=None,
        help="Token expires after N days (default: VOLTMAP_ACCESS_TOKEN_EXPIRY)",
    )
    create_parser.set_defaults(func=cmd_token_create)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
