#!/usr/bin/env python3
"""Inspect and maintain linked Google accounts."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path when script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from daybook.core.config import get_settings  # noqa: E402
from daybook.core.logging_config import configure_logging  # noqa: E402
from daybook.core.models.db_helper import db_helper  # noqa: E402
from daybook.core.repositories.google_token_repository import GoogleTokenRepository  # noqa: E402
from daybook.core.services.google_auth_service import GoogleAuthService  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="Show linked accounts, oldest first")

    migrate = commands.add_parser(
        "migrate", help="Move the legacy single-account credential to its email key"
    )
    migrate.add_argument(
        "--discard-unresolved",
        action="store_true",
        help="Delete the legacy credential when it has no email",
    )

    logout = commands.add_parser("logout", help="Delete stored credentials")
    logout.add_argument(
        "--account",
        default=None,
        help="Account key to delete; every account when omitted",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    if settings.database.auto_create:
        await db_helper.create_schema()

    try:
        async with db_helper.session_factory() as session:
            service = GoogleAuthService(GoogleTokenRepository(session), settings.google)

            if args.command == "list":
                sessions = await service.get_all_sessions()
                if not sessions:
                    print("No linked accounts")
                for item in sessions:
                    print(f"{item.account_key}\t{item.email or '-'}\t{item.connected_at.isoformat()}")
            elif args.command == "migrate":
                await service.migrate_legacy_record(discard_unresolved=args.discard_unresolved)
                print("Legacy credential reconciled")
            elif args.command == "logout":
                await service.delete_credential(args.account)
                print(f"Deleted credentials for {args.account or 'all accounts'}")
    finally:
        await db_helper.dispose()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(get_settings().log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
