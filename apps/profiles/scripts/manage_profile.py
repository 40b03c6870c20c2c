#!/usr/bin/env python3
"""
Record administration from the command line.

Usage:
    python -m apps.profiles.scripts.manage_profile show <orcid>
    python -m apps.profiles.scripts.manage_profile create-unclaimed --email <email> --given-names <names> [--family-name <name>]
    python -m apps.profiles.scripts.manage_profile init-db

Each command stands up the same database manager the API uses, calls one
ProfileService method and prints the result as JSON on stdout.
"""

import argparse
import asyncio
import json
import sys

from framework.database.manager import DatabaseManager
from framework.exceptions.handler import BusinessException
from framework.logging.logger import LogConfig, get_logger
from framework.repository.unit_of_work import UnitOfWork
from apps.profiles.service import ProfileService

logger = get_logger("manage_profile")


async def show(orcid: str) -> dict:
    manager = DatabaseManager.get_instance()
    async for session in manager.sql.get_session():
        service = ProfileService(UnitOfWork(session=session))
        return await service.get_record_view(orcid)


async def create_unclaimed(email: str, given_names: str, family_name: str = None) -> dict:
    manager = DatabaseManager.get_instance()
    async for session in manager.sql.get_session():
        service = ProfileService(UnitOfWork(session=session))
        profile = await service.create_unclaimed(email, given_names, family_name)
        return {"orcid": profile.orcid, "email": profile.email, "claimed": profile.claimed}


async def init_db() -> dict:
    manager = DatabaseManager.get_instance()
    await manager.sql.create_all()
    logger.info("Tables created")
    return {"tables": "created"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Researcher record administration")
    sub = parser.add_subparsers(dest="command", required=True)

    show_parser = sub.add_parser("show", help="Print the public view of a record")
    show_parser.add_argument("orcid")

    create_parser = sub.add_parser("create-unclaimed", help="Provision a record the researcher claims later")
    create_parser.add_argument("--email", required=True)
    create_parser.add_argument("--given-names", required=True)
    create_parser.add_argument("--family-name")

    sub.add_parser("init-db", help="Create tables from model metadata (local SQLite runs)")
    return parser


async def run(args: argparse.Namespace) -> dict:
    try:
        if args.command == "show":
            return await show(args.orcid)
        if args.command == "init-db":
            return await init_db()
        return await create_unclaimed(args.email, args.given_names, args.family_name)
    finally:
        await DatabaseManager.shutdown()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    LogConfig.setup_cli_logging()
    try:
        result = asyncio.run(run(args))
    except BusinessException as e:
        logger.error(f"{args.command} failed: {e.message}")
        print(json.dumps({"error": e.message, "code": e.code}), file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
