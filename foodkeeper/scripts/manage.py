"""
FoodKeeper management commands.

    foodkeeper-manage init-db [--drop]
    foodkeeper-manage seed
    foodkeeper-manage sweep-expiry [--user-id ID] [--threshold-days N]
    foodkeeper-manage purge-notifications [--older-than-days N]
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from foodkeeper.api.config import get_settings
from foodkeeper.api.middleware.logging import configure_logging
from foodkeeper.api.services.notification_service import (
    purge_read_notifications,
    sweep_expiry_alerts,
)
from foodkeeper.shared.database import Database, get_table_count
from foodkeeper.shared.seed_data import seed_reference_data

logger = logging.getLogger("foodkeeper.manage")

SEEDED_TABLES = ("categories", "storage_tips", "recipes", "recipe_ingredients")


async def init_db(database: Database, args: argparse.Namespace) -> None:
    if args.drop:
        await database.drop_all()
    await database.create_all()
    print("Database schema created")


async def seed(database: Database, args: argparse.Namespace) -> None:
    await database.create_all()
    async with database.session() as session:
        added = await seed_reference_data(session)
        print(
            f"Added {added['categories']} categories, {added['storage_tips']} storage tips, "
            f"{added['recipes']} recipes"
        )
        for table in SEEDED_TABLES:
            print(f"  {table}: {await get_table_count(session, table)} rows")


async def sweep_expiry(database: Database, args: argparse.Namespace) -> None:
    settings = get_settings()
    threshold = settings.EXPIRY_ALERT_THRESHOLD_DAYS if args.threshold_days is None else args.threshold_days
    async with database.session() as session:
        checked, created = await sweep_expiry_alerts(session, args.user_id, threshold_days=threshold)
    print(f"Checked {checked} foods, created {created} expiry alerts")


async def purge_notifications(database: Database, args: argparse.Namespace) -> None:
    settings = get_settings()
    days = settings.NOTIFICATION_RETENTION_DAYS if args.older_than_days is None else args.older_than_days
    async with database.session() as session:
        deleted = await purge_read_notifications(session, days)
    print(f"Deleted {deleted} read notifications older than {days} days")


COMMANDS = {
    "init-db": init_db,
    "seed": seed,
    "sweep-expiry": sweep_expiry,
    "purge-notifications": purge_notifications,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="foodkeeper-manage", description="FoodKeeper management commands")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create the database schema")
    init_parser.add_argument("--drop", action="store_true", help="Drop all tables first (deletes all data)")

    subparsers.add_parser("seed", help="Seed categories, storage tips and recipes")

    sweep_parser = subparsers.add_parser("sweep-expiry", help="Create expiry alerts for active foods")
    sweep_parser.add_argument("--user-id", type=int, help="Only this user's foods")
    sweep_parser.add_argument("--threshold-days", type=int, help="Days ahead counted as expiring soon")

    purge_parser = subparsers.add_parser("purge-notifications", help="Delete old read notifications")
    purge_parser.add_argument("--older-than-days", type=int)

    return parser


async def run(args: argparse.Namespace) -> None:
    settings = get_settings()
    database = Database(args.database_url or settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    try:
        await COMMANDS[args.command](database, args)
    finally:
        await database.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().LOG_LEVEL)

    try:
        asyncio.run(run(args))
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
