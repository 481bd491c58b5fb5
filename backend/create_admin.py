#!/usr/bin/env python3
"""
Create (or keep) an admin account.

Usage:
    python create_admin.py --email admin@example.com --password 'secret' [--name "Admin User"]

An existing account with the same email is left untouched.
"""

import argparse
import asyncio
import getpass
import logging

from core.config import settings
from db.base import initialize_database
from db.session import Database
from services.admin_service import upsert_admin

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("create_admin")


async def run(email: str, password: str, name: str, create_tables: bool) -> int:
    database = Database.from_settings(settings)
    try:
        if create_tables:
            await initialize_database(database)
        async with database.session_factory() as db:
            admin, created = await upsert_admin(email, password, name, db)
        if created:
            logger.info(f"Admin user created: {admin.email}")
        else:
            logger.info(f"Admin user already exists: {admin.email} (role={admin.role})")
        return 0
    finally:
        await database.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", help="Prompted for when omitted")
    parser.add_argument("--name", default="Admin User")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Admin password: ")
    if not password:
        parser.error("password must not be empty")
    return asyncio.run(run(args.email, password, args.name, args.create_tables))


if __name__ == "__main__":
    raise SystemExit(main())
