#!/usr/bin/env python3
"""
List staff accounts and warn when no admin exists.

Usage:
    python check_admin.py
"""

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from db.session import Database
from services.admin_service import list_users_summary
from core.errors import OtpError

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("check_admin")


async def check_admin() -> int:
    database = Database.from_settings(settings)
    try:
        async with database.session_factory() as db:
            summary = await list_users_summary(db)
    except (OtpError, SQLAlchemyError) as e:
        logger.error(f"Error checking admin: {getattr(e, 'details', None) or e}")
        logger.error("Make sure DATABASE_URL is set in your .env file and the tables exist")
        return 1
    finally:
        await database.dispose()

    if summary["totalUsers"] == 0:
        logger.info("No users found in database")
        logger.info("To create an admin user, run: python create_admin.py --email <email>")
        return 1

    logger.info(f"Found {summary['totalUsers']} user(s):")
    for index, user in enumerate(summary["allUsers"], start=1):
        logger.info(f"{index}. {user['name'] or 'No name'} <{user['email']}> role={user['role']}")

    if summary["adminCount"] == 0:
        logger.warning("No admin users found!")
        return 1
    logger.info(f"Found {summary['adminCount']} admin user(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(check_admin()))
