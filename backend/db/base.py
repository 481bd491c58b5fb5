from db.session import Base, Database
from db.models.user import User, ClientUser
from db.models.email_otp import EmailOTP
import logging
from sqlalchemy import inspect, text

logger = logging.getLogger(__name__)

__all__ = ["Base", "User", "ClientUser", "EmailOTP", "initialize_database", "table_exists", "ping_database"]

async def initialize_database(database: Database):
    """Create tables only. Use create_admin.py for seeding data."""
    try:
        await database.create_all()
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise

async def table_exists(database: Database, table_name: str) -> bool:
    async with database.engine.connect() as conn:
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(table_name))

async def ping_database(database: Database) -> None:
    async with database.session_factory() as db:
        await db.execute(text("SELECT 1"))
