from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy import event
from fastapi import Request
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode
from core.config import settings
import logging
from typing import Optional

Base = declarative_base()
logger = logging.getLogger("campus_assistant")

LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1", ""}

def _rewrite_postgres_query(url: str) -> str:
    """Make hosted-Postgres URLs acceptable to asyncpg.

    - sslmode=<mode> becomes ssl=<mode>
    - ssl=require is added for non-local hosts when no mode is given
    - channel_binding is dropped; asyncpg rejects it as a connect argument
    """
    parts = urlsplit(url)
    query = []
    ssl_mode = None
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == "channel_binding":
            continue
        if key in ("sslmode", "ssl"):
            ssl_mode = value
            continue
        query.append((key, value))
    if ssl_mode is None and (parts.hostname or "") not in LOCAL_HOSTS:
        ssl_mode = "require"
    if ssl_mode:
        query.append(("ssl", ssl_mode))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

def to_async_database_url(url: str) -> str:
    if not url:
        return url
    url = url.strip().strip("'\"")
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql+psycopg2://"):
        url = url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    elif url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    elif url.startswith("file:"):
        # Prisma-style SQLite path
        path = url[len("file:"):].lstrip("/")
        if path.startswith("./"):
            path = path[2:]
        return f"sqlite+aiosqlite:///{path or 'dev.db'}"
    if url.startswith("postgresql+asyncpg://"):
        return _rewrite_postgres_query(url)
    return url


class Database:
    """Engine + session factory for one application instance.

    Created by the app factory and kept on ``app.state``; tests build their
    own over an in-memory SQLite engine.
    """

    def __init__(self, url: str, **engine_kwargs):
        self.url = to_async_database_url(url)
        self.engine: AsyncEngine = create_async_engine(self.url, future=True, echo=False, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        _attach_pool_logging(self.engine)

    @classmethod
    def from_settings(cls, cfg=settings) -> "Database":
        url = to_async_database_url(cfg.DATABASE_URL)
        if url.startswith("sqlite"):
            return cls(url)
        # Pick sane defaults:
        # - pool_recycle below the server idle timeout (pooled Neon endpoints drop idle clients)
        # - modest pool size, serverless deployments run many small instances
        return cls(
            url,
            pool_pre_ping=bool(cfg.DB_PRE_PING),
            pool_recycle=int(cfg.DB_POOL_RECYCLE),
            pool_size=int(cfg.DB_POOL_SIZE),
            max_overflow=int(cfg.DB_MAX_OVERFLOW),
            pool_timeout=int(cfg.DB_POOL_TIMEOUT),
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database

async def get_db_session(request: Request):
    database: Database = get_database(request)
    async with database.session_factory() as db:
        try:
            logger.debug("DB session dependency: opened")
            yield db
        except Exception:
            # ensure we always rollback when something goes wrong
            await db.rollback()
            raise
        finally:
            logger.debug("DB session dependency: closed")

def _attach_pool_logging(engine: Optional[AsyncEngine]) -> None:
    if engine is None:
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        logger.debug("DB connect: id=%s", id(connection_record))

    @event.listens_for(engine.sync_engine, "checkout")
    def _on_checkout(dbapi_connection, connection_record, connection_proxy):
        logger.debug("DB checkout: id=%s", id(connection_record))

    @event.listens_for(engine.sync_engine, "checkin")
    def _on_checkin(dbapi_connection, connection_record):
        logger.debug("DB checkin: id=%s", id(connection_record))
