"""
Pytest configuration and fixtures for the backend tests.
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("OTP_HASH_ROUNDS", "4")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")

import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool
from faker import Faker

from main import create_app
from api.dependencies import get_notifier
from core.config import settings
from db.base import ClientUser, EmailOTP
from db.otp_store import OtpStore
from db.session import Database
from services.otp_service import OtpService

# Initialize Faker for test data generation
fake = Faker()


class RecordingNotifier:
    """Stands in for the email channel; remembers every code it was asked to send."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []

    async def send_code(self, email: str, code: str, subject_context: Optional[str] = None) -> bool:
        self.sent.append((email, code, subject_context))
        return self.succeed

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


class FakeClock:
    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """In-memory SQLite shared by every session of one test."""
    db = Database("sqlite+aiosqlite://", poolclass=StaticPool)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def file_database(tmp_path) -> AsyncGenerator[Database, None]:
    """File-backed SQLite so concurrent sessions get their own connections."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'otp.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> OtpStore:
    return OtpStore(db_session)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def otp_service(store: OtpStore, notifier: RecordingNotifier, clock: FakeClock) -> OtpService:
    return OtpService(store, notifier, clock=clock)


@pytest.fixture
def make_client_user(database: Database):
    """Insert a client user through its own session and return it."""
    async def _make(email: Optional[str] = None, email_verified: bool = False) -> ClientUser:
        async with database.session_factory() as session:
            user = ClientUser(
                email=(email or fake.email()).strip().lower(),
                name=fake.name(),
                email_verified=email_verified,
            )
            session.add(user)
            await session.commit()
            return user
    return _make


@pytest.fixture
def fetch_otps(database: Database):
    """Read OTP rows for an email through a fresh session, newest first."""
    async def _fetch(email: str):
        async with database.session_factory() as session:
            result = await session.execute(
                select(EmailOTP).where(EmailOTP.email == email).order_by(EmailOTP.created_at.desc(), EmailOTP.id.desc())
            )
            return result.scalars().all()
    return _fetch


@pytest.fixture
def fetch_client_user(database: Database):
    async def _fetch(email: str) -> Optional[ClientUser]:
        async with database.session_factory() as session:
            result = await session.execute(select(ClientUser).where(ClientUser.email == email))
            return result.scalars().first()
    return _fetch


@pytest.fixture
def app(database: Database, notifier: RecordingNotifier):
    application = create_app(database)
    application.dependency_overrides[get_notifier] = lambda: notifier
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_secret(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_CREATE_SECRET", "bootstrap-secret")
    return "bootstrap-secret"


@pytest.fixture
def sample_admin_data():
    return {
        "email": fake.email(),
        "password": "testpassword123",
        "name": fake.name(),
    }
