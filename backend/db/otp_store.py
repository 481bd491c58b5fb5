from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select, update, delete, desc
from sqlalchemy.ext.asyncio import AsyncSession

from db.models.email_otp import EmailOTP
from db.models.user import ClientUser
import logging

logger = logging.getLogger(__name__)


class OtpStore:
    """Credential store for OTP records and client users, bound to one session.

    Writes are flushed, not committed; callers decide the transaction
    boundary with ``commit()`` or ``transaction()``.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_latest_otp_by_email(self, email: str) -> Optional[EmailOTP]:
        result = await self.session.execute(
            select(EmailOTP)
            .where(EmailOTP.email == email)
            .order_by(desc(EmailOTP.created_at), desc(EmailOTP.id))
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def create_otp(self, email: str, otp_hash: str, created_at: datetime, expires_at: datetime) -> EmailOTP:
        record = EmailOTP(
            email=email,
            otp_hash=otp_hash,
            attempts=0,
            verified=False,
            created_at=created_at,
            expires_at=expires_at,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def update_otp(self, otp_id: int, patch: Dict[str, Any]) -> int:
        result = await self.session.execute(
            update(EmailOTP)
            .where(EmailOTP.id == otp_id)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def increment_attempts(self, otp_id: int) -> Optional[int]:
        """Atomically bump the attempt counter; returns the new count or None if the row is gone"""
        result = await self.session.execute(
            update(EmailOTP)
            .where(EmailOTP.id == otp_id)
            .values(attempts=EmailOTP.attempts + 1)
            .returning(EmailOTP.attempts)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def claim_otp(self, otp_id: int, max_attempts: int) -> bool:
        """Mark the record verified if it still exists and is under the attempt ceiling.

        The conditional UPDATE takes the row lock, so of two concurrent
        claims on one record only the first to commit its delete wins.
        """
        result = await self.session.execute(
            update(EmailOTP)
            .where(EmailOTP.id == otp_id, EmailOTP.attempts < max_attempts)
            .values(verified=True)
            .returning(EmailOTP.id)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none() is not None

    async def delete_otp(self, otp_id: int) -> int:
        result = await self.session.execute(
            delete(EmailOTP)
            .where(EmailOTP.id == otp_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def find_user_by_email(self, email: str) -> Optional[ClientUser]:
        result = await self.session.execute(select(ClientUser).where(ClientUser.email == email).execution_options(populate_existing=True))
        return result.scalars().first()

    async def update_user(self, user: ClientUser, patch: Dict[str, Any]) -> ClientUser:
        for key, value in patch.items():
            setattr(user, key, value)
        await self.session.flush()
        return user

    async def commit(self) -> None:
        await self.session.commit()

    @asynccontextmanager
    async def transaction(self):
        """Commit everything written inside the block, or roll it all back"""
        try:
            yield self
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
