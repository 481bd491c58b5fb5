"""
Email OTP lifecycle: issuance and verification.

An OTP record moves PENDING -> VERIFIED | EXPIRED | EXHAUSTED. Wrong codes
keep it PENDING with one more attempt counted; the other three outcomes
delete it (a verified record is deleted together with the user update).
Only the newest record for an email is consulted; older ones are ignored.
"""
from datetime import datetime
from typing import Callable, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.errors import (
    OtpError,
    ValidationError,
    NotFoundError,
    ExpiredError,
    ExhaustedError,
    InvalidCodeError,
    UserNotFoundError,
    DeliveryError,
)
from core.otp import (
    generate_otp,
    hash_otp,
    verify_otp_hash,
    is_valid_otp_format,
    is_otp_expired,
    normalize_email,
    otp_expires_at,
    utcnow,
)
from db.otp_store import OtpStore
from services.user_service import mark_email_verified, serialize_client_user
from utils.db import translate_db_error
from utils.email import EmailNotificationChannel
from utils.timing import timeit

logger = logging.getLogger(__name__)


def validate_email_input(email) -> None:
    if not email or not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required")


def validate_verify_input(email, otp) -> None:
    validate_email_input(email)
    if not otp or not isinstance(otp, str):
        raise ValidationError("OTP is required")
    if not is_valid_otp_format(otp):
        raise ValidationError(f"Invalid OTP format. OTP must be a {settings.OTP_LENGTH}-digit number")


class OtpService:
    def __init__(
        self,
        store: OtpStore,
        notifier: Optional[EmailNotificationChannel] = None,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = settings.OTP_MAX_ATTEMPTS,
    ):
        self.store = store
        self.notifier = notifier or EmailNotificationChannel()
        self.clock = clock
        self.max_attempts = max_attempts

    @timeit("issue_otp")
    async def issue_otp(self, email, subject_context: Optional[str] = None) -> dict:
        """Create a fresh OTP for the email and send it.

        The record is committed before delivery, so a failed send leaves it in
        place; the caller may ask for a new code.
        """
        validate_email_input(email)
        normalized_email = normalize_email(email)
        code = generate_otp()
        now = self.clock()
        try:
            record = await self.store.create_otp(
                email=normalized_email,
                otp_hash=hash_otp(code),
                created_at=now,
                expires_at=otp_expires_at(now),
            )
            await self.store.commit()
        except SQLAlchemyError as e:
            raise translate_db_error(e, "create OTP") from e

        logger.info(f"Issued OTP {record.id} for {normalized_email}")
        sent = await self.notifier.send_code(normalized_email, code, subject_context)
        if not sent:
            logger.error(f"OTP {record.id} created but email delivery to {normalized_email} failed")
            raise DeliveryError("Failed to send OTP email. Please request a new OTP")
        return {
            "sent": True,
            "message": "OTP sent to your email",
            "expiresInMinutes": settings.OTP_EXPIRY_MINUTES,
        }

    @timeit("verify_otp")
    async def verify_otp(self, email, otp) -> dict:
        # Shape checks never touch the store
        validate_verify_input(email, otp)
        normalized_email = normalize_email(email)
        try:
            return await self._verify(normalized_email, otp)
        except OtpError:
            raise
        except SQLAlchemyError as e:
            raise translate_db_error(e, "verify OTP") from e

    async def _verify(self, email: str, otp: str) -> dict:
        record = await self.store.find_latest_otp_by_email(email)
        if record is None:
            raise NotFoundError()

        if is_otp_expired(record.expires_at, self.clock()):
            await self.store.delete_otp(record.id)
            await self.store.commit()
            logger.info(f"OTP {record.id} for {email} expired; deleted")
            raise ExpiredError()

        if record.attempts >= self.max_attempts:
            await self.store.delete_otp(record.id)
            await self.store.commit()
            logger.info(f"OTP {record.id} for {email} exhausted after {record.attempts} attempts; deleted")
            raise ExhaustedError()

        if not verify_otp_hash(otp, record.otp_hash):
            attempts = await self.store.increment_attempts(record.id)
            await self.store.commit()
            if attempts is None:
                # consumed or purged by a concurrent request
                raise NotFoundError()
            logger.info(f"Wrong OTP for {email}; attempt {attempts} of {self.max_attempts}")
            raise InvalidCodeError(remaining_attempts=self.max_attempts - attempts)

        user = None
        async with self.store.transaction():
            if not await self.store.claim_otp(record.id, self.max_attempts):
                # consumed or exhausted by a concurrent request
                logger.info(f"OTP {record.id} for {email} was no longer claimable")
                raise NotFoundError()
            user = await self.store.find_user_by_email(email)
            if user is not None:
                await mark_email_verified(self.store, user)
                await self.store.delete_otp(record.id)

        if user is None:
            # The verified record is kept: after registering, the same code
            # can be submitted again until it expires.
            logger.warning(f"OTP {record.id} matched but no client user exists for {email}")
            raise UserNotFoundError()

        return {
            "success": True,
            "verified": True,
            "message": "Email verified successfully",
            "user": serialize_client_user(user),
        }
