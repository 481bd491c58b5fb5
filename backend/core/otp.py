"""
OTP generation and hashing for email verification.
Codes are hashed before storage; the plain code only ever leaves through email.
"""
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from passlib.context import CryptContext

from core.config import settings

OTP_PATTERN = re.compile(r"[0-9]{%d}" % settings.OTP_LENGTH)

otp_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.OTP_HASH_ROUNDS,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_otp() -> str:
    """Generate a numeric OTP of OTP_LENGTH digits (leading zeros allowed)."""
    return f"{secrets.randbelow(10 ** settings.OTP_LENGTH):0{settings.OTP_LENGTH}d}"


def hash_otp(code: str) -> str:
    """Salted one-way hash of the code"""
    return otp_context.hash(code)


def verify_otp_hash(candidate: str, otp_hash: str) -> bool:
    """Check a submitted code against a stored hash"""
    if not candidate or not otp_hash:
        return False
    try:
        return otp_context.verify(candidate, otp_hash)
    except (ValueError, TypeError):
        # unknown or corrupt hash format
        return False


def is_valid_otp_format(value) -> bool:
    return isinstance(value, str) and OTP_PATTERN.fullmatch(value) is not None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def otp_expires_at(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(minutes=settings.OTP_EXPIRY_MINUTES)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_otp_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    return as_utc(now or utcnow()) > as_utc(expires_at)
