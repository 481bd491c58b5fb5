from db.models.user import ClientUser
from db.otp_store import OtpStore
import logging

logger = logging.getLogger(__name__)


async def mark_email_verified(store: OtpStore, user: ClientUser) -> ClientUser:
    """Flip email_verified to true. Already-verified users are left as they are."""
    if user.email_verified:
        logger.info(f"Email already verified for client user {user.id}")
        return user
    await store.update_user(user, {"email_verified": True})
    logger.info(f"Email verified for client user {user.id}")
    return user


def serialize_client_user(user: ClientUser) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "emailVerified": bool(user.email_verified),
    }
