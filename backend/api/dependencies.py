from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from core.errors import UnauthorizedError
from core.security import check_admin_secret
from db.otp_store import OtpStore
from db.session import get_db_session
from services.otp_service import OtpService
from utils.email import EmailNotificationChannel

def get_notifier() -> EmailNotificationChannel:
    return EmailNotificationChannel()

async def get_otp_service(
    db: AsyncSession = Depends(get_db_session),
    notifier: EmailNotificationChannel = Depends(get_notifier),
) -> OtpService:
    return OtpService(OtpStore(db), notifier)

async def admin_secret_required(authorization: Optional[str] = Header(default=None)) -> None:
    if not check_admin_secret(authorization):
        raise UnauthorizedError("Unauthorized. Provide ADMIN_CREATE_SECRET in Authorization header.")
