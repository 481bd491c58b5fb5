from typing import Optional
import logging

from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import OtpError, ValidationError
from core.otp import normalize_email
from core.security import get_password_hash
from db.models.user import User as UserModel
from schemas.user_schema import AdminCreate
from utils.db import safe_commit, translate_db_error
from utils.timing import timeit

logger = logging.getLogger(__name__)


async def get_user_by_email(email: str, db: AsyncSession) -> Optional[UserModel]:
    result = await db.execute(select(UserModel).where(UserModel.email == email))
    return result.scalars().first()


@timeit("create_admin")
async def create_admin(request: AdminCreate, db: AsyncSession) -> dict:
    """Create an admin account (one-time bootstrap)"""
    email = normalize_email(request.email)
    try:
        existing = await get_user_by_email(email, db)
        if existing:
            raise ValidationError("User already exists")

        admin = UserModel(
            name=request.name or "Admin User",
            email=email,
            password_hash=get_password_hash(request.password),
            role="admin",
        )
        db.add(admin)
        await safe_commit(db, "create admin user")
        logger.info(f"Admin user created: {admin.email}")
        return {
            "success": True,
            "message": "Admin user created successfully",
            "user": {
                "id": admin.id,
                "email": admin.email,
                "name": admin.name,
                "role": admin.role,
            },
        }
    except OtpError:
        raise
    except SQLAlchemyError as e:
        raise translate_db_error(e, "create admin user") from e


async def upsert_admin(email: str, password: str, name: Optional[str], db: AsyncSession) -> tuple[UserModel, bool]:
    """Create the admin if missing; an existing account is left untouched"""
    email = normalize_email(email)
    existing = await get_user_by_email(email, db)
    if existing:
        return existing, False
    admin = UserModel(
        name=name or "Admin User",
        email=email,
        password_hash=get_password_hash(password),
        role="admin",
    )
    db.add(admin)
    await safe_commit(db, "create admin user")
    return admin, True


@timeit("list_users_summary")
async def list_users_summary(db: AsyncSession) -> dict:
    try:
        result = await db.execute(select(UserModel).order_by(desc(UserModel.created_at), desc(UserModel.id)))
        users = result.scalars().all()
    except SQLAlchemyError as e:
        raise translate_db_error(e, "check users") from e

    admins = [u for u in users if u.role == "admin"]
    return {
        "totalUsers": len(users),
        "adminCount": len(admins),
        "admins": [
            {
                "email": u.email,
                "name": u.name,
                "createdAt": u.created_at.isoformat() if u.created_at else None,
            }
            for u in admins
        ],
        "allUsers": [{"email": u.email, "name": u.name, "role": u.role} for u in users],
    }
