import hmac
from typing import Optional
from passlib.context import CryptContext
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.PASSWORD_HASH_ROUNDS,
)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return pwd_context.hash(password)

def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an 'Authorization: Bearer <token>' header"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

def check_admin_secret(authorization: Optional[str]) -> bool:
    """Check the bootstrap secret; open when ADMIN_CREATE_SECRET is unset"""
    secret = settings.ADMIN_CREATE_SECRET
    if not secret:
        return True
    token = bearer_token(authorization)
    if token is None:
        logger.warning("Admin bootstrap request without bearer token")
        return False
    return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))
