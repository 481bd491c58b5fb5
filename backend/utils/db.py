from sqlalchemy.exc import IntegrityError, OperationalError, InterfaceError, DisconnectionError, SQLAlchemyError
from core.errors import ConflictError, DatabaseUnavailableError, InternalError, OtpError
import logging

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


def translate_db_error(exc: Exception, action: str = "process request") -> OtpError:
    """Map a SQLAlchemy failure onto a client-safe error; driver text goes to details only."""
    details = str(getattr(exc, "orig", None) or exc)
    if isinstance(exc, IntegrityError):
        logger.warning(f"Constraint violation while trying to {action}: {details}")
        return ConflictError(details=details)
    if isinstance(exc, CONNECTION_ERRORS):
        logger.error(f"Database unavailable while trying to {action}: {details}")
        return DatabaseUnavailableError(details=details)
    if isinstance(exc, SQLAlchemyError):
        logger.error(f"Database error while trying to {action}: {details}")
        return InternalError(f"Failed to {action}. Please try again.", details=details)
    logger.exception(f"Unexpected error while trying to {action}")
    return InternalError(f"Failed to {action}. Please try again.", details=str(exc))


async def safe_commit(session, action: str = "save changes"):
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise translate_db_error(e, action) from e
