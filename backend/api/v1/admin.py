from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import admin_secret_required
from api.v1.auth import read_json_object
from core.config import settings
from core.errors import ValidationError
from core.otp import normalize_email
from db.base import initialize_database, table_exists
from db.session import Database, get_database, get_db_session
from schemas.user_schema import AdminCreate, SmtpCheckRequest
from services.admin_service import create_admin, list_users_summary
from utils.db import translate_db_error
from utils.email import masked_smtp_config, send_otp_email, verify_smtp_connection
from utils.responses import no_store_json
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ())) or "body"
    return f"{field}: {err.get('msg', 'invalid value')}"

@router.post("/api/admin/create-admin", dependencies=[Depends(admin_secret_required)])
async def create_admin_user(request: Request, db: AsyncSession = Depends(get_db_session)):
    payload = await read_json_object(request)
    if not payload.get("email") or not payload.get("password"):
        raise ValidationError("Email and password are required")
    try:
        data = AdminCreate.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e))
    return no_store_json(await create_admin(data, db))

@router.get("/api/admin/create-admin", dependencies=[Depends(admin_secret_required)])
async def check_admin_users(db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await list_users_summary(db))

@router.post("/api/admin/setup-database", dependencies=[Depends(admin_secret_required)])
async def setup_database(database: Database = Depends(get_database)):
    logger.info("Starting database schema setup")
    try:
        await initialize_database(database)
    except SQLAlchemyError as e:
        raise translate_db_error(e, "create database tables") from e
    return no_store_json({"success": True, "message": "Database schema created successfully"})

@router.get("/api/admin/setup-database")
async def database_setup_status(database: Database = Depends(get_database)):
    try:
        ready = await table_exists(database, "client_users")
    except SQLAlchemyError as e:
        raise translate_db_error(e, "check database setup") from e
    if ready:
        return no_store_json({"status": "ready", "message": "Database tables exist"})
    return no_store_json({
        "status": "needs_setup",
        "message": "Database tables need to be created",
        "action": "POST to this endpoint to create tables",
    })

def _failure_message(exc: Exception, summary: str) -> str:
    # Server replies and socket errors only leave the process in development
    return f"{summary}: {exc}" if settings.is_development else summary

@router.post("/api/admin/test-smtp", dependencies=[Depends(admin_secret_required)])
async def test_smtp(request: Request):
    if not settings.is_development:
        logger.warning("SMTP test endpoint accessed outside development")
    payload = await read_json_object(request)
    if not payload.get("email"):
        raise ValidationError("Email is required for testing")
    try:
        email = normalize_email(SmtpCheckRequest.model_validate(payload).email)
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e))

    config = masked_smtp_config()
    logger.info(f"Testing SMTP configuration: {config}")

    connection_test = {"success": False, "message": ""}
    try:
        await run_in_threadpool(verify_smtp_connection)
        connection_test = {"success": True, "message": "SMTP connection verified successfully"}
    except Exception as e:
        logger.error(f"SMTP connection test failed: {e}")
        connection_test = {"success": False, "message": _failure_message(e, "SMTP connection failed")}

    email_test = {"success": False, "message": "", "otp": ""}
    test_otp = "123456"
    try:
        await run_in_threadpool(send_otp_email, email, test_otp, f"SMTP Test - {settings.SMTP_FROM_NAME}", True)
        email_test = {"success": True, "message": "Test email sent successfully", "otp": test_otp}
    except Exception as e:
        logger.error(f"SMTP test email to {email} failed: {e}")
        email_test = {"success": False, "message": _failure_message(e, "Failed to send test email"), "otp": ""}

    ok = connection_test["success"] and email_test["success"]
    return no_store_json({
        "success": ok,
        "config": config,
        "tests": {"connection": connection_test, "email": email_test},
        "message": "SMTP is configured correctly and test email was sent" if ok
        else "SMTP configuration has issues. Check the test results above.",
    })
