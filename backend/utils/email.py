import smtplib
from email.message import EmailMessage
from typing import Optional
from fastapi.concurrency import run_in_threadpool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


class SMTPNotConfiguredError(RuntimeError):
    pass


def _build_message(subject: str, to_email: str, html_body: str, text_body: Optional[str] = None) -> EmailMessage:
    sender = settings.smtp_sender
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f"{settings.SMTP_FROM_NAME} <{sender}>" if settings.SMTP_FROM_NAME and sender else (sender or "no-reply@example.com")
    msg["To"] = to_email
    if text_body:
        msg.set_content(text_body)
    msg.add_alternative(html_body, subtype="html")
    return msg


def _open_connection() -> smtplib.SMTP:
    if not settings.SMTP_HOST or not settings.SMTP_USER or not settings.SMTP_PASS:
        raise SMTPNotConfiguredError("SMTP not configured. Set SMTP_USER and SMTP_PASS")
    timeout = settings.SMTP_TIMEOUT or 15
    # SSL (SMTPS) or STARTTLS
    if settings.SMTP_USE_SSL:
        server = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout)
    else:
        server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout)
    try:
        server.set_debuglevel(1 if settings.SMTP_DEBUG else 0)
        if settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL:
            server.starttls()
        server.login(settings.SMTP_USER, settings.SMTP_PASS)
    except Exception:
        server.close()
        raise
    return server


def verify_smtp_connection() -> None:
    """Connect and authenticate against the SMTP server; raises on failure"""
    with _open_connection() as server:
        server.noop()
    logger.info(f"SMTP connection to {settings.SMTP_HOST}:{settings.SMTP_PORT} verified")


def send_email(subject: str, to_email: str, html_body: str, text_body: Optional[str] = None, raise_errors: bool = False) -> bool:
    try:
        msg = _build_message(subject, to_email, html_body, text_body)
        with _open_connection() as server:
            server.send_message(msg)
        logger.info(f"Sent email to {to_email} with subject '{subject}'")
        return True
    except SMTPNotConfiguredError:
        logger.warning("SMTP not configured; skipping email send")
        if raise_errors:
            raise
        return False
    except (smtplib.SMTPException, OSError) as exc:
        logger.error(f"Failed to send email to {to_email}: {exc}")
        if raise_errors:
            raise
        return False


def send_otp_email(to_email: str, otp_code: str, subject_context: Optional[str] = None, raise_errors: bool = False) -> bool:
    subject = subject_context or f"Your {settings.SMTP_FROM_NAME} verification code"
    minutes = settings.OTP_EXPIRY_MINUTES
    text = f"Your verification code is {otp_code}. It expires in {minutes} minutes."
    html = f"""
    <div style='font-family: Arial, sans-serif; line-height: 1.5;'>
      <h2>Verify your email address</h2>
      <p>Use the following One-Time Password (OTP) to verify your email. This code will expire in <strong>{minutes} minutes</strong>.</p>
      <p style='font-size: 24px; font-weight: bold; letter-spacing: 4px;'>{otp_code}</p>
      <p>You have {settings.OTP_MAX_ATTEMPTS} attempts to enter it correctly.</p>
      <p>If you did not request this code, you can safely ignore this email.</p>
      <p>- {settings.SMTP_FROM_NAME} Team</p>
    </div>
    """
    return send_email(subject, to_email, html, text, raise_errors=raise_errors)


def masked_smtp_config() -> dict:
    """SMTP settings safe to echo back in diagnostics"""
    user = settings.SMTP_USER
    return {
        "SMTP_HOST": settings.SMTP_HOST,
        "SMTP_PORT": str(settings.SMTP_PORT),
        "SMTP_USER": f"{user[:3]}..." if user else "NOT SET",
        "SMTP_PASS": "***" if settings.SMTP_PASS else "NOT SET",
        "SMTP_FROM": settings.smtp_sender or "NOT SET",
    }


class EmailNotificationChannel:
    """Delivers OTP codes by email. Sending runs in the thread pool so the event loop never waits on SMTP."""

    async def send_code(self, email: str, code: str, subject_context: Optional[str] = None) -> bool:
        try:
            return await run_in_threadpool(send_otp_email, email, code, subject_context)
        except Exception:
            logger.exception(f"Unexpected error delivering OTP email to {email}")
            return False
