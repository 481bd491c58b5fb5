#!/usr/bin/env python3
"""
Send a test OTP email to check the SMTP configuration.

Usage:
    python send_test_otp.py you@example.com
"""

import argparse
import logging
import smtplib

from core.config import settings
from utils.email import SMTPNotConfiguredError, masked_smtp_config, send_otp_email

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("send_test_otp")

TEST_OTP = "123456"


def hints_for(exc: Exception) -> list[str]:
    message = str(exc)
    if isinstance(exc, SMTPNotConfiguredError):
        return [
            "Add SMTP_USER and SMTP_PASS to the .env file",
            "For Gmail, use an App Password, not the account password",
        ]
    if isinstance(exc, smtplib.SMTPAuthenticationError) or "BadCredentials" in message:
        return [
            "Make sure you're using a Gmail App Password",
            "Generate a new one at https://myaccount.google.com/apppasswords",
        ]
    if isinstance(exc, (TimeoutError, ConnectionError, OSError)):
        return [
            "Check your internet connection",
            "Verify SMTP_HOST and SMTP_PORT are correct",
        ]
    return []


def main() -> int:
    parser = argparse.ArgumentParser(description="Send a test OTP email")
    parser.add_argument("email")
    args = parser.parse_args()

    logger.info("Configuration status:")
    for key, value in masked_smtp_config().items():
        logger.info(f"  {key}: {value}")

    try:
        send_otp_email(args.email, TEST_OTP, f"Test OTP - {settings.SMTP_FROM_NAME}", raise_errors=True)
    except (SMTPNotConfiguredError, smtplib.SMTPException, OSError) as e:
        logger.error(f"FAILED to send email: {e}")
        for hint in hints_for(e):
            logger.error(f"  - {hint}")
        return 1

    logger.info(f"Test email sent to {args.email}; look for OTP {TEST_OTP} (check spam too)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
