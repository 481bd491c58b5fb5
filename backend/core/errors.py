"""
Error kinds surfaced by the OTP and account endpoints.

Every error carries an HTTP status, a stable machine code and a message safe
to show to end users. ``details`` holds diagnostic text (driver messages and
the like) and is only rendered in development mode.
"""
from typing import Any, Dict, Optional


class OtpError(Exception):
    status_code = 400
    code = "ERROR"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self, include_details: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "code": self.code}
        if include_details and self.details:
            payload["details"] = self.details
        return payload


class ValidationError(OtpError):
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class NotFoundError(OtpError):
    status_code = 404
    code = "OTP_NOT_FOUND"
    default_message = "OTP not found. Please request a new OTP"


class ExpiredError(OtpError):
    code = "OTP_EXPIRED"
    default_message = "OTP has expired. Please request a new OTP"


class ExhaustedError(OtpError):
    code = "OTP_ATTEMPTS_EXCEEDED"
    default_message = "Maximum verification attempts exceeded. Please request a new OTP"


class InvalidCodeError(OtpError):
    code = "OTP_INVALID"

    def __init__(self, remaining_attempts: int, details: Optional[str] = None):
        self.remaining_attempts = max(int(remaining_attempts), 0)
        if self.remaining_attempts > 0:
            message = f"Invalid OTP. {self.remaining_attempts} attempt(s) remaining."
        else:
            message = "Invalid OTP. Maximum attempts exceeded."
        super().__init__(message, details)

    def to_payload(self, include_details: bool = False) -> Dict[str, Any]:
        payload = super().to_payload(include_details)
        payload["remainingAttempts"] = self.remaining_attempts
        return payload


class UserNotFoundError(OtpError):
    status_code = 404
    code = "USER_NOT_FOUND"
    default_message = "User not found. Please complete registration first"


class UnauthorizedError(OtpError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class ConflictError(OtpError):
    code = "CONSTRAINT_VIOLATION"
    default_message = "Database constraint violation. Please try again."


class InternalError(OtpError):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"


class DatabaseUnavailableError(InternalError):
    status_code = 503
    code = "DATABASE_UNAVAILABLE"
    default_message = "Database connection error. Please try again later."


class DeliveryError(InternalError):
    status_code = 502
    code = "OTP_DELIVERY_FAILED"
    default_message = "Failed to send OTP email"
