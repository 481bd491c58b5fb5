from pydantic import BaseModel, EmailStr, Field
from typing import Optional

class AdminCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    name: Optional[str] = None

class ClientUserOut(BaseModel):
    id: int
    email: str
    emailVerified: bool

class VerifyOtpResponse(BaseModel):
    success: bool
    verified: bool
    message: str
    user: ClientUserOut

class SendOtpResponse(BaseModel):
    sent: bool
    message: str
    expiresInMinutes: int

class ErrorResponse(BaseModel):
    error: str
    code: str
    remainingAttempts: Optional[int] = None
    details: Optional[str] = None

class SmtpCheckRequest(BaseModel):
    email: EmailStr
