from fastapi import APIRouter, Depends, Request
from api.dependencies import get_otp_service
from core.errors import ValidationError
from schemas.user_schema import ErrorResponse, SendOtpResponse, VerifyOtpResponse
from services.otp_service import OtpService
from utils.responses import no_store_json

router = APIRouter()

ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (400, 404, 500, 502, 503)}

async def read_json_object(request: Request) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON in request body")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload

@router.post("/api/auth/send-otp", response_model=SendOtpResponse, responses=ERROR_RESPONSES)
async def send_otp(request: Request, service: OtpService = Depends(get_otp_service)):
    payload = await read_json_object(request)
    return no_store_json(await service.issue_otp(payload.get("email")))

@router.post("/api/auth/verify-otp", response_model=VerifyOtpResponse, responses=ERROR_RESPONSES)
async def verify_otp(request: Request, service: OtpService = Depends(get_otp_service)):
    # Raw body, not a pydantic model: shape errors must come back as 400 VALIDATION_ERROR
    payload = await read_json_object(request)
    return no_store_json(await service.verify_otp(payload.get("email"), payload.get("otp")))
