from fastapi.responses import JSONResponse
from core.config import settings
from core.errors import OtpError

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

def no_store_json(data, status_code: int = 200):
    """Return JSONResponse with no-store caching headers."""
    return JSONResponse(content=data, status_code=status_code, headers=NO_STORE_HEADERS)

def error_json(exc: OtpError):
    """Render a service error; diagnostic details only in development"""
    return no_store_json(exc.to_payload(include_details=settings.is_development), status_code=exc.status_code)
