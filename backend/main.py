from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from api.v1 import auth, admin
from core.config import settings
from core.errors import OtpError, InternalError
from db.base import initialize_database, ping_database, table_exists
from db.session import Database
from utils.logging_config import configure_logging, RequestContextMiddleware
from utils.responses import no_store_json, error_json

# Configure logging with date-based files and TTL retention
logger = configure_logging("campus_assistant")


def create_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
    )
    app.state.database = database or Database.from_settings(settings)

    @app.exception_handler(OtpError)
    async def otp_error_handler(request: Request, exc: OtpError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} at {request.url.path}: {exc.details or exc.message}")
        return error_json(exc)

    # Global exception handler to ensure 500s for unexpected errors
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error at {request.url.path}: {exc}")
        return error_json(InternalError(details=str(exc)))

    # Add GZip compression for larger JSON payloads
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # Add logging context middleware to capture request id and API path
    app.add_middleware(RequestContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(admin.router, tags=["Admin"])

    @app.on_event("startup")
    async def startup_db_client():
        """Create tables when DB_AUTO_CREATE is set"""
        if settings.DB_AUTO_CREATE:
            try:
                await initialize_database(app.state.database)
                logger.info("SQL database initialized")
            except Exception as e:
                logger.warning(f"SQL init skipped or failed: {e}")
        logger.info("Application startup complete")

    @app.on_event("shutdown")
    async def shutdown_db_client():
        await app.state.database.dispose()
        logger.info("Application shutdown complete")

    @app.get("/")
    async def root():
        return {"message": settings.APP_NAME, "version": settings.VERSION}

    @app.get("/api/health")
    async def health_check():
        # Actively check DB connectivity and that the schema has been pushed
        database: Database = app.state.database
        try:
            await ping_database(database)
            exists = await table_exists(database, "client_users")
        except Exception as e:
            logger.warning(f"Health SQL check failed: {e}")
            body = {
                "status": "unhealthy",
                "database": "disconnected",
                "hasDatabaseUrl": bool(settings.DATABASE_URL),
            }
            if settings.is_development:
                body["error"] = str(e)
            return no_store_json(body, status_code=503)
        return no_store_json({
            "status": "healthy",
            "database": "connected",
            "dialect": database.dialect,
            "tables": {"client_users": "exists" if exists else "missing"},
            "environment": settings.ENVIRONMENT,
            "hasDatabaseUrl": bool(settings.DATABASE_URL),
        })

    return app


app = create_app()
