"""
FastAPI application for the Moderation Console.

Routes:
- GET  /api/health                     : service and database health
- /api/admin/evidence, /api/admin/audits : review queues and actions
- GET  /api/admin/stats                : pending counts
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from admin_panel.api.router import admin_router
from config.settings import Settings, get_settings, validate_startup_config
from database.async_engine import check_database_connection, close_database, init_database
from services.logging_config import configure_logging, request_id_var, user_id_var

logger = logging.getLogger(__name__)


# =============================================================================
# ERROR HANDLING SYSTEM
# =============================================================================

class ErrorCode(str, Enum):
    """Standardized error codes for consistent client handling."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    HTTP_ERROR = "HTTP_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
}


def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int = 400,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "code": code.value,
            "message": message,
            "details": details or {},
            "timestamp": datetime.utcnow().isoformat(),
        }
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with field-level messages."""
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append(f"{field}: {error['msg']}")

    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Invalid request data",
        status_code=400,
        details={"validation_errors": errors},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTPException detail in the standard error shape."""
    return create_error_response(
        code=_STATUS_CODES.get(exc.status_code, ErrorCode.HTTP_ERROR),
        message=str(exc.detail),
        status_code=exc.status_code,
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors and hide internals from the client."""
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        extra={"path": request.url.path},
    )
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred",
        status_code=500,
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to get_settings())
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(
            level=settings.log_level,
            json_output=settings.log_json,
            log_file=Path(settings.log_file) if settings.log_file else None,
        )
        validate_startup_config(settings, exit_on_failure=settings.is_production)
        await init_database()
        logger.info(f"{settings.name} {settings.version} started ({settings.environment})")
        yield
        await close_database()
        logger.info(f"{settings.name} stopped")

    app = FastAPI(title=settings.name, version=settings.version, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    reviewer_header = settings.moderation.reviewer_header

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request_token = request_id_var.set(request_id)
        user_token = user_id_var.set(request.headers.get(reviewer_header))
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(request_token)
            user_id_var.reset(user_token)
        response.headers["X-Request-Id"] = request_id
        return response

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/api/health", operation_id="api_health_check")
    async def api_health_check():
        """Basic health check endpoint."""
        database_ok = await check_database_connection()
        return {
            "status": "healthy" if database_ok else "degraded",
            "version": settings.version,
            "database": "ok" if database_ok else "unavailable",
            "timestamp": datetime.utcnow().isoformat(),
        }

    app.include_router(admin_router, prefix="/api")
    logger.info("Admin review API enabled at /api/admin")

    return app


app = create_app()
