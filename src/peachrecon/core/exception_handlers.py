# File: src/peachrecon/core/exception_handlers.py
"""Global exception handlers for FastAPI."""

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from peachrecon.core.errors import AppError
from peachrecon.core.logging import get_logger
from peachrecon.core.sentry import report_exception

logger = get_logger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Handle all AppError exceptions and convert to JSON response.

    Returns standardized error format:
    {
        "error": "Cannot finalize reconciliation - month has not ended yet",
        "code": "INVALID_STATE",
        "details": {"reconciliation_month": "2025-01-01"}
    }
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("app_error", code=exc.code, status_code=exc.status_code, error=exc.message, path=request.url.path)
    if exc.status_code >= 500:
        report_exception(exc, error_code=exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(exclude_none=True),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body/path validation failures in the same error shape."""
    errors = jsonable_encoder(exc.errors())
    missing = [".".join(str(p) for p in e["loc"][1:]) or "body" for e in errors if e.get("type") == "missing"]
    message = f"{', '.join(missing)} is required" if missing else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": message, "code": "VALIDATION_ERROR", "details": {"errors": errors}},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Log and return HTTP exceptions as JSON."""
    logger.error(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": "HTTP_ERROR"},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Any other failure surfaces as 500 with its message; no retry at this layer."""
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Unknown error", "code": "INTERNAL_ERROR"},
    )


def register_exception_handlers(app) -> None:
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
