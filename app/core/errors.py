"""
Central error handling for the geo-attendance backend
"""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

from app.core.exceptions import AttendanceError

logger = logging.getLogger(__name__)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "status_code": exc.status_code,
            "detail": exc.detail,
            "path": str(request.url.path)
        },
        headers=_CORS_HEADERS,
    )


async def attendance_exception_handler(request: Request, exc: AttendanceError) -> JSONResponse:
    """
    Handle attendance domain errors: same envelope as HTTPException plus the
    error's context (e.g. reason, location_valid, wifi_valid, distance_meters).
    """
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
    content = {
        "error": True,
        "status_code": exc.status_code,
        "detail": exc.detail,
        "path": str(request.url.path),
        "error_type": type(exc).__name__,
    }
    content.update(exc.context)
    return JSONResponse(status_code=exc.status_code, content=content, headers=_CORS_HEADERS)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from app.core.config import settings

    # In production, return generic error message
    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "status_code": 422,
                "detail": "Validation error: Invalid request data",
                "path": str(request.url.path)
            }
        )

    # In development/staging, return detailed errors (sanitize for JSON: e.g. ctx.error ValueError -> str)
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            ctx = {k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v) for k, v in err["ctx"].items()}
            err["ctx"] = ctx
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": True,
            "status_code": 422,
            "detail": "Validation error",
            "errors": errors,
            "path": str(request.url.path)
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from app.core.config import settings

    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    if settings.APP_ENV == "prod":
        detail = "Internal server error"
    else:
        detail = str(exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": True,
            "status_code": 500,
            "detail": detail,
            "path": str(request.url.path)
        },
        headers=_CORS_HEADERS,
    )
