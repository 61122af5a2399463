"""Global exception handlers for consistent error responses.

Every ``AppError`` maps to its ``status_code`` with the body
``{"error": {"code", "message", "request_id", "details"?}}``. Rate-limit
rejections add ``retry_after`` to the body and their headers to the
response. Anything else becomes a generic 500 without implementation
details.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shelter_api.core.errors import AppError, RateLimitExceededError
from shelter_api.core.logging import get_request_id

logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the error's status code and details.
    """
    status_code = exc.status_code
    level = logging.ERROR if status_code >= 500 else logging.WARNING
    logger.log(
        level,
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    headers = None

    if isinstance(exc, RateLimitExceededError):
        error_content["retry_after"] = exc.retry_after_seconds
        headers = dict(exc.headers or {})
        headers.setdefault("Retry-After", str(exc.retry_after_seconds))

    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the error type for debugging while returning a generic message, so
    no stack trace reaches the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the app.

    Specific handlers are registered before the general fallback.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
