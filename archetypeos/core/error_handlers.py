"""
Global Exception Handlers for the Application
Provides unified error response format and logging.

Unexpected failures are logged with the caller's user id and the operation
(route name) and surface to the caller as a bare internal error.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from archetypeos.core.exceptions import AppException

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: dict = None,
    path: str = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        status_code: HTTP status code
        error_code: Application-specific error code
        message: Human-readable error message
        details: Additional error details
        path: Request path where error occurred
        headers: Extra response headers (e.g. WWW-Authenticate)

    Returns:
        JSONResponse with standardized error format
    """
    content = {
        "success": False,
        "error": {
            "code": error_code,
            "message": message,
            "details": details or {},
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if path:
        content["path"] = path

    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _request_context(request: Request) -> dict:
    """Caller and operation identifiers attached to error logs."""
    user = getattr(request.state, "user", None)
    route = request.scope.get("route")
    return {
        "path": request.url.path,
        "method": request.method,
        "user_id": getattr(user, "id", None),
        "operation": getattr(route, "name", None),
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers for the application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        """Handle custom application exceptions."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            f"AppException: {exc.error_code} - {exc.message}",
            extra={**_request_context(request), "error_code": exc.error_code},
        )

        return create_error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
            path=request.url.path,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """Handle malformed request payloads as 400 validation errors."""
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )

        logger.warning(
            f"Validation error on {request.url.path}",
            extra=_request_context(request),
        )

        return create_error_response(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_error",
            message="Request validation failed",
            details={"errors": errors},
            path=request.url.path,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        """Handle database errors."""
        logger.error(
            f"Database error: {type(exc).__name__}",
            extra=_request_context(request),
            exc_info=exc,
        )

        return create_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="database_error",
            message="A database error occurred. Please try again later.",
            path=request.url.path,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions."""
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            extra=_request_context(request),
            exc_info=exc,
        )

        return create_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="internal_server_error",
            message="An unexpected error occurred. Please try again later.",
            path=request.url.path,
        )
