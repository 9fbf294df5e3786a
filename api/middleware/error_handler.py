"""
Error Handler Middleware

Global error handling for consistent API responses. Pipeline failures
(IntakeError subclasses) are mapped to HTTP status codes here so services
never deal with HTTP.
"""

import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.errors import (
    IntakeError,
    MailboxConnectionError,
    MessageParseError,
    AttachmentPersistenceError,
    AttachmentAccessDenied,
    AttachmentNotFound,
    AnalysisUnavailable,
    AnalysisFailure,
    InsufficientData,
    VendorNotInvited,
    InvalidStatusTransition,
    NotificationUnavailable,
    RecordNotFound,
)

logger = logging.getLogger("rfp_intake.api.errors")


class APIError(Exception):
    """Base API error with status code and error code."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR"
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


# (status code, error code) per pipeline failure
INTAKE_ERROR_STATUS: dict[type[IntakeError], tuple[int, str]] = {
    RecordNotFound: (status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    AttachmentNotFound: (status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    AttachmentAccessDenied: (status.HTTP_403_FORBIDDEN, "ACCESS_DENIED"),
    VendorNotInvited: (status.HTTP_403_FORBIDDEN, "VENDOR_NOT_INVITED"),
    InsufficientData: (status.HTTP_400_BAD_REQUEST, "INSUFFICIENT_DATA"),
    InvalidStatusTransition: (status.HTTP_409_CONFLICT, "INVALID_STATUS_TRANSITION"),
    MailboxConnectionError: (status.HTTP_502_BAD_GATEWAY, "MAILBOX_UNAVAILABLE"),
    AnalysisFailure: (status.HTTP_502_BAD_GATEWAY, "ANALYSIS_FAILED"),
    AnalysisUnavailable: (status.HTTP_503_SERVICE_UNAVAILABLE, "ANALYSIS_UNAVAILABLE"),
    NotificationUnavailable: (status.HTTP_503_SERVICE_UNAVAILABLE, "NOTIFICATION_UNAVAILABLE"),
    MessageParseError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "MESSAGE_PARSE_ERROR"),
    AttachmentPersistenceError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "STORAGE_ERROR"),
}


def api_error_from(exc: IntakeError) -> APIError:
    """Translate a pipeline failure into an APIError."""
    for cls in type(exc).__mro__:
        if cls in INTAKE_ERROR_STATUS:
            status_code, error_code = INTAKE_ERROR_STATUS[cls]
            return APIError(exc.message, status_code, error_code)
    return APIError(exc.message)


def _error_response(error: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={
            "error": {
                "code": error.error_code,
                "message": error.message
            }
        }
    )


def setup_error_handlers(app: FastAPI, api_env: str = "development"):
    """
    Set up global error handlers for the application.

    Args:
        app: FastAPI application instance
        api_env: In "development", unexpected errors expose their message
    """

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle custom API errors."""
        logger.warning(f"API Error: {exc.error_code} - {exc.message}")
        return _error_response(exc)

    @app.exception_handler(IntakeError)
    async def intake_error_handler(request: Request, exc: IntakeError):
        """Handle pipeline failures raised by services."""
        error = api_error_from(exc)
        log_level = logging.ERROR if error.status_code >= 500 else logging.WARNING
        logger.log(log_level, f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return _error_response(error)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": "HTTP_ERROR",
                    "message": exc.detail
                }
            }
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"]
            })

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": errors
                }
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unhandled exception: {str(exc)}")
        logger.error(traceback.format_exc())

        # Don't expose internal errors in production
        if api_env == "development":
            message = str(exc)
        else:
            message = "An internal error occurred"

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": message
                }
            }
        )
