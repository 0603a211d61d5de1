"""
Global exception handlers and custom exception classes.
"""
import logging
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

# Set up logging
logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base exception class for server-side failures.

    ``error`` carries the underlying diagnostic message, returned to the
    caller for operator visibility.
    """
    def __init__(self, status_code: int, detail: str, error: Optional[str] = None):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.error = error


class TransactionAbortedException(AppException):
    """Raised when the atomic registration unit fails and is rolled back."""
    def __init__(self, error: str, detail: str = "Registration failed"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail, error)


class ConfigurationMissingException(AppException):
    """Raised when required configuration (e.g. a signing secret) is absent."""
    def __init__(self, error: str, detail: str = "Server configuration error"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail, error)


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    logger.error(f"Application error: {exc.detail} ({exc.error})")
    content = {"detail": exc.detail}
    if exc.error:
        content["error"] = exc.error
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.

    Args:
        request: The request that caused the exception
        exc: The validation exception instance

    Returns:
        JSONResponse: Standardized error response with validation details
    """
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": jsonable_errors(exc.errors())
        }
    )


async def model_validation_exception_handler(request: Request, exc: ValidationError):
    """
    Handler for pydantic validation errors raised while building payloads
    inside route handlers (e.g. from multipart form fields).
    """
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": jsonable_errors(exc.errors())
        }
    )


def jsonable_errors(errors):
    # pydantic may put exception instances in "ctx"
    cleaned = []
    for error in errors:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        cleaned.append(error)
    return cleaned


# Register exception handlers with FastAPI app
def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, model_validation_exception_handler)
