"""
Custom exception classes and error handling.

This module provides custom exceptions and handlers for consistent
error responses across the application.
"""
import logging
from typing import Any, Dict, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class VivaException(Exception):
    """Base exception for all viva backend errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidSignatureError(VivaException):
    """Raised when a webhook signature is missing or does not match."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class SheetsConfigurationError(VivaException):
    """Raised when the results spreadsheet is not configured."""

    def __init__(self, message: str = "Google Sheets is not configured"):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class EvaluationError(VivaException):
    """Raised when the scoring model returns an unusable response."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY, details)


class VapiApiError(VivaException):
    """Raised when the VAPI REST API rejects a request."""

    def __init__(self, message: str, status_code: int = status.HTTP_502_BAD_GATEWAY):
        super().__init__(message, status_code)


# =============================================================================
# Exception Handlers
# =============================================================================

async def viva_exception_handler(request: Request, exc: VivaException) -> JSONResponse:
    """Handle VivaException instances."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "details": exc.details
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions without leaking internals."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )


def register_exception_handlers(app):
    """
    Register all custom exception handlers with the FastAPI app.

    Call this during app initialization:
        from viva_backend.exceptions import register_exception_handlers
        register_exception_handlers(app)
    """
    app.add_exception_handler(VivaException, viva_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
