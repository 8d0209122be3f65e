"""Custom exceptions and centralized exception handlers."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base application exception with structured error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.status_code = status_code or self.status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to problem+json style response."""
        return {
            "error": self.error_code,
            "message": self.message,
            "status": self.status_code,
            **({"details": self.details} if self.details else {}),
        }


class NotFoundError(AppException):
    """Resource not found."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Resource not found"


class BadRequestError(AppException):
    """Bad request."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"
    message = "Bad request"


class InsufficientHistoryError(AppException):
    """Fewer price points than a signal requires."""

    status_code = 422
    error_code = "INSUFFICIENT_HISTORY"
    message = "Insufficient price history"


# Signal calculators refer to it by this name
InsufficientDataError = InsufficientHistoryError


class MissingPriceError(AppException):
    """No price on or before the requested date."""

    status_code = 422
    error_code = "MISSING_PRICE"
    message = "No price available for the requested date"


class ProviderUnavailableError(AppException):
    """External price or narrative provider failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "PROVIDER_UNAVAILABLE"
    message = "External provider unavailable"


class InvariantViolationError(AppException):
    """A computed plan is inconsistent and must not be persisted."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INVARIANT_VIOLATION"
    message = "DCA plan invariant violated"


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers that render AppException subclasses as JSON."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
