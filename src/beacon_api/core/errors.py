"""
Service Error Types

Domain errors raised by the service layer. Each carries a machine-readable
``error_code`` and the HTTP status the routers should answer with, so
routers can translate them without knowing every concrete subclass.
"""

from typing import Any, NoReturn

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base exception for service-layer errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a referenced record does not exist."""

    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_404_NOT_FOUND,
        )


def raise_http_error(e: ServiceError) -> NoReturn:
    """Convert a service error to an HTTPException."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
            **e.details,
        },
    ) from e


def internal_error() -> HTTPException:
    """Generic 500 that does not leak upstream error text to the client."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
