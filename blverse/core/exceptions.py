# blverse/core/exceptions.py
"""
Domain-specific exceptions for the BLverse realtime core.

Services raise these; the API layer turns them into JSON error bodies
that always carry a ``message`` field.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def public_message(self) -> str:
        return self.message

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.public_message(),
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input fails business validation (empty content, bad media type)."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStateException(ValidationException):
    """Raised when an operation does not apply to the target in its current state."""


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class UpstreamException(DomainException):
    """
    Raised when an external collaborator (object storage, outbound fetch) fails.

    The underlying detail is only exposed in development.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    GENERIC_MESSAGE = "Upstream service unavailable"

    def public_message(self) -> str:
        from .config import settings

        if settings.is_development():
            return self.message
        return self.GENERIC_MESSAGE

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        if exc.detail["message"] == self.GENERIC_MESSAGE:
            exc.detail["details"] = {}
        return exc


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def public_message(self) -> str:
        return self.message or "An error occurred processing your request"


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as query failures
    or constraint violations that the caller did not anticipate.
    """
