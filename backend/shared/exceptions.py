"""
Base exception classes for the MedInvest backend.

Each module should define its own exceptions that inherit from these bases.
Every error carries the HTTP status it maps to, so the API layer can render
any of them without knowing the module it came from.
"""

from typing import Optional, Any


class MedInvestError(Exception):
    """
    Base exception for all MedInvest errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(MedInvestError):
    """Resource not found."""

    status_code = 404


class ValidationError(MedInvestError):
    """Input validation failed."""

    status_code = 400


class ConflictError(MedInvestError):
    """The request collides with existing state (e.g. a taken email)."""

    status_code = 409


class AuthenticationError(MedInvestError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401


class AuthorizationError(MedInvestError):
    """Authorization failed (insufficient permissions)."""

    status_code = 403


class ExternalServiceError(MedInvestError):
    """Error communicating with an external service."""

    status_code = 502

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
