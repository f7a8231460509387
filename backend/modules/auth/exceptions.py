"""
Authentication module exceptions.

Two families live here. OAuthFlowError and its subclasses describe why a
login attempt failed; each carries a ``kind`` that delivery strategies and
JSON handlers use to pick a status and message. The bearer errors describe
why a presented credential was refused.
"""

from typing import Optional

from shared.exceptions import (
    AuthenticationError,
    ConflictError,
    MedInvestError,
)


class OAuthFlowError(MedInvestError):
    """Base class for login failures."""

    kind = "unknown"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, code=self.kind.upper(), details=details)


class InvalidRequestError(OAuthFlowError):
    """Required parameters are missing or malformed."""

    kind = "invalid_request"
    status_code = 400


class InvalidStateError(OAuthFlowError):
    """The state parameter failed signature or payload checks."""

    kind = "invalid_state"
    status_code = 400

    def __init__(self, message: str = "Invalid state parameter. Please try again."):
        super().__init__(message)


class ProviderDeclinedError(OAuthFlowError):
    """The user (or provider) cancelled at the consent screen."""

    kind = "provider_declined"
    status_code = 400


class ProviderUnavailableError(OAuthFlowError):
    """The provider could not be reached or answered with garbage."""

    kind = "network_error"
    status_code = 502

    def __init__(self, provider: str, message: Optional[str] = None):
        super().__init__(
            message or f"Could not reach {provider}. Please try again.",
            details={"provider": provider},
        )


class ProviderRejectedError(OAuthFlowError):
    """The provider explicitly refused the code or token."""

    kind = "provider_rejected"
    status_code = 401


class IdentityUnresolvableError(OAuthFlowError):
    """The provider did not give us an email we can key the account on."""

    kind = "email_unavailable"
    status_code = 400

    def __init__(
        self,
        message: str = "Email is required. Please ensure your account has a verified email.",
    ):
        super().__init__(message)


class TokenInvalidError(OAuthFlowError):
    """A client-supplied identity token failed verification."""

    kind = "token_invalid"
    status_code = 401

    def __init__(self, message: str = "Invalid identity token"):
        super().__init__(message)


class ConfigurationMissingError(OAuthFlowError):
    """Provider credentials are not configured on this deployment."""

    kind = "configuration_missing"
    status_code = 500


# ============================================================================
# Bearer credential errors
# ============================================================================


class InvalidTokenError(AuthenticationError):
    """Raised when a bearer token is invalid or malformed."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, code="INVALID_TOKEN")


class ExpiredTokenError(AuthenticationError):
    """Raised when a bearer token has expired."""

    def __init__(self, message: str = "Token expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class MissingTokenError(AuthenticationError):
    """Raised when no bearer token is provided."""

    def __init__(self, message: str = "No token provided"):
        super().__init__(message, code="MISSING_TOKEN")


class SessionExpiredError(AuthenticationError):
    """The session behind the credential was revoked or ran out."""

    def __init__(self, message: str = "Session expired"):
        super().__init__(message, code="SESSION_EXPIRED")


class UserNotFoundError(AuthenticationError):
    """Raised when the credential names a user that no longer exists."""

    def __init__(self, user_id: str):
        super().__init__(
            "User not found",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


# ============================================================================
# Account errors
# ============================================================================


class DuplicateEmailError(ConflictError):
    """An insert hit the unique index on users.email."""

    def __init__(self, email: str):
        super().__init__(
            "An account with this email already exists",
            code="DUPLICATE_EMAIL",
            details={"email": email},
        )


class InvalidCredentialsError(AuthenticationError):
    """Email/password pair did not match."""

    def __init__(self):
        super().__init__("Invalid email or password", code="INVALID_CREDENTIALS")
