"""
Authentication module.

Multi-provider OAuth broker: signed state, identity resolution onto local
users, server-side sessions behind bearer credentials, and flow-specific
result delivery. Also hosts email/password and demo logins.

Public API:
- IAuthService, IUserRepository, ISessionRepository: Interfaces
- OAuthConfig: Broker configuration
- StateCodec: Signed state parameter
- Models: Provider, Flow, NormalizedIdentity, UserSummary, ...
- Exceptions: OAuthFlowError family and bearer credential errors

The broker, resolver and issuer are imported from their own modules
(``modules.auth.broker`` etc.) since they depend on the provider adapters.
"""

from .config import OAuthConfig, ProviderCredentials
from .exceptions import (
    ConfigurationMissingError,
    DuplicateEmailError,
    ExpiredTokenError,
    IdentityUnresolvableError,
    InvalidCredentialsError,
    InvalidRequestError,
    InvalidStateError,
    InvalidTokenError,
    MissingTokenError,
    OAuthFlowError,
    ProviderDeclinedError,
    ProviderRejectedError,
    ProviderUnavailableError,
    SessionExpiredError,
    TokenInvalidError,
    UserNotFoundError,
)
from .interfaces import IAuthService, ISessionRepository, IUserRepository
from .models import (
    Flow,
    NormalizedIdentity,
    OAuthState,
    Provider,
    ResolvedIdentity,
    UserProfile,
    UserSummary,
)
from .state import StateCodec

__all__ = [
    # Interfaces
    "IAuthService",
    "IUserRepository",
    "ISessionRepository",
    # Config
    "OAuthConfig",
    "ProviderCredentials",
    "StateCodec",
    # Models
    "Flow",
    "NormalizedIdentity",
    "OAuthState",
    "Provider",
    "ResolvedIdentity",
    "UserProfile",
    "UserSummary",
    # Exceptions
    "OAuthFlowError",
    "InvalidRequestError",
    "InvalidStateError",
    "ProviderDeclinedError",
    "ProviderUnavailableError",
    "ProviderRejectedError",
    "IdentityUnresolvableError",
    "TokenInvalidError",
    "ConfigurationMissingError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "MissingTokenError",
    "SessionExpiredError",
    "UserNotFoundError",
    "DuplicateEmailError",
    "InvalidCredentialsError",
]
