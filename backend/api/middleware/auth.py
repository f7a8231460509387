"""
Bearer authentication middleware.

Verifies the HS256 session credential issued at sign-in and resolves it to
the caller. A credential is only accepted while its session row exists.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from modules.auth.sessions import SessionIssuer
from shared.exceptions import AuthenticationError
from shared.models import AuthenticatedUser

from ..dependencies import get_session_issuer

logger = logging.getLogger(__name__)

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(HTTPException):
    """Authentication error with consistent format."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Dependency returning the raw bearer credential (401 if absent)."""
    if credentials is None or not credentials.credentials:
        raise AuthError("No token provided")
    return credentials.credentials


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> AuthenticatedUser:
    """
    Dependency that requires authentication.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None:
        raise AuthError("No token provided")

    try:
        return await issuer.verify(credentials.credentials)
    except AuthenticationError as e:
        raise AuthError(e.message)
    except Exception:
        logger.exception("Bearer verification failed unexpectedly")
        raise AuthError("Invalid token")


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> Optional[AuthenticatedUser]:
    """
    Dependency that optionally extracts the user if authenticated.

    Never raises: a bad or stale credential is treated as anonymous.
    """
    if credentials is None:
        return None
    return await issuer.authenticate(credentials.credentials)


# Type aliases for cleaner route definitions
RequireAuth = Depends(get_current_user)
OptionalAuth = Depends(get_optional_user)
