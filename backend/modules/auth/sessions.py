"""
Session issuance and bearer credential verification.

A bearer credential is an HS256 JWT naming a user and a session row. It is
only honoured while the signature is valid, the JWT has not expired, the
session row still exists and is unexpired, and the user still exists.
Deleting the session row revokes the credential immediately.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from shared.exceptions import AuthenticationError
from shared.models import AuthenticatedUser

from .exceptions import (
    ExpiredTokenError,
    InvalidTokenError,
    MissingTokenError,
    SessionExpiredError,
    UserNotFoundError,
)
from .interfaces import ISessionRepository, IUserRepository
from .models import IssuedSession

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class SessionIssuer:
    """Creates sessions and turns bearer credentials back into users."""

    def __init__(
        self,
        sessions: ISessionRepository,
        users: IUserRepository,
        secret: str,
        session_ttl: timedelta = timedelta(days=30),
        bearer_ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if not secret:
            raise ValueError("Bearer signing secret must not be empty")
        self._sessions = sessions
        self._users = users
        self._secret = secret
        self._session_ttl = session_ttl
        self._bearer_ttl = bearer_ttl
        self._clock = clock

    async def issue(self, user_id: str) -> IssuedSession:
        """Create a session row and mint a bearer credential for it."""
        now = self._clock()
        expires_at = now + self._session_ttl
        session = self._sessions.create(user_id, str(uuid.uuid4()), expires_at)
        token = self.mint(user_id, session.id, now)
        logger.info("Issued session %s for user %s", session.id, user_id)
        return IssuedSession(session_id=session.id, bearer_token=token, expires_at=expires_at)

    def mint(self, user_id: str, session_id: str, issued_at: Optional[datetime] = None) -> str:
        issued_at = issued_at or self._clock()
        payload = {
            "userId": user_id,
            "sessionId": session_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._bearer_ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def decode(self, bearer_token: str) -> dict:
        """
        Check the signature and expiry of a bearer credential.

        Returns:
            The claims, guaranteed to contain userId and sessionId

        Raises:
            ExpiredTokenError: The JWT is past its exp
            InvalidTokenError: Anything else wrong with it
        """
        try:
            claims = jwt.decode(
                bearer_token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.PyJWTError:
            raise InvalidTokenError()

        if not isinstance(claims.get("userId"), str) or not isinstance(claims.get("sessionId"), str):
            raise InvalidTokenError()
        return claims

    async def verify(self, bearer_token: Optional[str]) -> AuthenticatedUser:
        """
        Fully verify a bearer credential.

        Raises:
            AuthenticationError: One of the bearer errors describing why the
                credential was refused
        """
        if not bearer_token:
            raise MissingTokenError()

        claims = self.decode(bearer_token)
        user_id, session_id = claims["userId"], claims["sessionId"]

        if self._sessions.get_active(session_id, user_id) is None:
            raise SessionExpiredError()

        user = self._users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        return AuthenticatedUser(
            id=user.id,
            email=user.email,
            session_id=session_id,
            first_name=user.first_name,
            last_name=user.last_name,
            is_verified=user.is_verified,
            is_accredited=user.is_accredited,
        )

    async def authenticate(self, bearer_token: Optional[str]) -> Optional[AuthenticatedUser]:
        """Like verify, but any failure means None (unauthenticated)."""
        try:
            return await self.verify(bearer_token)
        except AuthenticationError as e:
            logger.debug("Bearer credential refused: %s", e.code)
            return None
        except Exception:
            logger.exception("Unexpected error while authenticating bearer credential")
            return None

    async def revoke(self, bearer_token: str) -> bool:
        """Delete the session named by a (signature-valid) credential."""
        try:
            claims = self.decode(bearer_token)
        except AuthenticationError:
            return False
        deleted = self._sessions.delete(claims["sessionId"])
        if deleted:
            logger.info("Revoked session %s", claims["sessionId"])
        return deleted

    async def revoke_all(self, user_id: str) -> int:
        count = self._sessions.delete_all_for_user(user_id)
        logger.info("Revoked %d sessions for user %s", count, user_id)
        return count
