"""
Email/password accounts and the demo login.

Passwords are hashed with bcrypt. Password accounts share the users table
with OAuth accounts, so an address used for a social login cannot be
registered again with a password.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

import bcrypt

from shared.exceptions import ValidationError

from .exceptions import DuplicateEmailError, InvalidCredentialsError
from .identity import normalize_email
from .interfaces import IUserRepository
from .models import AuthResult, LoginRequest, RegisterRequest, User, UserSummary
from .sessions import SessionIssuer

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72

DEMO_EMAIL = "demo@medinvest.com"
DEMO_PASSWORD = "Demo1234!"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def validate_password(password: str) -> None:
    """
    Enforce the password policy.

    Raises:
        ValidationError: With a message suitable for the client
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError("Password is too long")
    if not (re.search(r"[A-Z]", password) and re.search(r"[a-z]", password) and re.search(r"[0-9]", password)):
        raise ValidationError("Password must contain uppercase, lowercase, and number")


class PasswordAuthService:
    """Register, log in and demo log in; each returns a fresh session."""

    def __init__(self, users: IUserRepository, issuer: SessionIssuer):
        self._users = users
        self._issuer = issuer

    async def register(self, request: RegisterRequest) -> AuthResult:
        if not request.email or not request.password:
            raise ValidationError("Email and password are required")
        if not request.first_name or not request.last_name:
            raise ValidationError("First and last name are required")
        validate_password(request.password)

        email = normalize_email(request.email)
        if "@" not in email:
            raise ValidationError("A valid email address is required")
        if self._users.get_by_email(email) is not None:
            raise DuplicateEmailError(email)

        now = datetime.now(timezone.utc)
        user = self._users.create_with_preferences({
            "email": email,
            "password_hash": hash_password(request.password),
            "first_name": request.first_name.strip(),
            "last_name": request.last_name.strip(),
            "provider": "email",
            "is_verified": False,
            "last_login_at": now,
        })
        logger.info("Registered password user %s", user.id)
        return await self._start_session(user, is_new_user=True)

    async def login(self, request: LoginRequest) -> AuthResult:
        if not request.email or not request.password:
            raise ValidationError("Email and password are required")

        user = self._users.get_by_email(normalize_email(request.email))
        if user is None or not verify_password(request.password, user.password_hash):
            raise InvalidCredentialsError()

        user = self._users.update(user.id, {"last_login_at": datetime.now(timezone.utc)}) or user
        return await self._start_session(user)

    async def demo(self) -> AuthResult:
        """Log in as the shared demo account, creating it on first use."""
        now = datetime.now(timezone.utc)
        password_hash = hash_password(DEMO_PASSWORD)
        user = self._users.get_by_email(DEMO_EMAIL)
        if user is None:
            try:
                user = self._users.create_with_preferences({
                    "email": DEMO_EMAIL,
                    "first_name": "Demo",
                    "last_name": "User",
                    "provider": "demo",
                    "password_hash": password_hash,
                    "is_verified": True,
                    "last_login_at": now,
                })
                return await self._start_session(user, is_new_user=True)
            except DuplicateEmailError:
                user = self._users.get_by_email(DEMO_EMAIL)
                if user is None:
                    raise

        user = self._users.update(
            user.id,
            {"last_login_at": now, "password_hash": password_hash, "is_verified": True},
        ) or user
        return await self._start_session(user)

    async def _start_session(self, user: User, is_new_user: bool = False) -> AuthResult:
        session = await self._issuer.issue(user.id)
        return AuthResult(
            token=session.bearer_token,
            user=UserSummary.from_user(user),
            is_new_user=is_new_user,
        )
