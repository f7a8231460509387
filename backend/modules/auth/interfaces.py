"""
Authentication module interfaces.

Components depend on these protocols rather than on the Supabase-backed
repositories, so tests can swap in in-memory stores.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from shared.models import AuthenticatedUser

from .models import Session, UpdateProfileRequest, User, UserProfile


@runtime_checkable
class IUserRepository(Protocol):
    """Persistence for user accounts."""

    def get_by_id(self, user_id: str) -> Optional[User]:
        ...

    def get_by_email(self, email: str) -> Optional[User]:
        """
        Look up a user by email.

        Args:
            email: Address to match (callers pass it lower-cased)

        Returns:
            User if found, None otherwise
        """
        ...

    def create_with_preferences(self, fields: dict[str, Any]) -> User:
        """
        Insert a user together with its default notification preferences.

        Both rows are written in one transaction.

        Raises:
            DuplicateEmailError: Another user already owns the email
        """
        ...

    def update(self, user_id: str, fields: dict[str, Any]) -> Optional[User]:
        ...


@runtime_checkable
class ISessionRepository(Protocol):
    """Persistence for server-side sessions."""

    def create(self, user_id: str, token: str, expires_at: Any) -> Session:
        ...

    def get_active(self, session_id: str, user_id: str) -> Optional[Session]:
        """Return the session only if it belongs to the user and has not expired."""
        ...

    def delete(self, session_id: str) -> bool:
        ...

    def delete_all_for_user(self, user_id: str) -> int:
        """Delete every session for a user and return how many were removed."""
        ...


@runtime_checkable
class IAuthService(Protocol):
    """
    Account operations for an already-authenticated caller.

    This is what the /me and logout routes talk to.
    """

    async def get_profile(self, user_id: str) -> UserProfile:
        """
        Get the caller's full profile.

        Raises:
            NotFoundError: If the user no longer exists
        """
        ...

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> UserProfile:
        ...

    async def logout(self, bearer_token: str) -> bool:
        ...

    async def logout_all(self, user: AuthenticatedUser) -> int:
        ...
