"""
Auth repositories - Data access layer for users and sessions.

Encapsulates all Supabase operations for the users, user_sessions and
notification_preferences tables.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from postgrest.exceptions import APIError

from shared.repository import BaseRepository

from .exceptions import DuplicateEmailError
from .models import Session, User

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class UserRepository(BaseRepository[User]):
    """
    Repository for user accounts.

    Inserts go through the ``create_user_with_preferences`` SQL function so
    the user row and its notification preferences commit together.
    """

    # ========================================================================
    # Reads
    # ========================================================================

    def get_by_id(self, user_id: str) -> Optional[User]:
        result = self._db.table("users").select("*").eq("id", user_id).execute()
        if not result.data:
            return None
        return self._map_to_user(result.data[0])

    def get_by_email(self, email: str) -> Optional[User]:
        result = self._db.table("users").select("*").eq("email", email.lower()).execute()
        if not result.data:
            return None
        return self._map_to_user(result.data[0])

    # ========================================================================
    # Writes
    # ========================================================================

    def create_with_preferences(self, fields: dict[str, Any]) -> User:
        """
        Create a user and its default notification preferences.

        Args:
            fields: Column values for the users row (email must be lower-cased)

        Returns:
            The created User

        Raises:
            DuplicateEmailError: The unique index on email was hit
        """
        try:
            result = self._db.rpc(
                "create_user_with_preferences", {"user_data": _serialize(fields)}
            ).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateEmailError(fields.get("email", "")) from e
            raise

        row = self._first_row(result.data)
        if row is None:
            raise RuntimeError("create_user_with_preferences returned no row")
        user = self._map_to_user(row)
        logger.info("Created user %s via %s", user.id, user.provider)
        return user

    def update(self, user_id: str, fields: dict[str, Any]) -> Optional[User]:
        data = {**_serialize(fields), "updated_at": self._now_iso()}
        result = self._db.table("users").update(data).eq("id", user_id).execute()
        if not result.data:
            return None
        return self._map_to_user(result.data[0])

    # ========================================================================
    # Mapping Helpers
    # ========================================================================

    def _map_to_user(self, row: dict) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            first_name=row.get("first_name"),
            last_name=row.get("last_name"),
            phone=row.get("phone"),
            avatar_url=row.get("avatar_url"),
            provider=row.get("provider") or "email",
            provider_user_id=row.get("provider_user_id"),
            password_hash=row.get("password_hash"),
            is_verified=bool(row.get("is_verified")),
            is_accredited=bool(row.get("is_accredited")),
            last_login_at=row.get("last_login_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class SessionRepository(BaseRepository[Session]):
    """Repository for user_sessions rows."""

    def create(self, user_id: str, token: str, expires_at: datetime) -> Session:
        result = (
            self._db.table("user_sessions")
            .insert({
                "user_id": user_id,
                "token": token,
                "expires_at": expires_at.isoformat(),
            })
            .execute()
        )
        return self._map_to_session(result.data[0])

    def get_active(self, session_id: str, user_id: str) -> Optional[Session]:
        result = (
            self._db.table("user_sessions")
            .select("*")
            .eq("id", session_id)
            .eq("user_id", user_id)
            .gt("expires_at", self._now_iso())
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._map_to_session(result.data[0])

    def delete(self, session_id: str) -> bool:
        result = self._db.table("user_sessions").delete().eq("id", session_id).execute()
        return bool(result.data)

    def delete_all_for_user(self, user_id: str) -> int:
        result = self._db.table("user_sessions").delete().eq("user_id", user_id).execute()
        return len(result.data or [])

    def _map_to_session(self, row: dict) -> Session:
        return Session(
            id=row["id"],
            user_id=row["user_id"],
            token=row["token"],
            expires_at=row["expires_at"],
            created_at=row.get("created_at"),
        )


def _serialize(fields: dict[str, Any]) -> dict[str, Any]:
    """Make datetimes JSON-safe for PostgREST."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in fields.items()
    }
