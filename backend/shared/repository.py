"""
Base repository class for database access.

Repositories own the translation between PostgREST rows (plain dicts) and
the pydantic models the rest of the code works with.
"""

from datetime import datetime, timezone
from typing import TypeVar, Generic, Optional
from supabase import Client


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Subclasses implement domain-specific data access on top of ``self._db``
    and keep the dict-to-model mapping private.

    Example:
        class UserRepository(BaseRepository[User]):
            def get_by_id(self, user_id: str) -> Optional[User]:
                result = self._db.table("users").select("*").eq("id", user_id).execute()
                if not result.data:
                    return None
                return self._map_to_user(result.data[0])
    """

    def __init__(self, db: Client) -> None:
        self._db = db

    @staticmethod
    def _now_iso() -> str:
        """Current UTC time as an ISO-8601 string for timestamp columns."""
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _first_row(data: object) -> Optional[dict]:
        """Return the first row of a PostgREST payload (list or single object)."""
        if isinstance(data, list):
            return data[0] if data else None
        if isinstance(data, dict):
            return data
        return None
