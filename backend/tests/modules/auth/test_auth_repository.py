"""Tests for the Supabase-backed user and session repositories."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from modules.auth.exceptions import DuplicateEmailError
from modules.auth.interfaces import ISessionRepository
from modules.auth.repository import SessionRepository, UserRepository


def create_mock_user_row(
    user_id: str = "user-123",
    email: str = "investor@example.com",
    provider: str = "google",
) -> dict:
    """Helper to create a users row as PostgREST returns it."""
    now = datetime.now(timezone.utc).isoformat()
    return {
        "id": user_id,
        "email": email,
        "first_name": "Ivy",
        "last_name": "Investor",
        "phone": None,
        "avatar_url": None,
        "provider": provider,
        "provider_user_id": "g-1",
        "password_hash": None,
        "is_verified": True,
        "is_accredited": False,
        "last_login_at": now,
        "created_at": now,
        "updated_at": now,
    }


def create_mock_session_row(session_id: str = "session-123", user_id: str = "user-123") -> dict:
    return {
        "id": session_id,
        "user_id": user_id,
        "token": "opaque-token",
        "expires_at": "2030-01-01T00:00:00+00:00",
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


@pytest.fixture
def mock_db():
    return MagicMock()


class TestUserRepositoryReads:

    def test_get_by_id(self, mock_db):
        mock_db.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [
            create_mock_user_row()
        ]

        user = UserRepository(mock_db).get_by_id("user-123")

        assert user.id == "user-123"
        assert user.provider == "google"
        assert user.is_verified is True
        mock_db.table.assert_called_with("users")
        mock_db.table.return_value.select.return_value.eq.assert_called_with("id", "user-123")

    def test_get_by_id_not_found(self, mock_db):
        mock_db.table.return_value.select.return_value.eq.return_value.execute.return_value.data = []
        assert UserRepository(mock_db).get_by_id("missing") is None

    def test_get_by_email_lowercases(self, mock_db):
        mock_db.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [
            create_mock_user_row()
        ]

        UserRepository(mock_db).get_by_email("Investor@Example.com")

        mock_db.table.return_value.select.return_value.eq.assert_called_with(
            "email", "investor@example.com"
        )

    def test_missing_provider_defaults_to_email(self, mock_db):
        row = create_mock_user_row()
        row["provider"] = None
        mock_db.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [row]

        assert UserRepository(mock_db).get_by_id("user-123").provider == "email"


class TestUserRepositoryWrites:

    def test_create_uses_rpc(self, mock_db):
        mock_db.rpc.return_value.execute.return_value.data = [create_mock_user_row()]
        last_login = datetime(2026, 3, 1, tzinfo=timezone.utc)

        user = UserRepository(mock_db).create_with_preferences({
            "email": "investor@example.com",
            "provider": "google",
            "last_login_at": last_login,
        })

        assert user.id == "user-123"
        name, params = mock_db.rpc.call_args.args
        assert name == "create_user_with_preferences"
        assert params["user_data"]["last_login_at"] == last_login.isoformat()

    def test_create_accepts_single_object_payload(self, mock_db):
        mock_db.rpc.return_value.execute.return_value.data = create_mock_user_row()
        user = UserRepository(mock_db).create_with_preferences({"email": "investor@example.com"})
        assert user.email == "investor@example.com"

    def test_create_unique_violation(self, mock_db):
        mock_db.rpc.return_value.execute.side_effect = APIError({
            "message": 'duplicate key value violates unique constraint "users_email_key"',
            "code": "23505",
            "hint": None,
            "details": None,
        })

        with pytest.raises(DuplicateEmailError) as exc_info:
            UserRepository(mock_db).create_with_preferences({"email": "investor@example.com"})
        assert exc_info.value.status_code == 409

    def test_create_other_api_error_propagates(self, mock_db):
        mock_db.rpc.return_value.execute.side_effect = APIError({
            "message": "permission denied",
            "code": "42501",
            "hint": None,
            "details": None,
        })

        with pytest.raises(APIError):
            UserRepository(mock_db).create_with_preferences({"email": "investor@example.com"})

    def test_create_without_row(self, mock_db):
        mock_db.rpc.return_value.execute.return_value.data = []
        with pytest.raises(RuntimeError):
            UserRepository(mock_db).create_with_preferences({"email": "investor@example.com"})

    def test_update_stamps_updated_at(self, mock_db):
        mock_db.table.return_value.update.return_value.eq.return_value.execute.return_value.data = [
            create_mock_user_row()
        ]

        UserRepository(mock_db).update("user-123", {"first_name": "Ivy"})

        data = mock_db.table.return_value.update.call_args.args[0]
        assert data["first_name"] == "Ivy"
        assert "updated_at" in data

    def test_update_missing_user(self, mock_db):
        mock_db.table.return_value.update.return_value.eq.return_value.execute.return_value.data = []
        assert UserRepository(mock_db).update("missing", {"first_name": "Ivy"}) is None


class TestSessionRepository:

    def test_create(self, mock_db):
        mock_db.table.return_value.insert.return_value.execute.return_value.data = [
            create_mock_session_row()
        ]
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)

        session = SessionRepository(mock_db).create("user-123", "opaque-token", expires)

        assert session.id == "session-123"
        inserted = mock_db.table.return_value.insert.call_args.args[0]
        assert inserted == {
            "user_id": "user-123",
            "token": "opaque-token",
            "expires_at": expires.isoformat(),
        }

    def test_get_active_filters_expired(self, mock_db):
        chain = mock_db.table.return_value.select.return_value
        chain.eq.return_value.eq.return_value.gt.return_value.limit.return_value.execute.return_value.data = [
            create_mock_session_row()
        ]

        session = SessionRepository(mock_db).get_active("session-123", "user-123")

        assert session.user_id == "user-123"
        chain.eq.assert_called_with("id", "session-123")
        chain.eq.return_value.eq.assert_called_with("user_id", "user-123")
        column, _ = chain.eq.return_value.eq.return_value.gt.call_args.args
        assert column == "expires_at"

    def test_get_active_none(self, mock_db):
        chain = mock_db.table.return_value.select.return_value
        chain.eq.return_value.eq.return_value.gt.return_value.limit.return_value.execute.return_value.data = []
        assert SessionRepository(mock_db).get_active("session-123", "user-123") is None

    def test_delete(self, mock_db):
        mock_db.table.return_value.delete.return_value.eq.return_value.execute.return_value.data = [
            create_mock_session_row()
        ]
        assert SessionRepository(mock_db).delete("session-123") is True
        mock_db.table.return_value.delete.return_value.eq.assert_called_with("id", "session-123")

    def test_exposes_only_declared_operations(self, mock_db):
        public = {name for name in vars(SessionRepository) if not name.startswith("_")}
        declared = {name for name in vars(ISessionRepository) if not name.startswith("_")}

        assert public == declared
        assert isinstance(SessionRepository(mock_db), ISessionRepository)

    def test_delete_all_for_user(self, mock_db):
        mock_db.table.return_value.delete.return_value.eq.return_value.execute.return_value.data = [
            create_mock_session_row("s1"),
            create_mock_session_row("s2"),
        ]
        assert SessionRepository(mock_db).delete_all_for_user("user-123") == 2
