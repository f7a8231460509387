"""
In-memory stand-ins for the Supabase repositories and provider HTTP APIs.

The repository fakes implement IUserRepository / ISessionRepository with
the same observable behaviour as the real ones, including the unique index
on users.email.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

import httpx

from modules.auth.exceptions import DuplicateEmailError
from modules.auth.models import Session, User


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryUserRepository:
    """
    Users keyed by id with a unique email constraint.

    ``lookup_lag`` makes the next N get_by_email calls miss, which lets a
    test line up two sign-ups that both believe the email is free.
    """

    def __init__(self, lookup_lag: int = 0):
        self.users: dict[str, User] = {}
        self.preferences: set[str] = set()
        self.updates: list[tuple[str, dict]] = []
        self._lookup_lag = lookup_lag

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        if self._lookup_lag > 0:
            self._lookup_lag -= 1
            return None
        return self._find_email(email)

    def create_with_preferences(self, fields: dict[str, Any]) -> User:
        email = fields["email"].lower()
        if self._find_email(email) is not None:
            raise DuplicateEmailError(email)
        now = _now()
        data = {k: v for k, v in fields.items() if k in User.model_fields}
        user = User(**{**data, "id": str(uuid.uuid4()), "email": email, "created_at": now, "updated_at": now})
        self.users[user.id] = user
        self.preferences.add(user.id)
        return user

    def update(self, user_id: str, fields: dict[str, Any]) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        self.updates.append((user_id, dict(fields)))
        data = {k: v for k, v in fields.items() if k in User.model_fields}
        updated = user.model_copy(update={**data, "updated_at": _now()})
        self.users[user_id] = updated
        return updated

    def _find_email(self, email: str) -> Optional[User]:
        email = email.lower()
        return next((u for u in self.users.values() if u.email == email), None)


class InMemorySessionRepository:
    def __init__(self):
        self.sessions: dict[str, Session] = {}

    def create(self, user_id: str, token: str, expires_at: datetime) -> Session:
        session = Session(
            id=str(uuid.uuid4()),
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            created_at=_now(),
        )
        self.sessions[session.id] = session
        return session

    def get_active(self, session_id: str, user_id: str) -> Optional[Session]:
        session = self.sessions.get(session_id)
        if session is None or session.user_id != user_id or session.expires_at <= _now():
            return None
        return session

    def delete(self, session_id: str) -> bool:
        return self.sessions.pop(session_id, None) is not None

    def delete_all_for_user(self, user_id: str) -> int:
        doomed = [sid for sid, s in self.sessions.items() if s.user_id == user_id]
        for session_id in doomed:
            del self.sessions[session_id]
        return len(doomed)

    def for_user(self, user_id: str) -> list[Session]:
        return [s for s in self.sessions.values() if s.user_id == user_id]


StubEntry = Union[httpx.Response, Callable[[httpx.Request], httpx.Response], type]


class ProviderStub:
    """
    Canned provider HTTP responses for httpx.MockTransport.

    Routes are keyed by method and URL without query string. A route can be
    a response, a callable building one, or an httpx exception class to
    raise. Unrouted requests get a 404.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], StubEntry] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, entry: StubEntry) -> "ProviderStub":
        self.routes[(method.upper(), url)] = entry
        return self

    def json(self, method: str, url: str, body: Any, status_code: int = 200) -> "ProviderStub":
        return self.add(method, url, lambda request: httpx.Response(status_code, json=body))

    def fail(self, method: str, url: str, exc_type: type = httpx.ConnectError) -> "ProviderStub":
        return self.add(method, url, exc_type)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, f"{request.url.scheme}://{request.url.host}{request.url.path}")
        entry = self.routes.get(key)
        if entry is None:
            return httpx.Response(404, json={"error": "not stubbed"})
        if isinstance(entry, type) and issubclass(entry, Exception):
            raise entry("stubbed failure", request=request)
        if isinstance(entry, httpx.Response):
            return entry
        return entry(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(url)]
