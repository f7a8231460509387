"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt  # PyJWT
import pytest

from api.dependencies import reset_container
from modules.auth.broker import OAuthBroker
from modules.auth.config import OAuthConfig, ProviderCredentials
from modules.auth.identity import IdentityResolver
from modules.auth.sessions import SessionIssuer
from modules.auth.state import StateCodec
from providers.factory import get_adapters
from shared.config import get_settings
from shared.database import reset_client_cache
from tests.fakes import InMemorySessionRepository, InMemoryUserRepository, ProviderStub


# Test secrets (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"
TEST_STATE_SECRET = "test-state-secret-for-testing-only"

BASE_URL = "https://app.medinvest.test"
CALLBACK_URI = f"{BASE_URL}/api/auth/callback"
APPLE_CLIENT_ID = "com.medinvest.web"


def make_oauth_config(**overrides) -> OAuthConfig:
    """OAuthConfig with every provider configured."""
    values = dict(
        base_url=BASE_URL,
        app_root_url=BASE_URL,
        google=ProviderCredentials(client_id="google-client", client_secret="google-secret"),
        github=ProviderCredentials(client_id="github-client", client_secret="github-secret"),
        github_mobile=ProviderCredentials(client_id="github-mobile", client_secret="github-mobile-secret"),
        facebook=ProviderCredentials(client_id="fb-app", client_secret="fb-secret"),
        apple_audiences=(APPLE_CLIENT_ID, "com.medinvest.app", "host.exp.Exponent"),
    )
    values.update(overrides)
    return OAuthConfig(**values)


def create_test_token(
    user_id: str = "test-user-123",
    session_id: str = "test-session-123",
    expired: bool = False,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """
    Create a bearer credential the way SessionIssuer mints them.

    Args:
        user_id: userId claim
        session_id: sessionId claim
        expired: If True, creates an expired token
        secret: Signing secret (pass another to forge a bad signature)
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)
    payload = {
        "userId": user_id,
        "sessionId": session_id,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


class BrokerHarness:
    """A broker wired to in-memory stores and stubbed provider APIs."""

    def __init__(self, config: Optional[OAuthConfig] = None, users: Optional[InMemoryUserRepository] = None):
        self.config = config or make_oauth_config()
        self.stub = ProviderStub()
        self.users = users or InMemoryUserRepository()
        self.sessions = InMemorySessionRepository()
        self.codec = StateCodec(TEST_STATE_SECRET)
        self.issuer = SessionIssuer(self.sessions, self.users, TEST_JWT_SECRET)
        self.adapters = get_adapters(self.config, self.stub.client())
        self.broker = OAuthBroker(
            config=self.config,
            codec=self.codec,
            adapters=self.adapters,
            resolver=IdentityResolver(self.users),
            issuer=self.issuer,
            users=self.users,
        )


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the service container and cached clients around each test."""
    reset_container()
    reset_client_cache()
    get_settings.cache_clear()
    yield
    reset_container()
    reset_client_cache()
    get_settings.cache_clear()


@pytest.fixture
def oauth_config() -> OAuthConfig:
    return make_oauth_config()


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def session_repo() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def issuer(session_repo, user_repo) -> SessionIssuer:
    return SessionIssuer(session_repo, user_repo, TEST_JWT_SECRET)


@pytest.fixture
def codec() -> StateCodec:
    return StateCodec(TEST_STATE_SECRET)


@pytest.fixture
def harness() -> BrokerHarness:
    return BrokerHarness()
