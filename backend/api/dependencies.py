"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together the auth
components. Everything is built lazily from Settings on first access, and
route handlers reach it only through the dependency functions at the
bottom, which tests replace via app.dependency_overrides.
"""

from typing import TYPE_CHECKING, Optional

# Type checking imports (avoids import cycles and eager Supabase setup)
if TYPE_CHECKING:
    import httpx

    from modules.auth.broker import OAuthBroker
    from modules.auth.config import OAuthConfig
    from modules.auth.identity import IdentityResolver
    from modules.auth.interfaces import IAuthService, ISessionRepository, IUserRepository
    from modules.auth.passwords import PasswordAuthService
    from modules.auth.sessions import SessionIssuer
    from modules.auth.state import StateCodec
    from modules.auth.models import Provider
    from providers.base import ProviderAdapter


class ServiceContainer:
    """
    Container for all service instances.

    Services are created lazily on first access and cached as singletons
    within the container. Use reset() to clear them for testing.
    """

    def __init__(self) -> None:
        self._oauth_config: "OAuthConfig | None" = None
        self._http_client: "httpx.AsyncClient | None" = None
        self._user_repository: "IUserRepository | None" = None
        self._session_repository: "ISessionRepository | None" = None
        self._state_codec: "StateCodec | None" = None
        self._adapters: "dict[Provider, ProviderAdapter] | None" = None
        self._identity_resolver: "IdentityResolver | None" = None
        self._session_issuer: "SessionIssuer | None" = None
        self._broker: "OAuthBroker | None" = None
        self._password_auth: "PasswordAuthService | None" = None
        self._auth_service: "IAuthService | None" = None

    @property
    def oauth_config(self) -> "OAuthConfig":
        if self._oauth_config is None:
            from modules.auth.config import OAuthConfig
            from shared.config import get_settings
            self._oauth_config = OAuthConfig.from_settings(get_settings())
        return self._oauth_config

    @property
    def http_client(self) -> "httpx.AsyncClient":
        """Shared outbound client for provider calls."""
        if self._http_client is None:
            import httpx
            self._http_client = httpx.AsyncClient(timeout=self.oauth_config.timeout_seconds)
        return self._http_client

    @property
    def user_repository(self) -> "IUserRepository":
        if self._user_repository is None:
            from modules.auth.repository import UserRepository
            from shared.database import get_supabase_client
            self._user_repository = UserRepository(get_supabase_client())
        return self._user_repository

    @property
    def session_repository(self) -> "ISessionRepository":
        if self._session_repository is None:
            from modules.auth.repository import SessionRepository
            from shared.database import get_supabase_client
            self._session_repository = SessionRepository(get_supabase_client())
        return self._session_repository

    @property
    def state_codec(self) -> "StateCodec":
        if self._state_codec is None:
            from modules.auth.state import StateCodec
            from shared.config import get_settings
            self._state_codec = StateCodec(get_settings().session_secret)
        return self._state_codec

    @property
    def adapters(self) -> "dict[Provider, ProviderAdapter]":
        if self._adapters is None:
            from providers.factory import get_adapters
            self._adapters = get_adapters(self.oauth_config, self.http_client)
        return self._adapters

    @property
    def identity_resolver(self) -> "IdentityResolver":
        if self._identity_resolver is None:
            from modules.auth.identity import IdentityResolver
            self._identity_resolver = IdentityResolver(self.user_repository)
        return self._identity_resolver

    @property
    def session_issuer(self) -> "SessionIssuer":
        if self._session_issuer is None:
            from datetime import timedelta

            from modules.auth.sessions import SessionIssuer
            from shared.config import get_settings
            settings = get_settings()
            self._session_issuer = SessionIssuer(
                sessions=self.session_repository,
                users=self.user_repository,
                secret=settings.jwt_secret,
                session_ttl=timedelta(days=settings.session_ttl_days),
                bearer_ttl=timedelta(days=settings.bearer_ttl_days),
            )
        return self._session_issuer

    @property
    def broker(self) -> "OAuthBroker":
        """Get the OAuth broker instance."""
        if self._broker is None:
            from modules.auth.broker import OAuthBroker
            self._broker = OAuthBroker(
                config=self.oauth_config,
                codec=self.state_codec,
                adapters=self.adapters,
                resolver=self.identity_resolver,
                issuer=self.session_issuer,
                users=self.user_repository,
            )
        return self._broker

    @property
    def password_auth(self) -> "PasswordAuthService":
        if self._password_auth is None:
            from modules.auth.passwords import PasswordAuthService
            self._password_auth = PasswordAuthService(self.user_repository, self.session_issuer)
        return self._password_auth

    @property
    def auth(self) -> "IAuthService":
        """Get the auth (account) service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService(self.user_repository, self.session_issuer)
        return self._auth_service

    async def aclose(self) -> None:
        """Release the outbound HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self.__init__()


# Module-level container singleton
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    The next call to get_container() creates a fresh container.
    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_oauth_config() -> "OAuthConfig":
    return get_container().oauth_config


def get_broker() -> "OAuthBroker":
    """FastAPI dependency for the OAuth broker."""
    return get_container().broker


def get_session_issuer() -> "SessionIssuer":
    """FastAPI dependency for the session issuer."""
    return get_container().session_issuer


def get_password_auth_service() -> "PasswordAuthService":
    return get_container().password_auth


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth
